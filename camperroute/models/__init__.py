"""Data models for route planning."""

from .request import (
    RouteOptions,
    RouteRequest,
    RoutingProfile,
    VehicleProfile,
    VehicleType,
    Waypoint,
    WaypointRole,
)
from .response import (
    BoundingBox,
    CanonicalRoute,
    Instruction,
    ProviderRole,
    RouteAlternative,
    RouteMetadata,
    RouteRestrictions,
    RouteSegment,
    RouteStatus,
)
from .campsite import (
    Campsite,
    CampsiteAccess,
    CampsiteContact,
    CampsiteType,
    FilteredCampsite,
    FilterState,
    SortKey,
)
from .export import (
    ExportableInstruction,
    ExportableMetadata,
    ExportableRestrictions,
    ExportableRoute,
    ExportableTrack,
    ExportableTrackPoint,
    ExportableTrackSegment,
    ExportableWaypoint,
    ExportFormat,
    ExportFormatInfo,
    ExportOptions,
    ExportResult,
    ImportResult,
)

__all__ = [
    "RouteOptions",
    "RouteRequest",
    "RoutingProfile",
    "VehicleProfile",
    "VehicleType",
    "Waypoint",
    "WaypointRole",
    "BoundingBox",
    "CanonicalRoute",
    "Instruction",
    "ProviderRole",
    "RouteAlternative",
    "RouteMetadata",
    "RouteRestrictions",
    "RouteSegment",
    "RouteStatus",
    "Campsite",
    "CampsiteAccess",
    "CampsiteContact",
    "CampsiteType",
    "FilteredCampsite",
    "FilterState",
    "SortKey",
    "ExportableInstruction",
    "ExportableMetadata",
    "ExportableRestrictions",
    "ExportableRoute",
    "ExportableTrack",
    "ExportableTrackPoint",
    "ExportableTrackSegment",
    "ExportableWaypoint",
    "ExportFormat",
    "ExportFormatInfo",
    "ExportOptions",
    "ExportResult",
    "ImportResult",
]
