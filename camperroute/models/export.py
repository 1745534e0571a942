"""Models used when serializing a route to a file format."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .request import VehicleProfile, Waypoint, WaypointRole
from .response import BoundingBox


class ExportFormat(str, Enum):
    GPX = "gpx"
    KML = "kml"
    JSON = "json"
    CSV = "csv"


class ExportFormatInfo(BaseModel):
    format: ExportFormat
    mime_type: str
    extension: str
    supports_elevation: bool
    supports_instructions: bool


class ExportOptions(BaseModel):
    """What to include in an export."""
    include_waypoints: bool = True
    include_track_points: bool = True
    include_instructions: bool = True
    include_elevation: bool = True
    include_metadata: bool = True
    creator: str | None = None
    description: str | None = None


class ExportableWaypoint(BaseModel):
    id: str
    name: str
    description: str | None = None
    lat: float
    lng: float
    elevation: float | None = None
    type: WaypointRole
    order: int


class ExportableTrackPoint(BaseModel):
    lat: float
    lng: float
    elevation: float | None = None
    time: datetime | None = None
    distance: float = Field(0, description="Cumulative meters from the route start")


class ExportableInstruction(BaseModel):
    distance: float
    duration: float
    instruction: str
    direction: str | None = None
    street_name: str | None = None
    coordinates: tuple[float, float] | None = Field(
        default=None,
        description="(lng, lat) of the maneuver"
    )


class ExportableTrackSegment(BaseModel):
    points: list[ExportableTrackPoint] = Field(default_factory=list)
    distance: float
    duration: float
    instructions: list[ExportableInstruction] = Field(default_factory=list)


class ExportableTrack(BaseModel):
    name: str
    segments: list[ExportableTrackSegment]
    total_distance: float
    total_duration: float
    bounds: BoundingBox


class ExportableRestrictions(BaseModel):
    violated_dimensions: list[str]
    warnings: list[str] = Field(default_factory=list)


class ExportableMetadata(BaseModel):
    creator: str
    version: str
    timestamp: datetime
    service: str
    profile: str
    vehicle_profile: VehicleProfile | None = None
    restrictions: ExportableRestrictions | None = None


class ExportableRoute(BaseModel):
    """Format-agnostic view of a route, built only when exporting."""
    id: str
    name: str
    description: str
    waypoints: list[ExportableWaypoint]
    track: ExportableTrack
    metadata: ExportableMetadata


class ExportResult(BaseModel):
    """Outcome of serializing one format."""
    success: bool
    format: ExportFormat
    content: str | None = None
    filename: str | None = None
    mime_type: str | None = None
    byte_size: int | None = None
    error: str | None = None


class ImportResult(BaseModel):
    """Stops recovered from a previously exported file."""
    format: ExportFormat
    name: str | None = None
    waypoints: list[Waypoint] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
