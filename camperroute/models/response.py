"""Output models for route computation."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .request import RouteRequest


class BoundingBox(BaseModel):
    """Geographic bounds in degrees."""
    north: float
    south: float
    east: float
    west: float


class Instruction(BaseModel):
    """A single turn instruction within a route segment."""

    distance: float = Field(..., ge=0, description="Meters")
    duration: float = Field(..., ge=0, description="Seconds")
    text: str
    street_name: str | None = None
    location: tuple[float, float] | None = Field(
        default=None,
        description="Where the maneuver happens, as (lng, lat)"
    )


class RouteSegment(BaseModel):
    """The part of a route between two consecutive waypoints."""

    distance: float = Field(..., ge=0)
    duration: float = Field(..., ge=0)
    instructions: list[Instruction] = Field(default_factory=list)


class RouteAlternative(BaseModel):
    """One drivable route geometry with its totals."""

    coordinates: list[list[float]] = Field(
        ...,
        description="Polyline as [lng, lat] or [lng, lat, elevation]"
    )
    distance: float = Field(..., ge=0, description="Meters")
    duration: float = Field(..., ge=0, description="Seconds")
    segments: list[RouteSegment] = Field(default_factory=list)
    waypoint_indices: list[int] = Field(default_factory=list)
    distance_ratio: float | None = Field(
        default=None,
        description="Distance relative to the primary route (alternatives only)"
    )
    duration_ratio: float | None = None


class RouteRestrictions(BaseModel):
    """Mismatch between the vehicle and legal road-use limits."""

    violated_dimensions: list[str] = Field(default_factory=list)
    cannot_accommodate: bool = False
    suggested_actions: list[str] = Field(default_factory=list)


class RouteStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ProviderRole(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class RouteMetadata(BaseModel):
    """Where a route came from."""

    service: str
    provider_role: ProviderRole
    profile: str
    timestamp: datetime
    query: RouteRequest
    attribution: str = ""


class CanonicalRoute(BaseModel):
    """Provider-independent result of a route computation."""

    id: str
    status: RouteStatus = RouteStatus.SUCCESS
    routes: list[RouteAlternative] = Field(..., min_length=1)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    restrictions: RouteRestrictions | None = None
    metadata: RouteMetadata

    @property
    def primary(self) -> RouteAlternative:
        return self.routes[0]

    @property
    def alternatives(self) -> list[RouteAlternative]:
        return self.routes[1:]
