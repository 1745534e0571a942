"""Input models for route planning requests."""

from enum import Enum

from pydantic import BaseModel, Field


class WaypointRole(str, Enum):
    """Role of a stop within the trip."""
    START = "start"
    INTERMEDIATE = "intermediate"
    END = "end"
    POI = "poi"


class Waypoint(BaseModel):
    """An ordered stop chosen by the user.

    Coordinates are not range-checked here; the routing service
    validates them and reports a typed error.
    """

    id: str
    name: str
    lat: float
    lng: float
    type: WaypointRole = WaypointRole.INTERMEDIATE
    notes: str | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "wp-1",
                "name": "Paris",
                "lat": 48.8566,
                "lng": 2.3522,
                "type": "start",
            }
        }


class VehicleType(str, Enum):
    """Kinds of camper vehicles."""
    MOTORHOME = "motorhome"
    CARAVAN = "caravan"
    CAMPERVAN = "campervan"


class VehicleProfile(BaseModel):
    """Physical dimensions of the vehicle being routed."""

    height: float = Field(..., description="Height in meters")
    width: float = Field(..., description="Width in meters")
    length: float = Field(..., description="Length in meters")
    weight: float = Field(..., description="Gross weight in tonnes")
    vehicle_type: VehicleType | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "height": 3.1,
                "width": 2.3,
                "length": 7.4,
                "weight": 3.5,
                "vehicle_type": "motorhome",
            }
        }


class RoutingProfile(str, Enum):
    """Routing profiles understood by the primary provider."""
    DRIVING_CAR = "driving-car"
    DRIVING_HGV = "driving-hgv"


class RouteOptions(BaseModel):
    """Optional knobs for a routing request."""

    profile: RoutingProfile | None = Field(
        default=None,
        description="Force a routing profile instead of inferring it from the vehicle"
    )
    avoid_features: list[str] = Field(
        default_factory=list,
        description="Features to avoid (e.g. 'highways', 'ferries', 'tollways')"
    )
    alternative_routes: bool = True
    elevation: bool = True
    instructions: bool = True


class RouteRequest(BaseModel):
    """The original query, kept in route metadata."""

    waypoints: list[Waypoint]
    vehicle_profile: VehicleProfile | None = None
    options: RouteOptions = Field(default_factory=RouteOptions)
