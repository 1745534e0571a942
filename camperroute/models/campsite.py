"""Campsite catalog and filter models."""

from enum import Enum

from pydantic import BaseModel, Field


class CampsiteType(str, Enum):
    """Categories of overnight spots."""
    CAMPSITE = "campsite"
    AIRE = "aire"
    PARKING = "parking"
    CARAVAN_SITE = "caravan_site"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class CampsiteAccess(BaseModel):
    """Which vehicle classes may use the site, and any posted limits."""
    motorhome: bool = False
    caravan: bool = False
    tent: bool = False
    max_height: float | None = None
    max_length: float | None = None
    max_weight: float | None = None


class CampsiteContact(BaseModel):
    phone: str | None = None
    website: str | None = None
    email: str | None = None


class Campsite(BaseModel):
    """A campsite as sourced from the catalog. Never modified by filtering."""

    id: int | str
    type: CampsiteType
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    amenities: dict[str, bool] | None = Field(
        default=None,
        description="Amenity flags; None when the source has no amenity data"
    )
    access: CampsiteAccess = Field(default_factory=CampsiteAccess)
    vehicle_compatible: bool = False
    contact: CampsiteContact = Field(default_factory=CampsiteContact)
    address: str | None = None
    opening_hours: str | None = None
    fee: str | None = None
    reservation: str | None = None
    source: str = "openstreetmap"

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": 123456,
                "type": "campsite",
                "name": "Camping du Lac",
                "lat": 45.9,
                "lng": 6.12,
                "amenities": {"toilets": True, "showers": True, "electricity": True},
                "access": {"motorhome": True, "caravan": True, "tent": True},
                "vehicle_compatible": True,
                "contact": {"phone": "+33 4 50 00 00 00"},
                "opening_hours": "Apr-Oct 08:00-20:00",
            }
        }


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    DISTANCE = "distance"
    NAME = "name"
    # Aliases relevance until a rating system exists
    RATING = "rating"


class FilterState(BaseModel):
    """Configuration consumed by the campsite filter pipeline."""

    visible_types: set[CampsiteType] = Field(
        default_factory=lambda: set(CampsiteType),
        description="Types to show; an empty set shows nothing"
    )
    amenities: dict[str, bool] = Field(
        default_factory=dict,
        description="Amenities flagged True are all required"
    )
    vehicle_compatible_only: bool = False
    route_only_mode: bool = False
    max_distance_from_route: float = Field(default=10.0, ge=0, description="Kilometers")
    search_query: str = ""
    search_location: str = ""
    open_now: bool = False
    free_only: bool = False
    accepts_reservations: bool = False
    sort_by: SortKey = SortKey.RELEVANCE
    max_results: int = Field(default=50, ge=0)


class FilteredCampsite(BaseModel):
    """A ranked view over a catalog entry."""

    campsite: Campsite
    route_distance: float | None = Field(default=None, description="Kilometers to the route")
    search_score: float = 0
    relevance_score: float = 0
    distance_from_center: float | None = Field(default=None, description="Kilometers")
