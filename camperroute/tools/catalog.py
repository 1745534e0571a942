"""Campsite catalog loading from OpenStreetMap (Overpass API) or JSON files."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable

import httpx
from pydantic import ValidationError

from camperroute.config import Settings, settings as default_settings
from camperroute.exceptions import CatalogError
from camperroute.models import (
    BoundingBox,
    Campsite,
    CampsiteAccess,
    CampsiteContact,
    CampsiteType,
    VehicleProfile,
    VehicleType,
)

logger = logging.getLogger(__name__)

# Overpass rejects or times out on larger areas
MAX_BBOX_SPAN_DEGREES = 5
MAX_ELEMENTS = 1000

AMENITY_TAGS = {
    "toilets": "toilets",
    "showers": "shower",
    "drinking_water": "drinking_water",
    "electricity": "electricity",
    "wifi": "internet_access",
    "restaurant": "restaurant",
    "shop": "shop",
    "playground": "playground",
    "laundry": "laundry",
    "swimming_pool": "swimming_pool",
    "sanitary_dump_station": "sanitary_dump_station",
    "waste_disposal": "waste_disposal",
    "hot_water": "hot_water",
    "kitchen": "kitchen",
    "picnic_table": "picnic_table",
    "bbq": "bbq",
}

LIFECYCLE_TAGS = ("disused", "abandoned", "demolished", "tourism:disused")
DEAD_STATUSES = ("abandoned", "disused", "demolished")


def parse_osm_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1", "wlan", "wifi")
    return False


def parse_osm_number(value: Any) -> float | None:
    """Parse tags like '3.5', '3.5 m' or '7.5t'."""
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[^\d.]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def determine_campsite_type(tags: dict[str, str]) -> CampsiteType:
    if tags.get("tourism") == "camp_site":
        return CampsiteType.CAMPSITE
    if tags.get("tourism") == "caravan_site":
        return CampsiteType.CARAVAN_SITE
    if tags.get("amenity") == "parking" and (tags.get("motorhome") == "yes" or tags.get("caravan") == "yes"):
        return CampsiteType.AIRE
    if tags.get("highway") == "services" and tags.get("motorhome") == "yes":
        return CampsiteType.AIRE
    if tags.get("amenity") == "parking":
        return CampsiteType.PARKING
    return CampsiteType.CAMPSITE


def is_vehicle_compatible(access: CampsiteAccess, vehicle: VehicleProfile | None) -> bool:
    """
    Whether a vehicle may use a site.

    Without a vehicle, any site open to motorhomes or caravans qualifies.
    Posted limits are only enforced when present.
    """
    if vehicle is None:
        return access.motorhome or access.caravan

    if vehicle.vehicle_type == VehicleType.CARAVAN:
        if not access.caravan:
            return False
    elif not (access.motorhome or access.caravan):
        return False

    if access.max_height is not None and vehicle.height > access.max_height:
        return False
    if access.max_length is not None and vehicle.length > access.max_length:
        return False
    if access.max_weight is not None and vehicle.weight > access.max_weight:
        return False

    return True


def _format_address(tags: dict[str, str]) -> str | None:
    street = " ".join(p for p in (tags.get("addr:housenumber"), tags.get("addr:street")) if p)
    city = " ".join(p for p in (tags.get("addr:postcode"), tags.get("addr:city")) if p)
    parts = [p for p in (street, city, tags.get("addr:country")) if p]
    return ", ".join(parts) or None


def campsite_from_osm(
    element: dict[str, Any],
    vehicle: VehicleProfile | None = None,
) -> Campsite | None:
    """
    Convert an Overpass element into a Campsite.

    Returns None for elements without position or tags, and for sites
    tagged as disused or abandoned.
    """
    tags = element.get("tags")
    center = element.get("center") or {}
    lat = element.get("lat", center.get("lat"))
    lon = element.get("lon", center.get("lon"))

    if lat is None or lon is None or not tags:
        return None

    if any(tags.get(t) == "yes" for t in LIFECYCLE_TAGS) or tags.get("lifecycle_status") in DEAD_STATUSES:
        return None

    campsite_type = determine_campsite_type(tags)

    amenities = {name: parse_osm_boolean(tags.get(tag)) for name, tag in AMENITY_TAGS.items()}
    if tags.get("amenity") == "toilets":
        amenities["toilets"] = True
    if tags.get("amenity") == "restaurant":
        amenities["restaurant"] = True

    access = CampsiteAccess(
        motorhome=parse_osm_boolean(tags.get("motorhome")),
        caravan=parse_osm_boolean(tags.get("caravan")),
        tent=campsite_type == CampsiteType.CAMPSITE and tags.get("tents") != "no",
        max_height=parse_osm_number(tags.get("maxheight")),
        max_length=parse_osm_number(tags.get("maxlength")),
        max_weight=parse_osm_number(tags.get("maxweight")),
    )

    return Campsite(
        id=element["id"],
        type=campsite_type,
        name=tags.get("name") or tags.get("name:en") or f"{campsite_type.label} {element['id']}",
        lat=lat,
        lng=lon,
        amenities=amenities,
        access=access,
        vehicle_compatible=is_vehicle_compatible(access, vehicle),
        contact=CampsiteContact(
            phone=tags.get("phone") or tags.get("contact:phone"),
            website=tags.get("website") or tags.get("contact:website") or tags.get("url"),
            email=tags.get("email") or tags.get("contact:email"),
        ),
        address=_format_address(tags),
        opening_hours=tags.get("opening_hours"),
        fee=tags.get("fee"),
        reservation=tags.get("reservation"),
        source="openstreetmap",
    )


def build_overpass_query(
    bounds: BoundingBox,
    types: Iterable[CampsiteType] | None = None,
) -> str:
    """Overpass QL for campsites of the given types inside the bounds."""
    lat_span = bounds.north - bounds.south
    lng_span = bounds.east - bounds.west
    if lat_span > MAX_BBOX_SPAN_DEGREES or lng_span > MAX_BBOX_SPAN_DEGREES:
        raise CatalogError(
            f"Bounding box too large: {lat_span:.2f}° lat x {lng_span:.2f}° lng "
            f"(max {MAX_BBOX_SPAN_DEGREES}° each)"
        )

    types = set(types) if types is not None else set(CampsiteType)
    bbox = f"{bounds.south:.6f},{bounds.west:.6f},{bounds.north:.6f},{bounds.east:.6f}"

    selectors = []
    if CampsiteType.CAMPSITE in types:
        selectors.append('["tourism"="camp_site"]')
    if CampsiteType.CARAVAN_SITE in types:
        selectors.append('["tourism"="caravan_site"]')
    if CampsiteType.AIRE in types:
        selectors.append('["amenity"="parking"]["motorhome"="yes"]')
        selectors.append('["highway"="services"]["motorhome"="yes"]')
    if CampsiteType.PARKING in types:
        selectors.append('["amenity"="parking"]["caravan"="yes"]')

    if not selectors:
        selectors.append('["tourism"="camp_site"]')

    statements = "".join(
        f"{kind}{selector}({bbox});"
        for selector in selectors
        for kind in ("node", "way")
    )
    return f"[out:json][timeout:30];({statements});out center {MAX_ELEMENTS};"


async def fetch_campsites(
    bounds: BoundingBox,
    types: Iterable[CampsiteType] | None = None,
    vehicle: VehicleProfile | None = None,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[Campsite]:
    """
    Fetch campsites inside the bounds from the Overpass API.

    Raises:
        CatalogError: when the query is rejected or the API is unreachable.
    """
    settings = settings or default_settings
    query = build_overpass_query(bounds, types)

    async def _post(http: httpx.AsyncClient) -> httpx.Response:
        return await http.post(
            settings.overpass_url,
            data={"data": query},
            headers={"User-Agent": settings.user_agent},
            timeout=30.0,
        )

    try:
        if client is not None:
            response = await _post(client)
        else:
            async with httpx.AsyncClient() as http:
                response = await _post(http)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Overpass campsite query failed: %s", e)
        raise CatalogError(f"Failed to fetch campsites: {e}") from e

    campsites = []
    seen: set[int | str] = set()
    for element in data.get("elements", []):
        campsite = campsite_from_osm(element, vehicle)
        if campsite and campsite.id not in seen:
            seen.add(campsite.id)
            campsites.append(campsite)

    logger.info("Loaded %d campsites from Overpass", len(campsites))
    return campsites


def load_catalog(path: str | Path) -> list[Campsite]:
    """Read a JSON list of campsites."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return [Campsite.model_validate(entry) for entry in raw]
    except (OSError, ValueError, ValidationError) as e:
        raise CatalogError(f"Could not load campsite catalog {path}: {e}") from e
