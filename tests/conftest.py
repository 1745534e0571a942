"""
Pytest configuration and shared fixtures for camperroute tests.

This file provides:
- Paris -> Lyon -> Marseille waypoints and route geometry
- Mock OpenRouteService and OSRM responses
- A small campsite catalog along the route
- httpx clients backed by MockTransport (no network access)
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest

from camperroute.config import Settings
from camperroute.models import (
    Campsite,
    CampsiteAccess,
    CampsiteContact,
    CampsiteType,
    CanonicalRoute,
    Instruction,
    ProviderRole,
    RouteAlternative,
    RouteMetadata,
    RouteRequest,
    RouteSegment,
    VehicleProfile,
    Waypoint,
    WaypointRole,
)


ORS_BASE = "https://ors.test/v2"
OSRM_BASE = "https://osrm.test"
OVERPASS_URL = "https://overpass.test/api/interpreter"

# [lng, lat, elevation]: Paris, Auxerre, Beaune, Lyon, Orange, Marseille
ROUTE_COORDINATES = [
    [2.3522, 48.8566, 35.0],
    [3.5700, 47.8000, 120.0],
    [4.8400, 47.0200, 220.0],
    [4.8357, 45.7640, 170.0],
    [4.8100, 44.1400, 50.0],
    [5.3698, 43.2965, 12.0],
]


# ==============================================================================
# Configuration
# ==============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at fake hosts."""
    return Settings(
        openrouteservice_api_key="test-key",
        ors_base_url=ORS_BASE,
        osrm_base_url=OSRM_BASE,
        overpass_url=OVERPASS_URL,
        export_creator="Test Planner",
    )


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for AsyncClients answering through a handler function."""
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory


# ==============================================================================
# Waypoints and vehicles
# ==============================================================================

@pytest.fixture
def paris() -> Waypoint:
    return Waypoint(id="wp-paris", name="Paris", lat=48.8566, lng=2.3522, type=WaypointRole.START)


@pytest.fixture
def lyon() -> Waypoint:
    return Waypoint(id="wp-lyon", name="Lyon", lat=45.7640, lng=4.8357, type=WaypointRole.INTERMEDIATE)


@pytest.fixture
def marseille() -> Waypoint:
    return Waypoint(id="wp-marseille", name="Marseille", lat=43.2965, lng=5.3698, type=WaypointRole.END)


@pytest.fixture
def trip_waypoints(paris, lyon, marseille) -> list[Waypoint]:
    return [paris, lyon, marseille]


@pytest.fixture
def motorhome() -> VehicleProfile:
    """A typical large motorhome, routed as HGV but within EU limits."""
    return VehicleProfile(height=3.2, width=2.35, length=7.5, weight=4.2, vehicle_type="motorhome")


@pytest.fixture
def campervan() -> VehicleProfile:
    """A van small enough for the car profile."""
    return VehicleProfile(height=2.4, width=2.0, length=5.5, weight=3.0, vehicle_type="campervan")


# ==============================================================================
# Provider responses
# ==============================================================================

@pytest.fixture
def ors_response() -> dict[str, Any]:
    """OpenRouteService GeoJSON response for Paris -> Lyon -> Marseille."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": ROUTE_COORDINATES},
                "properties": {
                    "summary": {"distance": 775000.0, "duration": 27900.0},
                    "segments": [
                        {
                            "distance": 465000.0,
                            "duration": 16500.0,
                            "steps": [
                                {
                                    "distance": 1200.0,
                                    "duration": 90.0,
                                    "type": 11,
                                    "instruction": "Head south on Boulevard de Sébastopol",
                                    "name": "Boulevard de Sébastopol",
                                    "way_points": [0, 1],
                                },
                                {
                                    "distance": 463800.0,
                                    "duration": 16410.0,
                                    "type": 6,
                                    "instruction": "Continue straight onto A6",
                                    "name": "A6",
                                    "way_points": [1, 3],
                                },
                                {
                                    "distance": 0.0,
                                    "duration": 0.0,
                                    "type": 10,
                                    "instruction": "Arrive at Lyon",
                                    "name": "-",
                                    "way_points": [3, 3],
                                },
                            ],
                        },
                        {
                            "distance": 310000.0,
                            "duration": 11400.0,
                            "steps": [
                                {
                                    "distance": 310000.0,
                                    "duration": 11400.0,
                                    "type": 11,
                                    "instruction": "Head south on A7",
                                    "name": "A7",
                                    "way_points": [3, 5],
                                },
                                {
                                    "distance": 0.0,
                                    "duration": 0.0,
                                    "type": 10,
                                    "instruction": "Arrive at Marseille",
                                    "name": "-",
                                    "way_points": [5, 5],
                                },
                            ],
                        },
                    ],
                    "way_points": [0, 3, 5],
                },
            }
        ],
    }


@pytest.fixture
def ors_alternatives_response() -> dict[str, Any]:
    """Paris -> Lyon with one detour alternative 1.6x as long."""
    def feature(coordinates, distance, duration):
        return {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": coordinates},
            "properties": {
                "summary": {"distance": distance, "duration": duration},
                "segments": [{"distance": distance, "duration": duration, "steps": []}],
                "way_points": [0, len(coordinates) - 1],
            },
        }

    return {
        "type": "FeatureCollection",
        "features": [
            feature(ROUTE_COORDINATES[:4], 465000.0, 16500.0),
            feature([ROUTE_COORDINATES[0], [1.9, 47.9], [3.0, 46.3], ROUTE_COORDINATES[3]], 744000.0, 26000.0),
        ],
    }


@pytest.fixture
def osrm_response() -> dict[str, Any]:
    """OSRM route response for Paris -> Lyon -> Marseille."""
    return {
        "code": "Ok",
        "routes": [
            {
                "geometry": {"type": "LineString", "coordinates": [c[:2] for c in ROUTE_COORDINATES]},
                "distance": 772000.0,
                "duration": 27000.0,
                "legs": [
                    {
                        "distance": 463000.0,
                        "duration": 16000.0,
                        "steps": [
                            {
                                "distance": 800.0,
                                "duration": 60.0,
                                "name": "Rue de Rivoli",
                                "maneuver": {"type": "depart", "location": [2.3522, 48.8566]},
                            },
                            {
                                "distance": 0.0,
                                "duration": 0.0,
                                "name": "",
                                "maneuver": {"type": "arrive", "location": [4.8357, 45.764]},
                            },
                        ],
                    },
                    {
                        "distance": 309000.0,
                        "duration": 11000.0,
                        "steps": [
                            {
                                "distance": 309000.0,
                                "duration": 11000.0,
                                "name": "A7",
                                "maneuver": {"type": "turn", "modifier": "left", "location": [4.8357, 45.764]},
                            },
                        ],
                    },
                ],
            }
        ],
        "waypoints": [
            {"location": [2.3522, 48.8566]},
            {"location": [4.8357, 45.764]},
            {"location": [5.3698, 43.2965]},
        ],
    }


# ==============================================================================
# Canonical route (no provider involved)
# ==============================================================================

@pytest.fixture
def sample_route(trip_waypoints, motorhome) -> CanonicalRoute:
    """A primary-provider route as produced by the routing service."""
    return CanonicalRoute(
        id="openrouteservice_abc123def456",
        routes=[
            RouteAlternative(
                coordinates=ROUTE_COORDINATES,
                distance=775000.0,
                duration=27900.0,
                segments=[
                    RouteSegment(
                        distance=465000.0,
                        duration=16500.0,
                        instructions=[
                            Instruction(
                                distance=1200.0,
                                duration=90.0,
                                text="Head south on Boulevard de Sébastopol",
                                street_name="Boulevard de Sébastopol",
                                location=(2.3522, 48.8566),
                            ),
                        ],
                    ),
                    RouteSegment(
                        distance=310000.0,
                        duration=11400.0,
                        instructions=[
                            Instruction(
                                distance=310000.0,
                                duration=11400.0,
                                text="Head south on A7",
                                street_name="A7",
                                location=(4.8357, 45.764),
                            ),
                        ],
                    ),
                ],
                waypoint_indices=[0, 3, 5],
            )
        ],
        metadata=RouteMetadata(
            service="openrouteservice",
            provider_role=ProviderRole.PRIMARY,
            profile="driving-hgv",
            timestamp=datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc),
            query=RouteRequest(waypoints=trip_waypoints, vehicle_profile=motorhome),
            attribution="openrouteservice.org | OpenStreetMap contributors",
        ),
    )


# ==============================================================================
# Campsites
# ==============================================================================

@pytest.fixture
def campsites() -> list[Campsite]:
    """Catalog in source order; ties keep this order."""
    return [
        Campsite(
            id=1,
            type=CampsiteType.CAMPSITE,
            name="Camping du Lac",
            lat=45.78,
            lng=4.87,
            amenities={"toilets": True, "showers": True, "electricity": True},
            access=CampsiteAccess(motorhome=True, caravan=True, tent=True),
            vehicle_compatible=True,
            contact=CampsiteContact(phone="+33 4 72 00 00 00"),
            address="Chemin du Lac, 69000 Lyon",
            opening_hours="08:00-20:00",
        ),
        Campsite(
            id=2,
            type=CampsiteType.AIRE,
            name="Aire de Beaune",
            lat=47.03,
            lng=4.85,
            amenities={"toilets": True, "drinking_water": True},
            access=CampsiteAccess(motorhome=True),
            vehicle_compatible=True,
            address="Avenue Charles de Gaulle, 21200 Beaune",
            fee="no",
        ),
        Campsite(
            id=3,
            type=CampsiteType.PARKING,
            name="Parking du Vieux Port",
            lat=43.30,
            lng=5.37,
            vehicle_compatible=False,
            address="Quai du Port, 13002 Marseille",
        ),
        Campsite(
            id=4,
            type=CampsiteType.CAMPSITE,
            name="Camping Les Pins",
            lat=43.60,
            lng=1.44,
            amenities={"toilets": True, "showers": True, "wifi": True},
            access=CampsiteAccess(motorhome=True, caravan=True, tent=True),
            vehicle_compatible=True,
            address="Route de Narbonne, 31000 Toulouse",
        ),
        Campsite(
            id=5,
            type=CampsiteType.CARAVAN_SITE,
            name="Caravan Park Orange",
            lat=44.15,
            lng=4.82,
            amenities={"toilets": True, "showers": False},
            access=CampsiteAccess(caravan=True),
            vehicle_compatible=True,
            address="Chemin des Vignes, 84100 Orange",
            reservation="yes",
        ),
    ]


@pytest.fixture
def catalog_file(tmp_path, campsites):
    """The campsite catalog written as a JSON file."""
    path = tmp_path / "campsites.json"
    path.write_text(json.dumps([c.model_dump(mode="json") for c in campsites]), encoding="utf-8")
    return path
