"""Routing providers: OpenRouteService (primary) and OSRM (fallback).

Each provider talks to one HTTP API and maps its response into
RouteAlternative objects. Nothing outside this module knows the wire
formats.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

import httpx

from camperroute.config import Settings, settings as default_settings
from camperroute.exceptions import RoutingError, RoutingErrorCode
from camperroute.models import (
    Instruction,
    RouteAlternative,
    RouteRequest,
    RouteSegment,
    RoutingProfile,
)

logger = logging.getLogger(__name__)

# Alternative routes are only offered by ORS for exactly two waypoints
ORS_ALTERNATIVES = {
    "target_count": 2,
    "weight_factor": 1.4,
    "share_factor": 0.6,
}


class RoutingProvider(Protocol):
    """Anything that can turn a request into route alternatives."""

    name: str
    attribution: str

    async def route(self, request: RouteRequest, profile: str) -> list[RouteAlternative]:
        ...


class _HTTPProvider:
    """Shared HTTP plumbing. An injected client is reused and never closed."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        user_agent: str,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        headers = {"User-Agent": self.user_agent, **kwargs.pop("headers", {})}
        try:
            async with self._session() as client:
                response = await client.request(
                    method, url, headers=headers, timeout=self.timeout, **kwargs
                )
        except httpx.HTTPError as e:
            logger.warning("%s request failed: %s", self.name, e)
            raise RoutingError(
                f"{self.name} request failed: {e}",
                RoutingErrorCode.PROVIDER_ERROR,
                self.name,
            ) from e

        if response.status_code != 200:
            logger.warning(
                "%s returned status=%s body=%s",
                self.name, response.status_code, response.text[:200],
            )
            raise RoutingError(
                f"{self.name} error: HTTP {response.status_code}",
                RoutingErrorCode.PROVIDER_ERROR,
                self.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RoutingError(
                f"{self.name} returned invalid JSON",
                RoutingErrorCode.PROVIDER_ERROR,
                self.name,
            ) from e

        if not isinstance(data, dict):
            raise self._malformed(TypeError(f"expected a JSON object, got {type(data).__name__}"))
        return data

    def _malformed(self, error: Exception) -> RoutingError:
        logger.warning("%s response could not be parsed: %s", self.name, error)
        return RoutingError(
            f"Unexpected {self.name} response format",
            RoutingErrorCode.PROVIDER_ERROR,
            self.name,
        )


class OpenRouteServiceProvider(_HTTPProvider):
    """Primary provider with vehicle dimension support."""

    name = "openrouteservice"
    attribution = "openrouteservice.org | OpenStreetMap contributors"

    def __init__(
        self,
        api_key: str | None = None,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = settings or default_settings
        super().__init__(
            settings.ors_base_url,
            settings.routing_timeout,
            settings.user_agent,
            client,
        )
        self.api_key = api_key if api_key is not None else settings.openrouteservice_api_key

    def build_body(self, request: RouteRequest, profile: str) -> dict[str, Any]:
        """Build the ORS directions request body."""
        options = request.options
        body: dict[str, Any] = {
            "coordinates": [[wp.lng, wp.lat] for wp in request.waypoints],
            "geometry": True,
            "instructions": options.instructions,
            "elevation": options.elevation,
        }

        ors_options: dict[str, Any] = {}
        vehicle = request.vehicle_profile

        # Dimension restrictions are only accepted for the HGV profile
        if vehicle and profile == RoutingProfile.DRIVING_HGV.value:
            ors_options["vehicle_type"] = "hgv"
            ors_options["profile_params"] = {
                "restrictions": {
                    "height": vehicle.height,
                    "width": vehicle.width,
                    "length": vehicle.length,
                    "weight": vehicle.weight,
                    "axleload": round(vehicle.weight / 2, 1),
                    "hazmat": False,
                }
            }

        if options.avoid_features:
            ors_options["avoid_features"] = list(options.avoid_features)

        if ors_options:
            body["options"] = ors_options

        if options.alternative_routes and len(request.waypoints) == 2:
            body["alternative_routes"] = dict(ORS_ALTERNATIVES)

        return body

    async def route(self, request: RouteRequest, profile: str) -> list[RouteAlternative]:
        if not self.api_key:
            raise RoutingError(
                "OpenRouteService API key not configured",
                RoutingErrorCode.PROVIDER_ERROR,
                self.name,
            )

        data = await self._send(
            "POST",
            f"{self.base_url}/directions/{profile}/geojson",
            json=self.build_body(request, profile),
            headers={
                "Authorization": self.api_key,
                "Accept": "application/json, application/geo+json",
            },
        )

        try:
            routes = [self._parse_feature(feature) for feature in data.get("features") or []]
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            raise self._malformed(e) from e

        if not routes:
            raise RoutingError("No route found", RoutingErrorCode.NO_ROUTE, self.name)

        logger.info("openrouteservice returned %d route(s)", len(routes))
        return routes

    @staticmethod
    def _parse_feature(feature: dict[str, Any]) -> RouteAlternative:
        coordinates = feature["geometry"]["coordinates"]
        props = feature.get("properties") or {}
        # ORS omits the summary totals for zero-length routes
        summary = props.get("summary") or {}

        segments = []
        for segment in props.get("segments") or []:
            instructions = []
            for step in segment.get("steps") or []:
                location = None
                way_points = step.get("way_points") or []
                if way_points and 0 <= way_points[0] < len(coordinates):
                    vertex = coordinates[way_points[0]]
                    location = (vertex[0], vertex[1])
                instructions.append(Instruction(
                    distance=step.get("distance", 0),
                    duration=step.get("duration", 0),
                    text=step.get("instruction", ""),
                    street_name=step.get("name") or None,
                    location=location,
                ))
            segments.append(RouteSegment(
                distance=segment.get("distance", 0),
                duration=segment.get("duration", 0),
                instructions=instructions,
            ))

        return RouteAlternative(
            coordinates=coordinates,
            distance=summary.get("distance", 0),
            duration=summary.get("duration", 0),
            segments=segments,
            waypoint_indices=props.get("way_points") or [],
        )

    async def health_check(self) -> bool:
        """Check if OpenRouteService answers."""
        try:
            async with self._session() as client:
                response = await client.get(
                    f"{self.base_url}/health",
                    headers={"User-Agent": self.user_agent},
                    timeout=5.0,
                )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("openrouteservice health check failed: %s", e)
            return False


class OSRMProvider(_HTTPProvider):
    """Fallback provider: generic driving routes, no vehicle semantics."""

    name = "osrm"
    attribution = "OpenStreetMap contributors | OSRM"

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = settings or default_settings
        super().__init__(
            settings.osrm_base_url,
            settings.fallback_timeout,
            settings.user_agent,
            client,
        )

    async def route(self, request: RouteRequest, profile: str) -> list[RouteAlternative]:
        # OSRM uses lon,lat order
        coords = ";".join(f"{wp.lng},{wp.lat}" for wp in request.waypoints)

        data = await self._send(
            "GET",
            f"{self.base_url}/route/v1/driving/{coords}",
            params={
                "overview": "full",
                "geometries": "geojson",
                "steps": "true",
            },
        )

        code = data.get("code", "")
        if code != "Ok":
            error_code = RoutingErrorCode.NO_ROUTE if code == "NoRoute" else RoutingErrorCode.PROVIDER_ERROR
            raise RoutingError(
                f"OSRM {code}: {data.get('message', '')}".strip(),
                error_code,
                self.name,
            )

        try:
            routes = [
                self._parse_route(route, data.get("waypoints") or [])
                for route in data.get("routes") or []
            ]
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            raise self._malformed(e) from e

        if not routes:
            raise RoutingError("No route found", RoutingErrorCode.NO_ROUTE, self.name)

        logger.info("osrm returned %d route(s)", len(routes))
        return routes

    @classmethod
    def _parse_route(cls, route: dict[str, Any], waypoints: list[dict[str, Any]]) -> RouteAlternative:
        coordinates = route["geometry"]["coordinates"]

        segments = []
        for leg in route.get("legs") or []:
            instructions = []
            for step in leg.get("steps") or []:
                maneuver = step.get("maneuver") or {}
                location = maneuver.get("location")
                instructions.append(Instruction(
                    distance=step.get("distance", 0),
                    duration=step.get("duration", 0),
                    text=cls.describe_maneuver(maneuver, step.get("name", "")),
                    street_name=step.get("name") or None,
                    location=(location[0], location[1]) if location else None,
                ))
            segments.append(RouteSegment(
                distance=leg.get("distance", 0),
                duration=leg.get("duration", 0),
                instructions=instructions,
            ))

        return RouteAlternative(
            coordinates=coordinates,
            distance=route.get("distance", 0),
            duration=route.get("duration", 0),
            segments=segments,
            waypoint_indices=[
                cls._nearest_vertex(coordinates, wp["location"])
                for wp in waypoints
                if wp.get("location")
            ],
        )

    @staticmethod
    def describe_maneuver(maneuver: dict[str, Any], street: str) -> str:
        """Human-readable text for an OSRM maneuver, which carries none."""
        kind = maneuver.get("type", "")
        modifier = maneuver.get("modifier", "")

        if kind == "depart":
            text = f"Head {modifier}".strip() if modifier else "Depart"
        elif kind == "arrive":
            return "Arrive at destination"
        elif kind in ("turn", "end of road", "fork", "merge", "on ramp", "off ramp"):
            text = f"{kind.capitalize()} {modifier}".strip()
        elif kind in ("roundabout", "rotary"):
            exit_number = maneuver.get("exit")
            text = f"Enter the roundabout and take exit {exit_number}" if exit_number else "Enter the roundabout"
        else:
            text = "Continue"

        return f"{text} onto {street}" if street else text

    @staticmethod
    def _nearest_vertex(coordinates: list[list[float]], location: list[float]) -> int:
        return min(
            range(len(coordinates)),
            key=lambda i: (coordinates[i][0] - location[0]) ** 2 + (coordinates[i][1] - location[1]) ** 2,
        )
