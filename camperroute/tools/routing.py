"""Vehicle-aware route computation with OpenRouteService and OSRM fallback."""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum

from camperroute.config import Settings, settings as default_settings
from camperroute.exceptions import RoutingError, RoutingErrorCode
from camperroute.models import (
    CanonicalRoute,
    ProviderRole,
    RouteAlternative,
    RouteMetadata,
    RouteOptions,
    RouteRequest,
    RouteRestrictions,
    RouteStatus,
    RoutingProfile,
    VehicleProfile,
    Waypoint,
)

from .providers import OpenRouteServiceProvider, OSRMProvider, RoutingProvider

logger = logging.getLogger(__name__)

MIN_WAYPOINTS = 2
MAX_WAYPOINTS = 50

# Accepted input ranges: (exclusive lower bound, inclusive upper bound, unit)
VEHICLE_LIMITS = {
    "height": (0, 4.5, "meters"),
    "width": (0, 3.0, "meters"),
    "weight": (0, 40, "tonnes"),
    "length": (0, 20, "meters"),
}

# EU maxima for unrestricted road use
EU_LIMITS = {
    "height": 4.0,
    "width": 2.55,
    "weight": 40,
    "length": 18.75,
}

# Above any of these the vehicle is routed as a heavy goods vehicle
HGV_THRESHOLDS = {
    "height": 2.5,
    "width": 2.2,
    "weight": 3.5,
    "length": 7.0,
}

RESTRICTION_ADVICE = {
    "height": "consider a route that avoids low bridges and tunnels",
    "width": "consider a route that avoids narrow roads and village centres",
    "weight": "consider a route that avoids weight-restricted bridges",
    "length": "consider a route that avoids tight hairpins and mountain passes",
}

UNITS = {"height": "m", "width": "m", "weight": "t", "length": "m"}

# Alternatives longer than this multiple of the primary get a warning
ALTERNATIVE_LENGTH_WARNING_RATIO = 1.5

# At least this many violated dimensions make the vehicle inadmissible
CANNOT_ACCOMMODATE_VIOLATIONS = 2


class ProviderState(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


def validate_route_request(
    waypoints: list[Waypoint],
    vehicle_profile: VehicleProfile | None = None,
) -> None:
    """Reject malformed requests before any provider is contacted."""
    if not waypoints or len(waypoints) < MIN_WAYPOINTS:
        raise RoutingError(
            f"At least {MIN_WAYPOINTS} waypoints are required",
            RoutingErrorCode.INVALID_WAYPOINTS,
            "validation",
            recoverable=False,
        )

    if len(waypoints) > MAX_WAYPOINTS:
        raise RoutingError(
            f"Maximum {MAX_WAYPOINTS} waypoints allowed",
            RoutingErrorCode.TOO_MANY_WAYPOINTS,
            "validation",
            recoverable=False,
        )

    for wp in waypoints:
        if not (-90 <= wp.lat <= 90 and -180 <= wp.lng <= 180):
            raise RoutingError(
                f"Invalid coordinates: {wp.lat}, {wp.lng}",
                RoutingErrorCode.INVALID_COORDINATES,
                "validation",
                recoverable=False,
            )

    if vehicle_profile:
        for dimension, (low, high, unit) in VEHICLE_LIMITS.items():
            value = getattr(vehicle_profile, dimension)
            if value <= low or value > high:
                raise RoutingError(
                    f"Vehicle {dimension} must be between {low} and {high} {unit}",
                    RoutingErrorCode.INVALID_VEHICLE,
                    "validation",
                    recoverable=False,
                )


def determine_profile(
    vehicle_profile: VehicleProfile | None = None,
    requested_profile: RoutingProfile | None = None,
) -> str:
    """Pick the routing profile; an explicitly requested one always wins."""
    if requested_profile:
        return RoutingProfile(requested_profile).value

    if not vehicle_profile:
        return RoutingProfile.DRIVING_CAR.value

    for dimension, threshold in HGV_THRESHOLDS.items():
        if getattr(vehicle_profile, dimension) > threshold:
            return RoutingProfile.DRIVING_HGV.value

    return RoutingProfile.DRIVING_CAR.value


def detect_restrictions(vehicle_profile: VehicleProfile | None) -> RouteRestrictions | None:
    """
    Compare a vehicle with EU road limits.

    Returns None when every dimension is within limits.
    """
    if not vehicle_profile:
        return None

    restrictions = RouteRestrictions()

    for dimension, limit in EU_LIMITS.items():
        value = getattr(vehicle_profile, dimension)
        if value > limit:
            unit = UNITS[dimension]
            restrictions.violated_dimensions.append(dimension)
            restrictions.suggested_actions.append(
                f"Vehicle {dimension} {value}{unit} exceeds EU limit of {limit}{unit}: "
                f"{RESTRICTION_ADVICE[dimension]}"
            )

    if not restrictions.violated_dimensions:
        return None

    restrictions.cannot_accommodate = (
        len(restrictions.violated_dimensions) >= CANNOT_ACCOMMODATE_VIOLATIONS
    )
    return restrictions


def compare_alternatives(routes: list[RouteAlternative]) -> tuple[list[RouteAlternative], list[str]]:
    """Annotate alternatives with ratios to the primary and warn about long ones."""
    if len(routes) < 2:
        return routes, []

    primary = routes[0]
    warnings = []
    annotated = [primary]

    for index, alternative in enumerate(routes[1:], start=1):
        distance_ratio = alternative.distance / primary.distance if primary.distance else None
        duration_ratio = alternative.duration / primary.duration if primary.duration else None
        annotated.append(alternative.model_copy(update={
            "distance_ratio": distance_ratio,
            "duration_ratio": duration_ratio,
        }))

        if distance_ratio is not None and distance_ratio > ALTERNATIVE_LENGTH_WARNING_RATIO:
            warnings.append(
                f"Alternative route {index} is {(distance_ratio - 1) * 100:.0f}% longer than "
                "the main route - possible vehicle restrictions on the main route"
            )

    return annotated, warnings


class RoutingService:
    """
    Computes vehicle-aware routes.

    Calls the primary provider and, only if it fails, the fallback. The two
    are never called concurrently and nothing is retried here.
    """

    def __init__(
        self,
        primary: RoutingProvider | None = None,
        fallback: RoutingProvider | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or default_settings
        self.primary = primary or OpenRouteServiceProvider(settings=settings)
        self.fallback = fallback or OSRMProvider(settings=settings)

    async def compute_route(
        self,
        waypoints: list[Waypoint],
        vehicle_profile: VehicleProfile | None = None,
        options: RouteOptions | None = None,
    ) -> CanonicalRoute:
        """
        Calculate a route through the waypoints for the given vehicle.

        Raises:
            RoutingError: on invalid input, or when every provider failed.
        """
        validate_route_request(waypoints, vehicle_profile)

        options = options or RouteOptions()
        request = RouteRequest(
            waypoints=list(waypoints),
            vehicle_profile=vehicle_profile,
            options=options,
        )
        profile = determine_profile(vehicle_profile, options.profile)

        state = ProviderState.PRIMARY
        warnings: list[str] = []

        try:
            routes = await self.primary.route(request, profile)
            provider = self.primary
        except RoutingError as primary_error:
            logger.warning(
                "Primary routing via %s failed (%s), trying fallback %s",
                self.primary.name, primary_error.message, self.fallback.name,
            )
            state = ProviderState.FALLBACK
            try:
                routes = await self.fallback.route(request, profile)
                provider = self.fallback
            except RoutingError as fallback_error:
                logger.error("Fallback routing via %s also failed: %s", self.fallback.name, fallback_error.message)
                raise RoutingError(
                    "All routing services are currently unavailable",
                    RoutingErrorCode.SERVICE_UNAVAILABLE,
                    "all",
                    recoverable=False,
                ) from fallback_error

            warnings.append("Primary routing service unavailable, using fallback")
            if vehicle_profile:
                warnings.append(
                    "Vehicle restrictions not supported by fallback service - "
                    "route may include roads unsuitable for your vehicle"
                )

        if state is ProviderState.PRIMARY:
            routes, alternative_warnings = compare_alternatives(routes)
            warnings.extend(alternative_warnings)
            if vehicle_profile and routes[0].distance == 0:
                warnings.append(
                    "Route calculation returned empty result - vehicle may not fit on available roads"
                )
        else:
            # The fallback does not know the vehicle, so only its first route is kept
            routes = routes[:1]

        status = RouteStatus.SUCCESS
        errors: list[str] = []
        restrictions = detect_restrictions(vehicle_profile)
        if restrictions:
            warnings.extend(restrictions.suggested_actions)
            if restrictions.cannot_accommodate:
                status = RouteStatus.ERROR
                errors.append("Vehicle dimensions exceed EU road limits")

        route = CanonicalRoute(
            id=f"{provider.name}_{uuid.uuid4().hex[:12]}",
            status=status,
            routes=routes,
            warnings=warnings,
            errors=errors,
            restrictions=restrictions,
            metadata=RouteMetadata(
                service=provider.name,
                provider_role=ProviderRole(state.value),
                profile=profile if state is ProviderState.PRIMARY else "driving",
                timestamp=datetime.now(timezone.utc),
                query=request,
                attribution=provider.attribution,
            ),
        )

        logger.info(
            "Route %s via %s: %.1f km, %d alternative(s), %d warning(s)",
            route.id, provider.name, route.primary.distance / 1000,
            len(route.alternatives), len(warnings),
        )
        return route

    async def health_check(self) -> bool:
        """Check if the primary provider is reachable."""
        check = getattr(self.primary, "health_check", None)
        if check is None:
            return True
        return await check()
