"""Campsite filtering and ranking against a route.

The pipeline runs its stages in a fixed order:
1. Type
2. Required amenities (all must be present)
3. Vehicle compatibility
4. Distance to route
5. Open now / free only / accepts reservations
6. Free-text search
7. Relevance scoring
8. Sorting
9. Result cap

Catalog entries are never modified; every stage works on FilteredCampsite views.
"""

import logging
from datetime import datetime
from typing import Iterable, Sequence

from camperroute.models import (
    Campsite,
    FilteredCampsite,
    FilterState,
    SortKey,
)
from camperroute.utils.geo import distance_to_polyline, haversine_distance

from .heuristics import accepts_reservations, is_free, is_open_now

logger = logging.getLogger(__name__)

# Route proximity score: 100 at the route, 0 from this distance on
ROUTE_SCORE_CUTOFF_KM = 50
ROUTE_SCORE_MAX = 100

COMPATIBILITY_BONUS = 20
AMENITY_POINTS = 5
AMENITY_BONUS_CAP = 50

EXACT_MATCH_SCORE = 100
PREFIX_MATCH_SCORE = 80
SUBSTRING_MATCH_SCORE = 60
CATEGORY_MATCH_SCORE = 40
LOCATION_MATCH_SCORE = 50


def filter_campsites(
    campsites: Iterable[Campsite],
    filter_state: FilterState,
    route_geometry: Sequence[Sequence[float]] | None = None,
    current_location: tuple[float, float] | None = None,
    now: datetime | None = None,
) -> list[FilteredCampsite]:
    """
    Filter, score and sort a campsite catalog.

    Args:
        campsites: The catalog, in source order (used to break ties)
        filter_state: Filter configuration
        route_geometry: Route polyline as [lng, lat(, ele)] coordinates
        current_location: (lat, lng) used for distance_from_center
        now: Clock for the open-now check

    Returns:
        Ranked views, at most filter_state.max_results long
    """
    filtered = [FilteredCampsite(campsite=c) for c in campsites]
    total = len(filtered)

    filtered = filter_by_types(filtered, filter_state)
    filtered = filter_by_amenities(filtered, filter_state.amenities)

    if filter_state.vehicle_compatible_only:
        filtered = [v for v in filtered if v.campsite.vehicle_compatible]

    if filter_state.route_only_mode and route_geometry:
        filtered = filter_by_route(filtered, route_geometry, filter_state.max_distance_from_route)

    filtered = apply_advanced_filters(filtered, filter_state, now)

    if filter_state.search_query.strip() or filter_state.search_location.strip():
        filtered = apply_search_filters(filtered, filter_state)

    filtered = calculate_relevance_scores(filtered, route_geometry, current_location)
    filtered = sort_campsites(filtered, filter_state.sort_by)

    logger.debug("Campsite filter kept %d of %d", len(filtered), total)
    return filtered[:filter_state.max_results]


def filter_by_types(
    campsites: list[FilteredCampsite],
    filter_state: FilterState,
) -> list[FilteredCampsite]:
    """Keep visible types. An empty selection means show nothing."""
    if not filter_state.visible_types:
        return []
    return [v for v in campsites if v.campsite.type in filter_state.visible_types]


def filter_by_amenities(
    campsites: list[FilteredCampsite],
    required: dict[str, bool],
) -> list[FilteredCampsite]:
    """Keep campsites offering every required amenity."""
    active = [name for name, needed in required.items() if needed]
    if not active:
        return campsites

    return [
        v for v in campsites
        if v.campsite.amenities is not None
        and all(v.campsite.amenities.get(name) is True for name in active)
    ]


def filter_by_route(
    campsites: list[FilteredCampsite],
    route_geometry: Sequence[Sequence[float]],
    max_distance_km: float,
) -> list[FilteredCampsite]:
    """Drop campsites farther than max_distance_km from the route."""
    kept = []
    for view in campsites:
        result = distance_to_polyline((view.campsite.lat, view.campsite.lng), route_geometry)
        if result is None or result.distance > max_distance_km:
            continue
        kept.append(view.model_copy(update={"route_distance": result.distance}))
    return kept


def apply_advanced_filters(
    campsites: list[FilteredCampsite],
    filter_state: FilterState,
    now: datetime | None = None,
) -> list[FilteredCampsite]:
    filtered = campsites

    if filter_state.open_now:
        filtered = [v for v in filtered if is_open_now(v.campsite.opening_hours, now)]

    if filter_state.free_only:
        filtered = [v for v in filtered if is_free(v.campsite)]

    if filter_state.accepts_reservations:
        filtered = [v for v in filtered if accepts_reservations(v.campsite)]

    return filtered


def _amenity_keys(campsite: Campsite) -> str:
    return " ".join(k for k, v in (campsite.amenities or {}).items() if v).lower()


def matches_search(campsite: Campsite, name_query: str, location_query: str) -> bool:
    """Case-insensitive substring match of the name and location queries."""
    if name_query:
        name = campsite.name.lower()
        label = campsite.type.label.lower()
        if not (
            name_query in name
            or name_query in label
            or name_query in campsite.type.value
            or name_query in _amenity_keys(campsite)
        ):
            return False

    if location_query:
        if location_query not in (campsite.address or "").lower():
            return False

    return True


def calculate_search_score(campsite: Campsite, name_query: str, location_query: str) -> float:
    """Exact name match beats prefix, prefix beats substring; category and address add bonuses."""
    score = 0

    if name_query:
        name = campsite.name.lower()
        if name == name_query:
            score += EXACT_MATCH_SCORE
        elif name.startswith(name_query):
            score += PREFIX_MATCH_SCORE
        elif name_query in name:
            score += SUBSTRING_MATCH_SCORE

        if name_query in campsite.type.label.lower() or name_query in campsite.type.value:
            score += CATEGORY_MATCH_SCORE

    if location_query and location_query in (campsite.address or "").lower():
        score += LOCATION_MATCH_SCORE

    return score


def apply_search_filters(
    campsites: list[FilteredCampsite],
    filter_state: FilterState,
) -> list[FilteredCampsite]:
    name_query = filter_state.search_query.lower().strip()
    location_query = filter_state.search_location.lower().strip()

    if not name_query and not location_query:
        return campsites

    return [
        v.model_copy(update={
            "search_score": calculate_search_score(v.campsite, name_query, location_query)
        })
        for v in campsites
        if matches_search(v.campsite, name_query, location_query)
    ]


def route_proximity_score(distance_km: float | None) -> float:
    """Linear decay from 100 at the route to 0 at the cutoff."""
    if distance_km is None or distance_km >= ROUTE_SCORE_CUTOFF_KM:
        return 0
    return max(0.0, ROUTE_SCORE_MAX - distance_km * (ROUTE_SCORE_MAX / ROUTE_SCORE_CUTOFF_KM))


def calculate_relevance_scores(
    campsites: list[FilteredCampsite],
    route_geometry: Sequence[Sequence[float]] | None = None,
    current_location: tuple[float, float] | None = None,
) -> list[FilteredCampsite]:
    scored = []

    for view in campsites:
        campsite = view.campsite
        score = 0.0

        if route_geometry:
            distance = view.route_distance
            if distance is None:
                result = distance_to_polyline((campsite.lat, campsite.lng), route_geometry)
                distance = result.distance if result else None
            score += route_proximity_score(distance)

        score += view.search_score

        if campsite.vehicle_compatible:
            score += COMPATIBILITY_BONUS

        amenity_count = sum(1 for present in (campsite.amenities or {}).values() if present)
        score += min(amenity_count * AMENITY_POINTS, AMENITY_BONUS_CAP)

        update = {"relevance_score": score}
        if current_location:
            update["distance_from_center"] = haversine_distance(
                current_location[0], current_location[1], campsite.lat, campsite.lng
            )

        scored.append(view.model_copy(update=update))

    return scored


def sort_campsites(campsites: list[FilteredCampsite], sort_by: SortKey) -> list[FilteredCampsite]:
    """Stable sort, so equal keys keep catalog order."""
    if sort_by == SortKey.DISTANCE:
        def distance_key(v: FilteredCampsite) -> float:
            if v.route_distance is not None:
                return v.route_distance
            if v.distance_from_center is not None:
                return v.distance_from_center
            return 0
        return sorted(campsites, key=distance_key)

    if sort_by == SortKey.NAME:
        return sorted(campsites, key=lambda v: (v.campsite.name or v.campsite.type.value).casefold())

    # RATING aliases RELEVANCE until ratings exist
    return sorted(campsites, key=lambda v: -v.relevance_score)


def generate_search_suggestions(
    query: str,
    campsites: Iterable[Campsite],
    max_suggestions: int = 10,
) -> list[str]:
    """Suggest names, places and type labels starting with the query."""
    query_lower = query.lower().strip()
    if len(query_lower) < 2:
        return []

    suggestions: set[str] = set()

    for campsite in campsites:
        if query_lower in campsite.name.lower():
            suggestions.add(campsite.name)

        if campsite.address and query_lower in campsite.address.lower():
            for part in campsite.address.split(","):
                part = part.strip()
                if query_lower in part.lower():
                    suggestions.add(part)

        if query_lower in campsite.type.label:
            suggestions.add(campsite.type.label)

    matching = sorted(s for s in suggestions if s.lower().startswith(query_lower))
    return matching[:max_suggestions]
