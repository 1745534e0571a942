"""Geospatial utility functions.

Points are (lat, lng) tuples. Route polylines follow the GeoJSON order
used by the routing providers: [lng, lat] or [lng, lat, elevation].
"""

from math import radians, sin, cos, sqrt, atan2
from typing import NamedTuple, Sequence

from camperroute.models import BoundingBox

EARTH_RADIUS_KM = 6371
KM_PER_DEGREE = 111.32

LatLng = tuple[float, float]


class SegmentDistance(NamedTuple):
    distance: float
    nearest_point: LatLng


class PolylineDistance(NamedTuple):
    distance: float
    nearest_point: LatLng
    segment_index: int


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float,
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad, lon1_rad = radians(lat1), radians(lon1)
    lat2_rad, lon2_rad = radians(lat2), radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = sin(dlat/2)**2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon/2)**2
    c = 2 * atan2(sqrt(a), sqrt(1-a))

    return EARTH_RADIUS_KM * c


def distance_to_segment(
    point: LatLng,
    segment_start: LatLng,
    segment_end: LatLng,
) -> SegmentDistance:
    """
    Distance from a point to a line segment.

    The point is projected onto the segment in degree space with the
    projection parameter clamped to [0, 1]; the returned distance is the
    haversine distance to that projection.
    """
    point_lat, point_lng = point
    start_lat, start_lng = segment_start
    end_lat, end_lng = segment_end

    dx = end_lng - start_lng
    dy = end_lat - start_lat

    if dx == 0 and dy == 0:
        return SegmentDistance(
            haversine_distance(point_lat, point_lng, start_lat, start_lng),
            (start_lat, start_lng),
        )

    t = ((point_lng - start_lng) * dx + (point_lat - start_lat) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))

    nearest_lat = start_lat + t * dy
    nearest_lng = start_lng + t * dx

    return SegmentDistance(
        haversine_distance(point_lat, point_lng, nearest_lat, nearest_lng),
        (nearest_lat, nearest_lng),
    )


def distance_to_polyline(
    point: LatLng,
    coordinates: Sequence[Sequence[float]],
) -> PolylineDistance | None:
    """
    Shortest distance from a point to a route polyline.

    Linear in the number of vertices. Returns None when the polyline has
    fewer than two vertices.
    """
    if not coordinates or len(coordinates) < 2:
        return None

    best: PolylineDistance | None = None

    for i in range(len(coordinates) - 1):
        start, end = coordinates[i], coordinates[i + 1]
        result = distance_to_segment(point, (start[1], start[0]), (end[1], end[0]))

        if best is None or result.distance < best.distance:
            best = PolylineDistance(result.distance, result.nearest_point, i)

    return best


def is_point_near_route(
    point: LatLng,
    coordinates: Sequence[Sequence[float]],
    max_distance_km: float,
) -> bool:
    """Check whether any segment of the route lies within max_distance_km."""
    if not coordinates or len(coordinates) < 2:
        return False

    for i in range(len(coordinates) - 1):
        start, end = coordinates[i], coordinates[i + 1]
        if distance_to_segment(point, (start[1], start[0]), (end[1], end[0])).distance <= max_distance_km:
            return True

    return False


def bounding_box(
    coordinates: Sequence[Sequence[float]],
    buffer_km: float = 10.0,
) -> BoundingBox | None:
    """
    Bounds of a polyline expanded by a buffer.

    The buffer is converted with 1 degree = 111.32 km on both axes, which
    underestimates the longitude buffer away from the equator. Returns None
    for an empty polyline.
    """
    if not coordinates:
        return None

    lngs = [c[0] for c in coordinates]
    lats = [c[1] for c in coordinates]

    buffer_degrees = buffer_km / KM_PER_DEGREE

    return BoundingBox(
        north=max(lats) + buffer_degrees,
        south=min(lats) - buffer_degrees,
        east=max(lngs) + buffer_degrees,
        west=min(lngs) - buffer_degrees,
    )
