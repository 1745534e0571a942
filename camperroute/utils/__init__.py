"""Utility functions for route planning."""

from .gpx import create_gpx_from_route
from .kml import create_kml_from_route
from .geo import bounding_box, distance_to_polyline, haversine_distance, is_point_near_route

__all__ = [
    "create_gpx_from_route",
    "create_kml_from_route",
    "bounding_box",
    "distance_to_polyline",
    "haversine_distance",
    "is_point_near_route",
]
