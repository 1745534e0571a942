"""Routing, campsite and export tools."""

from .routing import RoutingService, determine_profile, detect_restrictions, validate_route_request
from .camping import filter_campsites, generate_search_suggestions
from .catalog import fetch_campsites, load_catalog
from .export import (
    EXPORT_FORMATS,
    export_formats,
    export_route,
    get_available_formats,
    prepare_route_for_export,
    write_export,
)
from .route_import import import_route

__all__ = [
    "RoutingService",
    "determine_profile",
    "detect_restrictions",
    "validate_route_request",
    "filter_campsites",
    "generate_search_suggestions",
    "fetch_campsites",
    "load_catalog",
    "EXPORT_FORMATS",
    "export_formats",
    "export_route",
    "get_available_formats",
    "prepare_route_for_export",
    "write_export",
    "import_route",
]
