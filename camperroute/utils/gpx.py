"""GPX file generation utilities."""

import xml.etree.ElementTree as ET

import gpxpy
import gpxpy.gpx

from camperroute.models import (
    ExportableInstruction,
    ExportableRoute,
    ExportOptions,
    WaypointRole,
)

WAYPOINT_SYMBOLS = {
    WaypointRole.START: "Flag, Green",
    WaypointRole.END: "Flag, Red",
    WaypointRole.INTERMEDIATE: "Pin, Blue",
    WaypointRole.POI: "Campground",
}

INSTRUCTION_TYPE = "instruction"
INSTRUCTION_SYMBOL = "Navaid, White"


def _element(tag: str, value: object | None = None, **children: object) -> ET.Element:
    """Build an extension element with optional text and simple child elements."""
    element = ET.Element(tag)
    if value is not None:
        element.text = str(value)
    for name, child in children.items():
        if child is not None:
            ET.SubElement(element, name).text = str(child)
    return element


def _metadata_extensions(route: ExportableRoute) -> list[ET.Element]:
    extensions = []
    vehicle = route.metadata.vehicle_profile
    if vehicle:
        extensions.append(_element(
            "vehicle_profile",
            height=vehicle.height,
            width=vehicle.width,
            length=vehicle.length,
            weight=vehicle.weight,
            vehicle_type=vehicle.vehicle_type.value if vehicle.vehicle_type else None,
        ))

    restrictions = route.metadata.restrictions
    if restrictions and restrictions.violated_dimensions:
        element = ET.Element("restrictions")
        for dimension in restrictions.violated_dimensions:
            ET.SubElement(element, "violated_dimension").text = dimension
        for warning in restrictions.warnings:
            ET.SubElement(element, "warning").text = warning
        extensions.append(element)

    extensions.append(_element(
        "routing",
        service=route.metadata.service,
        profile=route.metadata.profile,
    ))
    return extensions


def _instruction_waypoint(
    instruction: ExportableInstruction,
    label: str,
) -> gpxpy.gpx.GPXWaypoint:
    lng, lat = instruction.coordinates
    waypoint = gpxpy.gpx.GPXWaypoint(
        latitude=lat,
        longitude=lng,
        name=label,
        description=instruction.instruction,
        symbol=INSTRUCTION_SYMBOL,
        type=INSTRUCTION_TYPE,
    )
    waypoint.extensions.append(_element(
        "instruction",
        text=instruction.instruction,
        distance=instruction.distance,
        duration=instruction.duration,
        direction=instruction.direction,
        street=instruction.street_name,
    ))
    return waypoint


def create_gpx_from_route(
    route: ExportableRoute,
    options: ExportOptions | None = None,
) -> str:
    """
    Create a complete GPX file from an ExportableRoute.

    The track follows the route geometry, turn instructions become
    waypoints of type "instruction", and the user's stops are also
    written as a navigation route (rte).

    Args:
        route: The normalized route
        options: What to include; everything by default

    Returns:
        GPX XML string
    """
    options = options or ExportOptions()

    gpx = gpxpy.gpx.GPX()
    gpx.creator = options.creator or route.metadata.creator
    gpx.name = route.name
    gpx.description = options.description or route.description
    gpx.author_name = route.metadata.creator
    gpx.time = route.metadata.timestamp

    bounds = route.track.bounds
    gpx.bounds = gpxpy.gpx.GPXBounds(
        min_latitude=bounds.south,
        max_latitude=bounds.north,
        min_longitude=bounds.west,
        max_longitude=bounds.east,
    )

    if options.include_metadata:
        gpx.metadata_extensions.extend(_metadata_extensions(route))

    # User waypoints
    if options.include_waypoints:
        for wp in route.waypoints:
            waypoint = gpxpy.gpx.GPXWaypoint(
                latitude=wp.lat,
                longitude=wp.lng,
                elevation=wp.elevation if options.include_elevation else None,
                name=wp.name,
                description=wp.description,
                symbol=WAYPOINT_SYMBOLS.get(wp.type, "Waypoint"),
                type=wp.type.value,
            )
            waypoint.extensions.append(_element("order", wp.order))
            gpx.waypoints.append(waypoint)

    # Track
    if options.include_track_points:
        track = gpxpy.gpx.GPXTrack(name=route.track.name, description=route.description)
        track.type = route.metadata.profile
        gpx.tracks.append(track)

        for segment in route.track.segments:
            gpx_segment = gpxpy.gpx.GPXTrackSegment()
            for point in segment.points:
                gpx_segment.points.append(gpxpy.gpx.GPXTrackPoint(
                    latitude=point.lat,
                    longitude=point.lng,
                    elevation=point.elevation if options.include_elevation else None,
                    time=point.time,
                ))
            track.segments.append(gpx_segment)

    # Turn instructions as markers
    if options.include_instructions:
        for segment_index, segment in enumerate(route.track.segments, start=1):
            for instruction_index, instruction in enumerate(segment.instructions, start=1):
                if instruction.coordinates is None:
                    continue
                gpx.waypoints.append(_instruction_waypoint(
                    instruction, f"Instruction {segment_index}.{instruction_index}"
                ))

    # Navigation route through the stops
    if options.include_waypoints and len(route.waypoints) > 1:
        gpx_route = gpxpy.gpx.GPXRoute(name=route.name, description="Navigation route for GPS devices")
        for wp in route.waypoints:
            gpx_route.points.append(gpxpy.gpx.GPXRoutePoint(
                latitude=wp.lat,
                longitude=wp.lng,
                name=wp.name,
                description=f"Stop {wp.order + 1}: {wp.name}",
            ))
        gpx.routes.append(gpx_route)

    return gpx.to_xml(version="1.1")
