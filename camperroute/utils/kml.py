"""KML file generation for Google Earth and map apps."""

import xml.etree.ElementTree as ET

from camperroute.models import ExportableRoute, ExportOptions, WaypointRole

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"

ICON_BASE = "http://maps.google.com/mapfiles/kml/paddle"

# style id -> (icon, scale)
POINT_STYLES = {
    "start-point": ("grn-circle.png", 1.2),
    "end-point": ("red-circle.png", 1.2),
    "waypoint": ("blu-circle.png", 1.0),
    "campsite": ("ylw-stars.png", 1.0),
}

ROLE_STYLES = {
    WaypointRole.START: "start-point",
    WaypointRole.END: "end-point",
    WaypointRole.INTERMEDIATE: "waypoint",
    WaypointRole.POI: "campsite",
}

ROUTE_LINE_STYLE = "route-line"
# aabbggrr
ROUTE_LINE_COLOR = "ff0000ff"
ROUTE_LINE_WIDTH = 4


def format_duration(seconds: float) -> str:
    """Format seconds as '4h 30m', or '45m' under an hour."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _coordinate(lng: float, lat: float, elevation: float | None) -> str:
    return f"{lng},{lat},{elevation if elevation is not None else 0}"


def _text(parent: ET.Element, tag: str, text: object) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = str(text)
    return element


def _add_styles(document: ET.Element) -> None:
    for style_id, (icon, scale) in POINT_STYLES.items():
        style = ET.SubElement(document, "Style", id=style_id)
        icon_style = ET.SubElement(style, "IconStyle")
        _text(ET.SubElement(icon_style, "Icon"), "href", f"{ICON_BASE}/{icon}")
        _text(icon_style, "scale", scale)

    style = ET.SubElement(document, "Style", id=ROUTE_LINE_STYLE)
    line_style = ET.SubElement(style, "LineStyle")
    _text(line_style, "color", ROUTE_LINE_COLOR)
    _text(line_style, "width", ROUTE_LINE_WIDTH)


def _point_placemark(
    parent: ET.Element,
    name: str,
    description: str,
    coordinates: str,
    style_id: str | None = None,
) -> None:
    placemark = ET.SubElement(parent, "Placemark")
    _text(placemark, "name", name)
    _text(placemark, "description", description)
    if style_id:
        _text(placemark, "styleUrl", f"#{style_id}")
    _text(ET.SubElement(placemark, "Point"), "coordinates", coordinates)


def create_kml_from_route(
    route: ExportableRoute,
    options: ExportOptions | None = None,
) -> str:
    """
    Create a KML document from an ExportableRoute.

    Text is escaped by ElementTree, so names may contain any characters.
    """
    options = options or ExportOptions()
    elevation = options.include_elevation

    root = ET.Element("kml", xmlns=KML_NAMESPACE)
    document = ET.SubElement(root, "Document")
    _text(document, "name", route.name)
    _text(document, "description", options.description or route.description)

    _add_styles(document)

    if options.include_waypoints:
        folder = ET.SubElement(document, "Folder")
        _text(folder, "name", "Waypoints")
        total = len(route.waypoints)

        for index, wp in enumerate(route.waypoints, start=1):
            lines = [
                f"Type: {wp.type.value}",
                f"Position: {index} of {total}",
                f"Coordinates: {wp.lat:.4f}, {wp.lng:.4f}",
            ]
            if wp.description:
                lines.append(f"Description: {wp.description}")
            _point_placemark(
                folder,
                wp.name,
                "\n".join(lines),
                _coordinate(wp.lng, wp.lat, wp.elevation if elevation else None),
                ROLE_STYLES.get(wp.type, "waypoint"),
            )

    if options.include_track_points:
        placemark = ET.SubElement(document, "Placemark")
        _text(placemark, "name", f"{route.name} Track")
        _text(placemark, "description", "\n".join([
            f"Distance: {route.track.total_distance / 1000:.1f} km",
            f"Duration: {format_duration(route.track.total_duration)}",
            f"Service: {route.metadata.service}",
            f"Profile: {route.metadata.profile}",
        ]))
        _text(placemark, "styleUrl", f"#{ROUTE_LINE_STYLE}")

        line = ET.SubElement(placemark, "LineString")
        _text(line, "tessellate", 1)
        _text(line, "coordinates", " ".join(
            _coordinate(point.lng, point.lat, point.elevation if elevation else None)
            for segment in route.track.segments
            for point in segment.points
        ))

    if options.include_instructions:
        folder = ET.SubElement(document, "Folder")
        _text(folder, "name", "Turn Instructions")

        for segment_index, segment in enumerate(route.track.segments, start=1):
            for instruction_index, instruction in enumerate(segment.instructions, start=1):
                if instruction.coordinates is None:
                    continue
                lines = [
                    instruction.instruction,
                    f"Distance: {instruction.distance / 1000:.1f} km",
                    f"Duration: {format_duration(instruction.duration)}",
                ]
                if instruction.street_name:
                    lines.append(f"Street: {instruction.street_name}")
                if instruction.direction:
                    lines.append(f"Direction: {instruction.direction}")
                lng, lat = instruction.coordinates
                _point_placemark(
                    folder,
                    f"Instruction {segment_index}.{instruction_index}",
                    "\n".join(lines),
                    _coordinate(lng, lat, None),
                )

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")
