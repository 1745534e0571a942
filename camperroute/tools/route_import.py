"""Read stops back from exported GPX, KML, JSON and CSV files.

Only the user's waypoints and the route name are recovered. Track
geometry and turn instructions are recomputed when the trip is planned
again, so they are ignored here.
"""

import csv
import io
import json
import logging
import xml.etree.ElementTree as ET

import gpxpy
import gpxpy.gpx

from camperroute.exceptions import ExportError
from camperroute.models import (
    ExportableRoute,
    ExportFormat,
    ImportResult,
    Waypoint,
    WaypointRole,
)
from camperroute.utils.gpx import INSTRUCTION_TYPE
from camperroute.utils.kml import ROLE_STYLES

logger = logging.getLogger(__name__)

STYLE_ROLES = {style: role for role, style in ROLE_STYLES.items()}

# Older exports wrote "waypoint" for intermediate stops
ROLE_ALIASES = {"waypoint": WaypointRole.INTERMEDIATE}

CSV_COLUMNS = {
    "id": ("id",),
    "name": ("name",),
    "lat": ("latitude", "lat"),
    "lng": ("longitude", "lng", "lon"),
    "type": ("type",),
    "notes": ("description", "notes"),
}


def _role(value: str | None, label: str, warnings: list[str]) -> WaypointRole:
    if not value or not value.strip():
        return WaypointRole.INTERMEDIATE
    value = value.strip().lower()
    if value in ROLE_ALIASES:
        return ROLE_ALIASES[value]
    try:
        return WaypointRole(value)
    except ValueError:
        warnings.append(f"Unknown waypoint type '{value}' for {label}, using intermediate")
        return WaypointRole.INTERMEDIATE


def _import_gpx(content: str, warnings: list[str]) -> tuple[str | None, list[Waypoint]]:
    try:
        gpx = gpxpy.parse(content)
    except gpxpy.gpx.GPXException as e:
        raise ExportError(f"Invalid GPX file: {e}", "IMPORT_FAILED", ExportFormat.GPX.value) from e

    waypoints = []
    stops = [wpt for wpt in gpx.waypoints if wpt.type != INSTRUCTION_TYPE]
    for index, wpt in enumerate(stops, start=1):
        name = wpt.name or f"Waypoint {index}"
        waypoints.append(Waypoint(
            id=f"imported_gpx_{index}",
            name=name,
            lat=wpt.latitude,
            lng=wpt.longitude,
            type=_role(wpt.type, name, warnings),
            notes=wpt.description or None,
        ))

    # Files from navigation devices often carry only a route
    if not waypoints:
        points = [point for route in gpx.routes for point in route.points]
        for index, point in enumerate(points, start=1):
            waypoints.append(Waypoint(
                id=f"imported_route_{index}",
                name=point.name or f"Route Point {index}",
                lat=point.latitude,
                lng=point.longitude,
            ))

    return gpx.name, waypoints


def _import_json(content: str, warnings: list[str]) -> tuple[str | None, list[Waypoint]]:
    try:
        route = ExportableRoute.model_validate(json.loads(content))
    except ValueError as e:
        raise ExportError(f"Invalid JSON export: {e}", "IMPORT_FAILED", ExportFormat.JSON.value) from e

    waypoints = [
        Waypoint(
            id=wp.id or f"imported_json_{index}",
            name=wp.name,
            lat=wp.lat,
            lng=wp.lng,
            type=wp.type,
            notes=wp.description,
        )
        for index, wp in enumerate(sorted(route.waypoints, key=lambda wp: wp.order), start=1)
    ]
    return route.name, waypoints


def _local(element: ET.Element) -> str:
    return element.tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    return next((child for child in element if _local(child) == name), None)


def _child_text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    return child.text if child is not None else None


def _kml_notes(description: str | None) -> str | None:
    if not description:
        return None
    _, found, notes = description.partition("Description: ")
    if found:
        return notes or None
    # Foreign placemarks: the whole description is the note
    if not description.startswith("Type: "):
        return description
    return None


def _import_kml(content: str, warnings: list[str]) -> tuple[str | None, list[Waypoint]]:
    try:
        root = ET.fromstring(content.encode("utf-8"))
    except ET.ParseError as e:
        raise ExportError(f"Invalid KML file: {e}", "IMPORT_FAILED", ExportFormat.KML.value) from e

    if _local(root) != "kml":
        raise ExportError("Not a KML document", "IMPORT_FAILED", ExportFormat.KML.value)

    document = _child(root, "Document")
    name = _child_text(document, "name") if document is not None else None

    folder = next(
        (
            element for element in root.iter()
            if _local(element) == "Folder" and _child_text(element, "name") == "Waypoints"
        ),
        None,
    )
    if folder is not None:
        placemarks = [child for child in folder if _local(child) == "Placemark"]
    else:
        placemarks = [element for element in root.iter() if _local(element) == "Placemark"]

    waypoints = []
    for placemark in placemarks:
        point = _child(placemark, "Point")
        if point is None:
            continue

        index = len(waypoints) + 1
        label = _child_text(placemark, "name") or f"Waypoint {index}"
        try:
            lng, lat = (float(v) for v in (_child_text(point, "coordinates") or "").split()[0].split(",")[:2])
        except (IndexError, ValueError):
            warnings.append(f"Skipped placemark {label}: invalid coordinates")
            continue

        style = (_child_text(placemark, "styleUrl") or "").lstrip("#")
        waypoints.append(Waypoint(
            id=f"imported_kml_{index}",
            name=label,
            lat=lat,
            lng=lng,
            type=STYLE_ROLES.get(style, WaypointRole.INTERMEDIATE),
            notes=_kml_notes(_child_text(placemark, "description")),
        ))

    return name, waypoints


def _csv_columns(header: list[str]) -> dict[str, int]:
    names = [h.strip().lower() for h in header]
    columns = {}
    for key, aliases in CSV_COLUMNS.items():
        for alias in aliases:
            if alias in names:
                columns[key] = names.index(alias)
                break
    return columns


def _import_csv(content: str, warnings: list[str]) -> tuple[str | None, list[Waypoint]]:
    try:
        rows = list(csv.reader(io.StringIO(content)))
    except csv.Error as e:
        raise ExportError(f"Invalid CSV file: {e}", "IMPORT_FAILED", ExportFormat.CSV.value) from e

    # Exported files have labelled sections; plain files start with the header
    start = next((i + 1 for i, row in enumerate(rows) if row == ["# Waypoints"]), 0)
    if start >= len(rows):
        raise ExportError("CSV file has no header row", "IMPORT_FAILED", ExportFormat.CSV.value)

    columns = _csv_columns(rows[start])
    if not {"name", "lat", "lng"} <= columns.keys():
        raise ExportError(
            "CSV must contain Name, Latitude and Longitude columns",
            "IMPORT_FAILED",
            ExportFormat.CSV.value,
        )

    def cell(row: list[str], key: str) -> str:
        index = columns.get(key)
        return row[index] if index is not None and index < len(row) else ""

    waypoints = []
    for line, row in enumerate(rows[start + 1:], start=start + 2):
        if not row or row[0].startswith("#"):
            break
        label = cell(row, "name") or f"Waypoint {len(waypoints) + 1}"
        try:
            lat = float(cell(row, "lat"))
            lng = float(cell(row, "lng"))
        except ValueError:
            warnings.append(f"Skipped CSV line {line} ({label}): invalid coordinates")
            continue

        waypoints.append(Waypoint(
            id=cell(row, "id") or f"imported_csv_{len(waypoints) + 1}",
            name=label,
            lat=lat,
            lng=lng,
            type=_role(cell(row, "type"), label, warnings),
            notes=cell(row, "notes") or None,
        ))

    name = next((row[1] for row in rows if len(row) >= 2 and row[0] == "Route Name"), None)
    return name, waypoints


IMPORTERS = {
    ExportFormat.GPX: _import_gpx,
    ExportFormat.KML: _import_kml,
    ExportFormat.JSON: _import_json,
    ExportFormat.CSV: _import_csv,
}


def import_route(content: str, import_format: ExportFormat | str) -> ImportResult:
    """
    Recover the stops of a route from an exported file.

    Args:
        content: File content
        import_format: gpx, kml, json or csv

    Returns:
        ImportResult with the route name, the waypoints in order and any
        warnings about skipped or defaulted entries.

    Raises:
        ExportError: UNSUPPORTED_FORMAT for unknown formats, IMPORT_FAILED
            when the content cannot be parsed.
    """
    try:
        if not isinstance(import_format, ExportFormat):
            import_format = ExportFormat(import_format.lower().lstrip("."))
    except ValueError as e:
        raise ExportError(
            f"Unsupported import format: {import_format}", "UNSUPPORTED_FORMAT", str(import_format)
        ) from e

    warnings: list[str] = []
    name, waypoints = IMPORTERS[import_format](content, warnings)

    if not waypoints:
        warnings.append(f"No waypoints found in {import_format.value.upper()} file")

    logger.info(
        "Imported %d waypoint(s) from %s with %d warning(s)",
        len(waypoints), import_format.value, len(warnings),
    )
    return ImportResult(format=import_format, name=name, waypoints=waypoints, warnings=warnings)
