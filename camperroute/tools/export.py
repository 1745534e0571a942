"""Route export to GPX, KML, JSON and CSV files.

A CanonicalRoute is first normalized into an ExportableRoute, which all
serializers share. Nothing here talks to the network.
"""

import csv
import io
import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence

from camperroute.config import settings
from camperroute.exceptions import ExportError
from camperroute.models import (
    CanonicalRoute,
    ExportableInstruction,
    ExportableMetadata,
    ExportableRestrictions,
    ExportableRoute,
    ExportableTrack,
    ExportableTrackPoint,
    ExportableTrackSegment,
    ExportableWaypoint,
    ExportFormat,
    ExportFormatInfo,
    ExportOptions,
    ExportResult,
    RouteSegment,
    Waypoint,
)
from camperroute.utils.geo import bounding_box, haversine_distance
from camperroute.utils.gpx import create_gpx_from_route
from camperroute.utils.kml import create_kml_from_route, format_duration

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"

# Filenames append the export date, so the default name carries none
DEFAULT_ROUTE_NAME = "Camper Route"

EXPORT_FORMATS = {
    ExportFormat.GPX: ExportFormatInfo(
        format=ExportFormat.GPX,
        mime_type="application/gpx+xml",
        extension=".gpx",
        supports_elevation=True,
        supports_instructions=True,
    ),
    ExportFormat.KML: ExportFormatInfo(
        format=ExportFormat.KML,
        mime_type="application/vnd.google-earth.kml+xml",
        extension=".kml",
        supports_elevation=True,
        supports_instructions=True,
    ),
    ExportFormat.JSON: ExportFormatInfo(
        format=ExportFormat.JSON,
        mime_type="application/json",
        extension=".json",
        supports_elevation=True,
        supports_instructions=True,
    ),
    ExportFormat.CSV: ExportFormatInfo(
        format=ExportFormat.CSV,
        mime_type="text/csv",
        extension=".csv",
        supports_elevation=True,
        supports_instructions=True,
    ),
}


def generate_filename(
    name: str,
    export_format: ExportFormat | str,
    today: date | None = None,
) -> str:
    """
    Build a filesystem-safe filename like 'alpine_loop_2024-06-01.gpx'.

    Only ASCII letters, digits, whitespace and hyphens survive; whitespace
    runs become underscores. The date is the current UTC date by default.
    """
    info = EXPORT_FORMATS[ExportFormat(export_format)]
    sanitized = re.sub(r"[^A-Za-z0-9\s-]", "", name)
    sanitized = re.sub(r"\s+", "_", sanitized).lower() or "route"
    today = today or datetime.now(timezone.utc).date()
    return f"{sanitized}_{today.isoformat()}{info.extension}"


def _split_evenly(count: int, parts: int) -> list[tuple[int, int]]:
    """
    Index ranges that cover range(count) in `parts` nearly equal slices.

    Every slice holds at least one index; with fewer points than parts,
    neighbouring slices share a point.
    """
    ranges = []
    for i in range(parts):
        start = min(i * count // parts, count - 1)
        end = max((i + 1) * count // parts, start + 1)
        ranges.append((start, end))
    return ranges


def prepare_route_for_export(
    route: CanonicalRoute,
    waypoints: Sequence[Waypoint],
    name: str | None = None,
    options: ExportOptions | None = None,
    now: datetime | None = None,
) -> ExportableRoute:
    """
    Normalize the primary route into an ExportableRoute.

    Providers give one geometry for the whole route, so track points are
    split evenly over the segments rather than cut at the real waypoint
    boundaries. Point distances are cumulative meters from the route start.

    Raises:
        ExportError: if the route has no alternatives or no geometry.
    """
    options = options or ExportOptions()
    now = now or datetime.now(timezone.utc)

    if not route.routes:
        raise ExportError("No routes available for export", "NO_ROUTES", "route")

    primary = route.primary
    coordinates = primary.coordinates

    bounds = bounding_box(coordinates, buffer_km=0)
    if bounds is None:
        raise ExportError("Route has no geometry to export", "INVALID_ROUTE", "route")

    exportable_waypoints = [
        ExportableWaypoint(
            id=wp.id,
            name=wp.name or f"Waypoint {index + 1}",
            description=wp.notes,
            lat=wp.lat,
            lng=wp.lng,
            type=wp.type,
            order=index,
        )
        for index, wp in enumerate(waypoints)
    ]

    # Cumulative distance along the whole polyline, in meters
    cumulative = [0.0]
    for prev, coord in zip(coordinates, coordinates[1:]):
        step = haversine_distance(prev[1], prev[0], coord[1], coord[0]) * 1000
        cumulative.append(cumulative[-1] + step)

    points = [
        ExportableTrackPoint(
            lat=coord[1],
            lng=coord[0],
            elevation=coord[2] if options.include_elevation and len(coord) > 2 else None,
            distance=cumulative[index],
        )
        for index, coord in enumerate(coordinates)
    ]

    source_segments = primary.segments or [
        RouteSegment(distance=primary.distance, duration=primary.duration)
    ]

    segments = []
    for segment, (start, end) in zip(source_segments, _split_evenly(len(points), len(source_segments))):
        segments.append(ExportableTrackSegment(
            points=points[start:end],
            distance=segment.distance,
            duration=segment.duration,
            instructions=[
                ExportableInstruction(
                    distance=step.distance,
                    duration=step.duration,
                    instruction=step.text,
                    street_name=step.street_name,
                    coordinates=step.location,
                )
                for step in segment.instructions
            ],
        ))

    restrictions = None
    if route.restrictions:
        restrictions = ExportableRestrictions(
            violated_dimensions=list(route.restrictions.violated_dimensions),
            warnings=list(route.restrictions.suggested_actions),
        )

    distance_km = round(primary.distance / 1000)
    description = (
        f"Generated route with {len(exportable_waypoints)} waypoints. "
        f"Distance: {distance_km} km, Duration: {format_duration(primary.duration)}"
    )

    return ExportableRoute(
        id=route.id,
        name=name or DEFAULT_ROUTE_NAME,
        description=options.description or description,
        waypoints=exportable_waypoints,
        track=ExportableTrack(
            name=name or f"Route {route.id}",
            segments=segments,
            total_distance=primary.distance,
            total_duration=primary.duration,
            bounds=bounds,
        ),
        metadata=ExportableMetadata(
            creator=options.creator or settings.export_creator,
            version=EXPORT_VERSION,
            timestamp=now,
            service=route.metadata.service,
            profile=route.metadata.profile,
            vehicle_profile=route.metadata.query.vehicle_profile,
            restrictions=restrictions,
        ),
    )


def _valid_coordinate(lat: float, lng: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lng <= 180


def validate_exportable_route(route: ExportableRoute) -> bool:
    """Check that a normalized route is complete enough to serialize."""
    if not route.id or not route.waypoints or not route.track.segments:
        return False

    for wp in route.waypoints:
        if not wp.id or not wp.name or not _valid_coordinate(wp.lat, wp.lng):
            return False

    for segment in route.track.segments:
        if not segment.points:
            return False
        if not all(_valid_coordinate(p.lat, p.lng) for p in segment.points):
            return False

    return True


def get_route_statistics(route: ExportableRoute) -> dict[str, Any]:
    """Summary counts for an export."""
    segments = route.track.segments
    restrictions = route.metadata.restrictions
    return {
        "total_waypoints": len(route.waypoints),
        "total_segments": len(segments),
        "total_track_points": sum(len(s.points) for s in segments),
        "total_instructions": sum(len(s.instructions) for s in segments),
        "total_distance": route.track.total_distance,
        "total_duration": route.track.total_duration,
        "has_elevation": any(p.elevation is not None for s in segments for p in s.points),
        "has_instructions": any(s.instructions for s in segments),
        "vehicle_compatible": not (restrictions and restrictions.violated_dimensions),
        "bounds": route.track.bounds.model_dump(),
    }


def to_json(route: ExportableRoute, options: ExportOptions, now: datetime | None = None) -> str:
    """The full exportable route plus statistics and export info."""
    data = route.model_dump(mode="json")
    data["statistics"] = get_route_statistics(route)
    data["export_info"] = {
        "format": ExportFormat.JSON.value,
        "version": EXPORT_VERSION,
        "exported_at": (now or datetime.now(timezone.utc)).isoformat(),
        "exported_by": options.creator or route.metadata.creator,
        "options": options.model_dump(exclude={"creator", "description"}),
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def _blank(value: Any) -> Any:
    return "" if value is None else value


def to_csv(route: ExportableRoute, options: ExportOptions) -> str:
    """
    Spreadsheet-friendly export in labelled sections.

    Sections are separated by a blank line and start with a '# Title' row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    if options.include_waypoints:
        writer.writerow(["# Waypoints"])
        writer.writerow(["ID", "Name", "Type", "Latitude", "Longitude", "Elevation", "Order", "Description"])
        for wp in route.waypoints:
            writer.writerow([
                wp.id, wp.name, wp.type.value, wp.lat, wp.lng,
                _blank(wp.elevation), wp.order, _blank(wp.description),
            ])
        writer.writerow([])

    if options.include_track_points:
        writer.writerow(["# Track Points"])
        writer.writerow(["Segment", "Point_Index", "Latitude", "Longitude", "Elevation", "Distance", "Time"])
        for segment_index, segment in enumerate(route.track.segments, start=1):
            for point_index, point in enumerate(segment.points, start=1):
                writer.writerow([
                    segment_index, point_index, point.lat, point.lng,
                    _blank(point.elevation), round(point.distance, 1),
                    point.time.isoformat() if point.time else "",
                ])
        writer.writerow([])

    if options.include_instructions:
        writer.writerow(["# Instructions"])
        writer.writerow([
            "Segment", "Instruction_Index", "Instruction", "Distance", "Duration",
            "Direction", "Street_Name", "Latitude", "Longitude",
        ])
        for segment_index, segment in enumerate(route.track.segments, start=1):
            for instruction_index, instruction in enumerate(segment.instructions, start=1):
                lng, lat = instruction.coordinates or ("", "")
                writer.writerow([
                    segment_index, instruction_index, instruction.instruction,
                    instruction.distance, instruction.duration,
                    _blank(instruction.direction), _blank(instruction.street_name),
                    lat, lng,
                ])
        writer.writerow([])

    writer.writerow(["# Route Summary"])
    writer.writerow(["Property", "Value"])
    writer.writerows([
        ["Route Name", route.name],
        ["Description", route.description],
        ["Total Distance (km)", f"{route.track.total_distance / 1000:.2f}"],
        ["Total Duration", format_duration(route.track.total_duration)],
        ["Total Waypoints", len(route.waypoints)],
        ["Total Segments", len(route.track.segments)],
        ["Service", route.metadata.service],
        ["Profile", route.metadata.profile],
        ["Created", route.metadata.timestamp.isoformat()],
    ])

    return buffer.getvalue()


def export_route(
    route: CanonicalRoute,
    waypoints: Sequence[Waypoint],
    export_format: ExportFormat | str,
    name: str | None = None,
    options: ExportOptions | None = None,
    now: datetime | None = None,
) -> ExportResult:
    """
    Serialize a route into one file format.

    Args:
        route: Route from the routing service
        waypoints: The user's stops, in order
        export_format: gpx, kml, json or csv
        name: Route name, also used for the filename
        options: What to include; everything by default
        now: Export timestamp (defaults to the current UTC time)

    Raises:
        ExportError: for unknown formats, missing waypoints or invalid route data.
    """
    try:
        export_format = ExportFormat(export_format)
    except ValueError as e:
        raise ExportError(f"Unsupported format: {export_format}", "UNSUPPORTED_FORMAT", str(export_format)) from e

    if not waypoints:
        raise ExportError("No waypoints to export", "NO_WAYPOINTS", export_format.value)

    options = options or ExportOptions()
    now = now or datetime.now(timezone.utc)

    try:
        exportable = prepare_route_for_export(route, waypoints, name, options, now)
    except ExportError as e:
        raise ExportError(e.message, e.code, export_format.value) from e

    if not validate_exportable_route(exportable):
        raise ExportError(
            f"Invalid route data for {export_format.value.upper()} export",
            "INVALID_ROUTE",
            export_format.value,
        )

    if export_format is ExportFormat.GPX:
        content = create_gpx_from_route(exportable, options)
    elif export_format is ExportFormat.KML:
        content = create_kml_from_route(exportable, options)
    elif export_format is ExportFormat.JSON:
        content = to_json(exportable, options, now)
    else:
        content = to_csv(exportable, options)

    info = EXPORT_FORMATS[export_format]
    result = ExportResult(
        success=True,
        format=export_format,
        content=content,
        filename=generate_filename(exportable.name, export_format, now.date()),
        mime_type=info.mime_type,
        byte_size=len(content.encode("utf-8")),
    )
    logger.info("Exported route %s as %s (%d bytes)", route.id, export_format.value, result.byte_size)
    return result


def export_formats(
    route: CanonicalRoute,
    waypoints: Sequence[Waypoint],
    formats: Iterable[ExportFormat | str] | None = None,
    name: str | None = None,
    options: ExportOptions | None = None,
    now: datetime | None = None,
) -> dict[ExportFormat, ExportResult]:
    """
    Export several formats at once.

    A failing format yields an unsuccessful result and does not affect
    the others.
    """
    results = {}
    for export_format in formats or list(ExportFormat):
        try:
            export_format = ExportFormat(export_format)
        except ValueError:
            logger.warning("Skipping unsupported export format %r", export_format)
            continue

        try:
            results[export_format] = export_route(route, waypoints, export_format, name, options, now)
        except ExportError as e:
            logger.warning("%s export failed: %s", export_format.value.upper(), e.message)
            results[export_format] = ExportResult(
                success=False,
                format=export_format,
                error=e.message,
            )
    return results


def write_export(result: ExportResult, directory: str | Path) -> Path:
    """Save a successful export into a directory, creating it if needed."""
    if not result.success or result.content is None or not result.filename:
        raise ExportError(
            result.error or "Nothing to write",
            "EXPORT_FAILED",
            result.format.value,
        )

    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / result.filename
    filepath.write_text(result.content, encoding="utf-8")
    logger.info("Wrote %s", filepath)
    return filepath


def get_available_formats() -> list[dict[str, Any]]:
    """Supported formats with their capabilities."""
    formats = []
    for info in EXPORT_FORMATS.values():
        capabilities = ["Waypoints", "Track Points", "Metadata"]
        if info.supports_elevation:
            capabilities.append("Elevation")
        if info.supports_instructions:
            capabilities.append("Turn Instructions")
        formats.append({**info.model_dump(mode="json"), "capabilities": capabilities})
    return formats
