"""Tests for route export (normalization and the four file formats)."""

import csv
import io
import json
import xml.etree.ElementTree as ET
from datetime import date, datetime, timezone

import gpxpy
import pytest

from camperroute.exceptions import ExportError
from camperroute.models import (
    ExportFormat,
    ExportOptions,
    ExportResult,
    RouteRestrictions,
    RouteSegment,
    RouteStatus,
    Waypoint,
    WaypointRole,
)
from camperroute.tools.export import (
    export_formats,
    export_route,
    generate_filename,
    get_available_formats,
    get_route_statistics,
    prepare_route_for_export,
    validate_exportable_route,
    write_export,
)
from camperroute.utils.kml import KML_NAMESPACE, format_duration

from conftest import ROUTE_COORDINATES


NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
KML = {"kml": KML_NAMESPACE}

TRICKY_NAME = 'Tom & Jerry\'s <Tour> "2024"'
WAYPOINT_NAME = "Bob's <Camp> & Co"


def without_segments(route):
    return route.model_copy(update={"routes": [route.primary.model_copy(update={"segments": []})]})


class TestFilename:
    """Filesystem-safe names."""

    def test_sanitized(self):
        assert generate_filename("Paris → Lyon!", ExportFormat.GPX, date(2024, 6, 1)) == "paris_lyon_2024-06-01.gpx"

    def test_default_name_has_date_once(self, sample_route, trip_waypoints):
        result = export_route(sample_route, trip_waypoints, ExportFormat.GPX, now=NOW)
        assert result.filename == "camper_route_2024-06-01.gpx"

    def test_empty_after_sanitizing(self):
        assert generate_filename("!!!", "kml", date(2024, 6, 1)) == "route_2024-06-01.kml"

    @pytest.mark.parametrize("name", ["a/b", "c:\\d", TRICKY_NAME, "../../etc/passwd"])
    def test_no_path_characters(self, name):
        filename = generate_filename(name, ExportFormat.CSV)
        assert not any(ch in filename for ch in '/\\:<>"')
        assert filename.endswith(".csv")


class TestPrepare:
    """Normalization into an ExportableRoute."""

    def test_defaults(self, sample_route, trip_waypoints):
        route = prepare_route_for_export(sample_route, trip_waypoints, now=NOW)

        assert route.name == "Camper Route"
        assert route.track.name == "Route openrouteservice_abc123def456"
        assert route.description == "Generated route with 3 waypoints. Distance: 775 km, Duration: 7h 45m"
        assert route.metadata.service == "openrouteservice"
        assert route.metadata.profile == "driving-hgv"
        assert route.metadata.vehicle_profile.height == 3.2
        assert [wp.order for wp in route.waypoints] == [0, 1, 2]

    def test_points_split_evenly(self, sample_route, trip_waypoints):
        route = prepare_route_for_export(sample_route, trip_waypoints, now=NOW)

        assert [len(s.points) for s in route.track.segments] == [3, 3]
        assert route.track.segments[0].distance == 465000.0
        assert route.track.segments[1].instructions[0].street_name == "A7"

    def test_cumulative_distance(self, sample_route, trip_waypoints):
        route = prepare_route_for_export(sample_route, trip_waypoints, now=NOW)
        distances = [p.distance for s in route.track.segments for p in s.points]

        assert distances[0] == 0
        assert distances == sorted(distances)
        # Straight-line sum through the six vertices, in meters
        assert 650_000 < distances[-1] < 775_000

    def test_bounds_without_buffer(self, sample_route, trip_waypoints):
        bounds = prepare_route_for_export(sample_route, trip_waypoints, now=NOW).track.bounds
        assert (bounds.north, bounds.south, bounds.east, bounds.west) == (48.8566, 43.2965, 5.3698, 2.3522)

    def test_synthetic_segment(self, sample_route, trip_waypoints):
        route = prepare_route_for_export(without_segments(sample_route), trip_waypoints, now=NOW)

        [segment] = route.track.segments
        assert len(segment.points) == len(ROUTE_COORDINATES)
        assert segment.distance == 775000.0
        assert segment.instructions == []

    def test_without_elevation(self, sample_route, trip_waypoints):
        options = ExportOptions(include_elevation=False)
        route = prepare_route_for_export(sample_route, trip_waypoints, options=options, now=NOW)
        assert all(p.elevation is None for s in route.track.segments for p in s.points)

    def test_restrictions_carry_warnings(self, sample_route, trip_waypoints):
        actions = [
            "Vehicle height 4.3m exceeds EU limit of 4.0m: consider a route that avoids low bridges and tunnels",
            "Vehicle width 2.9m exceeds EU limit of 2.55m: consider a route that avoids narrow roads and village centres",
        ]
        restricted = sample_route.model_copy(update={
            "status": RouteStatus.ERROR,
            "restrictions": RouteRestrictions(
                violated_dimensions=["height", "width"],
                cannot_accommodate=True,
                suggested_actions=actions,
            ),
            "warnings": ["Primary routing service unavailable, using fallback", *actions],
        })
        route = prepare_route_for_export(restricted, trip_waypoints, now=NOW)

        assert route.metadata.restrictions.violated_dimensions == ["height", "width"]
        assert route.metadata.restrictions.warnings == actions
        assert get_route_statistics(route)["vehicle_compatible"] is False

    def test_fewer_points_than_segments(self, sample_route, paris, lyon, marseille):
        short = sample_route.model_copy(update={"routes": [sample_route.primary.model_copy(update={
            "coordinates": [ROUTE_COORDINATES[0], ROUTE_COORDINATES[-1]],
            "segments": [RouteSegment(distance=1000.0, duration=60.0) for _ in range(3)],
        })]})
        route = prepare_route_for_export(short, [paris, lyon, marseille], now=NOW)

        assert len(route.track.segments) == 3
        assert all(segment.points for segment in route.track.segments)
        assert route.track.segments[0].points[0].lat == 48.8566
        assert route.track.segments[-1].points[-1].lat == 43.2965
        assert validate_exportable_route(route)

        result = export_route(short, [paris, lyon, marseille], ExportFormat.GPX, name="Short hop", now=NOW)
        gpx = gpxpy.parse(result.content)
        assert all(segment.points for segment in gpx.tracks[0].segments)

    def test_empty_geometry(self, sample_route, trip_waypoints):
        empty = sample_route.model_copy(update={
            "routes": [sample_route.primary.model_copy(update={"coordinates": []})]
        })
        with pytest.raises(ExportError) as excinfo:
            prepare_route_for_export(empty, trip_waypoints, now=NOW)
        assert excinfo.value.code == "INVALID_ROUTE"

    def test_validate(self, sample_route, trip_waypoints):
        route = prepare_route_for_export(sample_route, trip_waypoints, now=NOW)
        assert validate_exportable_route(route)
        assert not validate_exportable_route(route.model_copy(update={"waypoints": []}))

    def test_statistics(self, sample_route, trip_waypoints):
        stats = get_route_statistics(prepare_route_for_export(sample_route, trip_waypoints, now=NOW))

        assert stats["total_waypoints"] == 3
        assert stats["total_segments"] == 2
        assert stats["total_track_points"] == 6
        assert stats["total_instructions"] == 2
        assert stats["has_elevation"] is True
        assert stats["vehicle_compatible"] is True


class TestFormats:
    """Serializer output."""

    def test_json(self, sample_route, trip_waypoints):
        result = export_route(sample_route, trip_waypoints, ExportFormat.JSON, name="Rhône Valley", now=NOW)
        data = json.loads(result.content)

        assert result.filename == "rhne_valley_2024-06-01.json"
        assert result.mime_type == "application/json"
        assert len(data["waypoints"]) == 3
        assert data["track"]["total_distance"] == 775000.0
        assert data["track"]["total_duration"] == 27900.0
        assert data["statistics"]["total_track_points"] == 6
        assert data["export_info"]["format"] == "json"
        assert data["export_info"]["exported_at"] == NOW.isoformat()

    def test_gpx(self, sample_route, trip_waypoints):
        result = export_route(sample_route, trip_waypoints, ExportFormat.GPX, now=NOW)
        gpx = gpxpy.parse(result.content)

        assert result.mime_type == "application/gpx+xml"
        assert gpx.name == "Camper Route"
        stops = [w for w in gpx.waypoints if w.type != "instruction"]
        instructions = [w for w in gpx.waypoints if w.type == "instruction"]
        assert [w.name for w in stops] == ["Paris", "Lyon", "Marseille"]
        assert [w.symbol for w in stops] == ["Flag, Green", "Pin, Blue", "Flag, Red"]
        assert [w.name for w in instructions] == ["Instruction 1.1", "Instruction 2.1"]
        assert sum(len(s.points) for s in gpx.tracks[0].segments) == 6
        assert gpx.tracks[0].segments[0].points[0].elevation == 35.0
        assert len(gpx.routes[0].points) == 3

    def test_gpx_escaping(self, sample_route, paris, marseille):
        noted = paris.model_copy(update={"name": WAYPOINT_NAME, "notes": "Parking <2.5m> & toll"})
        result = export_route(sample_route, [noted, marseille], ExportFormat.GPX, name=TRICKY_NAME, now=NOW)
        gpx = gpxpy.parse(result.content)

        assert "<Camp>" not in result.content
        assert "<Tour>" not in result.content
        assert gpx.name == TRICKY_NAME
        assert gpx.waypoints[0].name == WAYPOINT_NAME
        assert gpx.waypoints[0].description == "Parking <2.5m> & toll"

    def test_kml_escaping(self, sample_route, paris, marseille):
        renamed = paris.model_copy(update={"name": WAYPOINT_NAME})
        result = export_route(sample_route, [renamed, marseille], ExportFormat.KML, now=NOW)
        root = ET.fromstring(result.content.encode("utf-8"))

        assert "<Camp>" not in result.content
        assert "& Co" not in result.content
        first = root.find("kml:Document/kml:Folder/kml:Placemark/kml:name", KML)
        assert first.text == WAYPOINT_NAME

    def test_kml(self, sample_route, trip_waypoints):
        result = export_route(sample_route, trip_waypoints, ExportFormat.KML, name=TRICKY_NAME, now=NOW)
        root = ET.fromstring(result.content.encode("utf-8"))

        assert result.content.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert root.find("kml:Document/kml:name", KML).text == TRICKY_NAME

        placemarks = root.findall("kml:Document/kml:Folder/kml:Placemark", KML)
        names = [p.find("kml:name", KML).text for p in placemarks]
        assert names == ["Paris", "Lyon", "Marseille", "Instruction 1.1", "Instruction 2.1"]

        line = root.find("kml:Document/kml:Placemark/kml:LineString/kml:coordinates", KML)
        assert len(line.text.split()) == 6
        assert line.text.split()[0] == "2.3522,48.8566,35.0"

    def test_csv(self, sample_route, paris, marseille):
        noted = paris.model_copy(update={"notes": 'Gate code "1234", ask at desk'})
        result = export_route(sample_route, [noted, marseille], ExportFormat.CSV, now=NOW)

        assert '"Gate code ""1234"", ask at desk"' in result.content
        rows = list(csv.reader(io.StringIO(result.content)))
        assert rows[0] == ["# Waypoints"]
        assert rows[2][1] == "Paris"
        assert rows[2][7] == 'Gate code "1234", ask at desk'
        assert ["# Track Points"] in rows
        assert ["# Instructions"] in rows
        assert ["Total Duration", format_duration(27900)] in rows

    def test_csv_sections_follow_options(self, sample_route, trip_waypoints):
        options = ExportOptions(include_track_points=False, include_instructions=False)
        result = export_route(sample_route, trip_waypoints, ExportFormat.CSV, options=options, now=NOW)
        assert "# Track Points" not in result.content
        assert "# Instructions" not in result.content
        assert "# Route Summary" in result.content

    def test_byte_size(self, sample_route, trip_waypoints):
        result = export_route(sample_route, trip_waypoints, ExportFormat.KML, name="Côte d'Azur", now=NOW)
        assert result.byte_size == len(result.content.encode("utf-8"))
        assert result.byte_size > len(result.content)


class TestExportErrors:
    """Typed failures and per-format isolation."""

    def test_unsupported_format(self, sample_route, trip_waypoints):
        with pytest.raises(ExportError) as excinfo:
            export_route(sample_route, trip_waypoints, "shp")
        assert excinfo.value.code == "UNSUPPORTED_FORMAT"
        assert excinfo.value.format == "shp"

    def test_no_waypoints(self, sample_route):
        with pytest.raises(ExportError) as excinfo:
            export_route(sample_route, [], ExportFormat.GPX)
        assert excinfo.value.code == "NO_WAYPOINTS"

    def test_invalid_waypoint(self, sample_route):
        bad = Waypoint(id="wp-bad", name="Nowhere", lat=95.0, lng=2.0, type=WaypointRole.START)
        with pytest.raises(ExportError) as excinfo:
            export_route(sample_route, [bad], ExportFormat.JSON)
        assert excinfo.value.code == "INVALID_ROUTE"
        assert excinfo.value.format == "json"

    def test_one_format_failing(self, sample_route, trip_waypoints, monkeypatch):
        def broken_kml(route, options=None):
            raise ExportError("KML writer exploded", "EXPORT_FAILED", "kml")

        monkeypatch.setattr("camperroute.tools.export.create_kml_from_route", broken_kml)
        results = export_formats(sample_route, trip_waypoints, now=NOW)

        assert set(results) == set(ExportFormat)
        assert results[ExportFormat.KML].success is False
        assert results[ExportFormat.KML].error == "KML writer exploded"
        assert all(results[f].success for f in (ExportFormat.GPX, ExportFormat.JSON, ExportFormat.CSV))

    def test_unknown_format_skipped(self, sample_route, trip_waypoints):
        results = export_formats(sample_route, trip_waypoints, ["gpx", "shp"], now=NOW)
        assert list(results) == [ExportFormat.GPX]


class TestFiles:
    """Writing exports to disk."""

    def test_write_export(self, sample_route, trip_waypoints, tmp_path):
        result = export_route(sample_route, trip_waypoints, ExportFormat.GPX, name="Sud", now=NOW)
        path = write_export(result, tmp_path / "out")

        assert path == tmp_path / "out" / "sud_2024-06-01.gpx"
        assert path.read_text(encoding="utf-8") == result.content

    def test_write_failed_result(self, tmp_path):
        failed = ExportResult(success=False, format=ExportFormat.CSV, error="boom")
        with pytest.raises(ExportError) as excinfo:
            write_export(failed, tmp_path)
        assert excinfo.value.code == "EXPORT_FAILED"
        assert not any(tmp_path.iterdir())

    def test_available_formats(self):
        formats = {f["format"]: f for f in get_available_formats()}
        assert set(formats) == {"gpx", "kml", "json", "csv"}
        assert formats["kml"]["mime_type"] == "application/vnd.google-earth.kml+xml"
        assert "Turn Instructions" in formats["csv"]["capabilities"]
