"""Deterministic trip planning pipeline.

Pipeline steps:
1. Compute the vehicle-aware route
2. Load campsites (catalog file or Overpass) and rank them along the route
3. Export the route in the requested formats
4. Write the exports to the output directory
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from camperroute.config import settings
from camperroute.exceptions import CatalogError, ExportError, RoutingError
from camperroute.models import (
    CanonicalRoute,
    Campsite,
    ExportFormat,
    ExportOptions,
    ExportResult,
    FilteredCampsite,
    FilterState,
    RouteOptions,
    RouteStatus,
    VehicleProfile,
    Waypoint,
)
from camperroute.tools.camping import filter_campsites
from camperroute.tools.catalog import fetch_campsites, load_catalog
from camperroute.tools.export import export_formats, write_export
from camperroute.tools.routing import RoutingService
from camperroute.utils.geo import bounding_box
from camperroute.utils.kml import format_duration

logger = logging.getLogger(__name__)

console = Console()

SUMMARY_CAMPSITES = 10


class TripRequest(BaseModel):
    """Everything needed to plan one trip, as read from a trip file."""

    name: str | None = None
    waypoints: list[Waypoint]
    vehicle: VehicleProfile | None = None
    options: RouteOptions = Field(default_factory=RouteOptions)

    campsite_catalog: Path | None = Field(
        default=None,
        description="JSON file with campsites; takes precedence over fetch_campsites"
    )
    fetch_campsites: bool = False
    campsite_filter: FilterState = Field(
        default_factory=lambda: FilterState(
            route_only_mode=True,
            max_distance_from_route=settings.route_buffer_km,
        )
    )

    formats: list[ExportFormat] = Field(default_factory=lambda: list(ExportFormat))
    export_options: ExportOptions = Field(default_factory=ExportOptions)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Loire Valley",
                "waypoints": [
                    {"id": "start", "name": "Orléans", "lat": 47.9029, "lng": 1.9093, "type": "start"},
                    {"id": "end", "name": "Tours", "lat": 47.3941, "lng": 0.6848, "type": "end"},
                ],
                "vehicle": {"height": 3.2, "width": 2.3, "length": 7.4, "weight": 3.5},
                "campsite_catalog": "campsites.json",
                "formats": ["gpx", "kml"],
            }
        }


def load_trip(path: str | Path) -> TripRequest:
    """
    Read a trip file.

    Relative catalog paths are resolved against the trip file's directory.
    """
    path = Path(path)
    try:
        request = TripRequest.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as e:
        raise ValueError(f"Invalid trip file {path}: {e}") from e

    if request.campsite_catalog and not request.campsite_catalog.is_absolute():
        request = request.model_copy(update={
            "campsite_catalog": path.parent / request.campsite_catalog
        })
    return request


@dataclass
class TripPlanResult:
    """Complete trip planning result."""
    success: bool
    error: str | None = None
    name: str = ""

    route: CanonicalRoute | None = None
    campsites: list[FilteredCampsite] = field(default_factory=list)
    exports: dict[ExportFormat, ExportResult] = field(default_factory=dict)
    files: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def format_summary(self) -> str:
        """Format a human-readable Markdown summary of the trip."""
        if self.route is None:
            return f"❌ Trip planning failed: {self.error}"

        route = self.route
        primary = route.primary
        metadata = route.metadata

        lines = [
            f"## 🚐 Camper Route: {self.name}",
            "",
            f"**Distance:** {primary.distance / 1000:.0f} km",
            f"**Driving time:** {format_duration(primary.duration)}",
            f"**Provider:** {metadata.service} ({metadata.provider_role.value}), profile `{metadata.profile}`",
        ]
        if route.alternatives:
            lines.append(f"**Alternatives:** {len(route.alternatives)}")

        if route.status is RouteStatus.ERROR:
            lines.append("")
            lines.append("### ❌ Errors")
            lines.extend(f"- {error}" for error in route.errors)

        warnings = route.warnings + self.warnings
        if warnings:
            lines.append("")
            lines.append("### ⚠️ Warnings")
            lines.extend(f"- {warning}" for warning in warnings)

        lines.append("")
        lines.append("### ⛺ Campsites")
        if not self.campsites:
            lines.append("No campsites matched the filter.")
        for index, view in enumerate(self.campsites[:SUMMARY_CAMPSITES], start=1):
            campsite = view.campsite
            detail = campsite.type.label
            if view.route_distance is not None:
                detail += f", {view.route_distance:.1f} km from route"
            lines.append(f"{index}. **{campsite.name}** ({detail})")
        if len(self.campsites) > SUMMARY_CAMPSITES:
            lines.append(f"... and {len(self.campsites) - SUMMARY_CAMPSITES} more")

        if self.exports:
            lines.append("")
            lines.append("### 📁 Exports")
            written = {p.name: p for p in self.files}
            for export_format, result in self.exports.items():
                label = export_format.value.upper()
                if not result.success:
                    lines.append(f"- {label}: failed ({result.error})")
                elif result.filename in written:
                    lines.append(f"- {label}: `{written[result.filename]}`")
                else:
                    lines.append(f"- {label}: {result.filename} ({result.byte_size} bytes)")

        if metadata.attribution:
            lines.append("")
            lines.append(f"_Route data: {metadata.attribution}_")

        return "\n".join(lines)


class TripPlanningPipeline:
    """
    Runs route computation, campsite ranking and export in sequence.

    Only a routing failure stops the pipeline. Campsite and export
    problems are reported on the result.
    """

    def __init__(
        self,
        routing_service: RoutingService | None = None,
        show_progress: bool = True,
        output_dir: Path | None = None,
    ):
        self.routing_service = routing_service or RoutingService()
        self.show_progress = show_progress
        self.output_dir = output_dir

    async def execute(self, request: TripRequest) -> TripPlanResult:
        """
        Execute the full trip planning pipeline.

        Args:
            request: Waypoints, vehicle, campsite source and export formats

        Returns:
            TripPlanResult with the route, campsites and exports
        """
        result = TripPlanResult(success=False, name=request.name or "Camper Route")

        if self.show_progress:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                return await self._execute_steps(request, result, progress)
        return await self._execute_steps(request, result)

    async def _execute_steps(
        self,
        request: TripRequest,
        result: TripPlanResult,
        progress: Progress | None = None,
    ) -> TripPlanResult:
        # Step 1: Route
        task = self._start(progress, "🛤️ Calculating route...")
        try:
            route = await self.routing_service.compute_route(
                request.waypoints, request.vehicle, request.options
            )
        except RoutingError as e:
            logger.error("Routing failed: %r", e)
            result.error = e.message
            return result
        finally:
            self._done(progress, task)
        result.route = route

        # Step 2: Campsites
        task = self._start(progress, "⛺ Finding campsites along the route...")
        try:
            catalog = await self._load_campsites(request, route)
        except CatalogError as e:
            logger.warning("Campsite lookup failed: %s", e)
            result.warnings.append(f"Campsites unavailable: {e}")
            catalog = []
        finally:
            self._done(progress, task)

        if catalog:
            first = request.waypoints[0]
            result.campsites = filter_campsites(
                catalog,
                request.campsite_filter,
                route_geometry=route.primary.coordinates,
                current_location=(first.lat, first.lng),
            )

        # Step 3: Exports
        if request.formats:
            task = self._start(progress, "📁 Exporting route...")
            result.exports = export_formats(
                route,
                request.waypoints,
                request.formats,
                name=request.name,
                options=request.export_options,
            )
            self._done(progress, task)

        # Step 4: Files
        if self.output_dir is not None:
            for export in result.exports.values():
                if not export.success:
                    continue
                try:
                    result.files.append(write_export(export, self.output_dir))
                except (ExportError, OSError) as e:
                    logger.warning("Could not write %s: %s", export.filename, e)
                    result.warnings.append(f"Could not write {export.filename}: {e}")

        # A route the vehicle cannot legally drive is kept for the summary but is not a success
        result.success = route.status is RouteStatus.SUCCESS
        if not result.success:
            result.error = "; ".join(route.errors) or "Route is not drivable with this vehicle"
        return result

    async def _load_campsites(self, request: TripRequest, route: CanonicalRoute) -> list[Campsite]:
        if request.campsite_catalog:
            return load_catalog(request.campsite_catalog)

        if request.fetch_campsites:
            bounds = bounding_box(route.primary.coordinates, settings.route_buffer_km)
            if bounds is None:
                return []
            return await fetch_campsites(
                bounds,
                request.campsite_filter.visible_types,
                request.vehicle,
            )

        return []

    @staticmethod
    def _start(progress: Progress | None, description: str):
        if progress is None:
            return None
        return progress.add_task(description, total=None)

    @staticmethod
    def _done(progress: Progress | None, task) -> None:
        if progress is not None and task is not None:
            progress.remove_task(task)
