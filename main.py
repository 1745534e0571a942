"""Command line entry point for the camper route planner.

Usage:
    python main.py trip.json                # All export formats
    python main.py trip.json gpx kml        # Only the listed formats
    python main.py import route.gpx         # Print a trip file for an exported route
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel

from camperroute.config import settings
from camperroute.exceptions import ExportError
from camperroute.models import ExportFormat
from camperroute.pipeline import TripPlanningPipeline, load_trip
from camperroute.tools.route_import import import_route


console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_formats(args: list[str]) -> list[ExportFormat] | None:
    """Map format arguments to ExportFormat; None when no formats were given."""
    if not args:
        return None
    formats = []
    for arg in args:
        try:
            formats.append(ExportFormat(arg.lower().lstrip(".")))
        except ValueError:
            supported = ", ".join(f.value for f in ExportFormat)
            raise SystemExit(f"Unknown export format '{arg}' (supported: {supported})") from None
    return formats


async def plan_trip(trip_path: str, formats: list[ExportFormat] | None) -> int:
    """Plan one trip and print its summary. Returns the exit code."""
    try:
        request = load_trip(trip_path)
    except ValueError as e:
        console.print(Panel(str(e), title="Trip File Error", border_style="red"))
        return 1

    if formats is not None:
        request = request.model_copy(update={"formats": formats})

    missing = settings.validate_required()
    if missing:
        console.print(Panel(
            "[yellow]Missing optional configuration:[/yellow]\n" +
            "\n".join(f"  • {m}" for m in missing) +
            "\n\n[dim]Routing will use the OSRM fallback without vehicle restrictions.[/dim]",
            title="Configuration",
            border_style="yellow",
        ))

    pipeline = TripPlanningPipeline(show_progress=True, output_dir=settings.output_dir)
    result = await pipeline.execute(request)

    console.print()
    console.print(Markdown(result.format_summary()))
    return 0 if result.success else 1


def import_trip(path: str) -> int:
    """Print a trip file rebuilt from an exported route. Returns the exit code."""
    path = Path(path)
    try:
        result = import_route(path.read_text(encoding="utf-8"), path.suffix)
    except (OSError, ExportError) as e:
        console.print(Panel(str(e), title="Import Error", border_style="red"))
        return 1

    for warning in result.warnings:
        console.print(f"[yellow]⚠️ {warning}[/yellow]")

    trip = {
        "name": result.name,
        "waypoints": [wp.model_dump(mode="json", exclude_none=True) for wp in result.waypoints],
    }
    console.print_json(json.dumps(trip, ensure_ascii=False))
    return 0 if result.waypoints else 1


def main():
    """Main entry point."""
    load_dotenv()
    setup_logging(settings.log_level)

    if len(sys.argv) < 2:
        console.print(__doc__)
        sys.exit(2)

    if sys.argv[1] == "import":
        if len(sys.argv) != 3:
            console.print(__doc__)
            sys.exit(2)
        sys.exit(import_trip(sys.argv[2]))

    formats = parse_formats(sys.argv[2:])
    sys.exit(asyncio.run(plan_trip(sys.argv[1], formats)))


if __name__ == "__main__":
    main()
