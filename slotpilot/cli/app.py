"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import AppConfig
from ..demo import DEMO_CALENDAR, DEMO_PREFERENCES
from ..domain.metrics import Metrics
from ..domain.models import Credentials, PipelineResult, ScheduleCandidate
from ..domain.slot_finder import SlotFinder
from ..services.pipeline import SchedulingPipeline

app = typer.Typer(
    name="slotpilot",
    help="Propose meeting slots from a free-text calendar and preferences",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml if present"),
]
CalendarOption = Annotated[
    Optional[Path],
    typer.Option("--calendar", help="Text file with the calendar (day headers and time ranges)"),
]
DemoOption = Annotated[
    bool,
    typer.Option("--demo", help="Use the built-in sample calendar and preferences."),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_config(config_file: Optional[Path]) -> AppConfig:
    try:
        return AppConfig.load(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _read_text(path: Path, label: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[bold red]Error reading {label}:[/bold red] {e}")
        raise typer.Exit(1)


def _render_metrics(metrics: Metrics) -> Table:
    table = Table(title="Pipeline Metrics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold yellow")
    table.add_column("Value", justify="right")

    table.add_row("Original size", f"{metrics.raw_input_size} chars")
    table.add_row("Compressed size", f"{metrics.compressed_input_size} chars")
    table.add_row("Compression ratio", metrics.compression_ratio)
    table.add_row("Compression latency", f"{metrics.compression_latency_ms} ms")
    table.add_row("Generation latency", f"{metrics.generation_latency_ms} ms")
    table.add_row("Total pipeline", f"{metrics.total_pipeline_ms} ms")
    table.add_row("Schedule source", metrics.speedup_factor or "-")
    return table


def _render_candidates(candidates: List[ScheduleCandidate]) -> Table:
    table = Table(title="Proposed Slots", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Day", no_wrap=True)
    table.add_column("Time")
    table.add_column("Why this works", style="dim")

    for idx, candidate in enumerate(candidates, 1):
        table.add_row(
            str(idx),
            candidate.title or f"Option {idx}",
            candidate.date,
            f"{candidate.time} ({candidate.duration_minutes} min)",
            candidate.reasoning,
        )
    return table


def _render_result(result: PipelineResult) -> None:
    context = result.display_text().strip() or "No compressed text returned."
    console.print(Panel(context, title="Compressed Context"))
    console.print(_render_metrics(result.metrics))

    if not result.schedule.strip():
        return

    candidates = result.candidates()
    if candidates is None:
        # Unstructured model output is shown verbatim
        console.print(Panel(result.schedule, title="Proposed Slots (raw)"))
    else:
        console.print(_render_candidates(candidates))


@app.command()
def optimize(
    calendar: CalendarOption = None,
    preferences: Annotated[Optional[Path], typer.Option("--preferences", "-p", help="Text file with scheduling preferences")] = None,
    demo: DemoOption = False,
    api_key: Annotated[str, typer.Option("--api-key", envvar="SCALEDOWN_API_KEY", help="Compression service API key")] = "",
    gemini_key: Annotated[str, typer.Option("--gemini-key", envvar="GEMINI_API_KEY", help="Generation service API key")] = "",
    model: Annotated[Optional[str], typer.Option("--model", "-m", help="Generation model ID (defaults to the configured model)")] = None,
    config_file: ConfigOption = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw pipeline result as JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Propose meeting slots, degrading from remote services to a local heuristic.

    Examples:

        slotpilot optimize --demo

        slotpilot optimize --calendar week.txt -p prefs.txt --api-key KEY

        slotpilot optimize --demo --gemini-key KEY --model gemini-2.5-flash --json
    """
    config = _load_config(config_file)

    if verbose:
        _configure_logging("DEBUG")
    elif as_json:
        _configure_logging("ERROR")
    else:
        _configure_logging(config.log_level)

    if demo:
        calendar_text, preferences_text = DEMO_CALENDAR, DEMO_PREFERENCES
    elif calendar is None:
        console.print("[bold red]Error:[/bold red] Provide --calendar or use --demo.")
        raise typer.Exit(1)
    else:
        calendar_text = _read_text(calendar, "calendar")
        preferences_text = _read_text(preferences, "preferences") if preferences else ""

    credentials = Credentials(
        api_key=api_key,
        gemini_api_key=gemini_key,
        gemini_model=model or config.generation.model,
    )

    with SchedulingPipeline.from_config(config) as pipeline:
        result = asyncio.run(pipeline.run(calendar_text, preferences_text, credentials))

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    _render_result(result)


@app.command()
def slots(
    calendar: CalendarOption = None,
    demo: DemoOption = False,
):
    """
    Run only the local slot-finding heuristic over a calendar.
    """
    if demo:
        calendar_text = DEMO_CALENDAR
    elif calendar is None:
        console.print("[bold red]Error:[/bold red] Provide --calendar or use --demo.")
        raise typer.Exit(1)
    else:
        calendar_text = _read_text(calendar, "calendar")

    candidates = SlotFinder().find_slots(calendar_text)

    console.print()
    console.print(_render_candidates(candidates))
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotpilot[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
