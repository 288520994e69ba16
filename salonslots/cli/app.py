"""
Main CLI application using Typer.
"""

import asyncio
import logging
from datetime import date, time
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.salon_api_client import SalonApiClient
from ..adapters.snapshot_store import SnapshotStore
from ..config import AppConfig, DataSourceConfig, get_default_config_path
from ..domain.exceptions import SlotEngineError
from ..domain.models import (
    ProximityWeighting,
    RankedSlot,
    SearchRequest,
    SlotSearchResult,
    parse_clock,
)
from ..services.slot_search import SlotSearchService

app = typer.Typer(
    name="salonslots",
    help="Find and rank bookable salon slots",
    add_completion=False
)

console = Console()


def _load_config(config_file: Optional[Path], snapshot: Optional[Path]) -> AppConfig:
    """
    Load the configuration, falling back to defaults when no file exists.

    An explicit ``--config`` must exist; ``--snapshot`` overrides the
    configured data source.
    """
    config_path = config_file or get_default_config_path()

    if config_file is not None or config_path.exists():
        config = AppConfig.load_from_yaml(config_path)
    else:
        config = AppConfig()

    if snapshot is not None:
        config.source = DataSourceConfig(
            snapshot_path=snapshot,
            timeout_seconds=config.source.timeout_seconds,
        )

    return config


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_service(config: AppConfig) -> SlotSearchService:
    """Wire the configured data source into the search service."""
    source = config.source

    if source.snapshot_path is not None:
        backend = SnapshotStore.from_file(source.snapshot_path, timezone=config.timezone)
    elif source.api_url:
        backend = SalonApiClient(
            base_url=source.api_url,
            api_token=source.api_token,
            timezone=config.timezone,
            timeout_seconds=source.timeout_seconds,
        )
    else:
        raise ValueError(
            "No data source configured. Set source.snapshot_path or source.api_url "
            "in config.yaml, or pass --snapshot."
        )

    return SlotSearchService(
        catalog=backend,
        directory=backend,
        ledger=backend,
        salon_config=backend,
        policy=config.to_search_policy(),
    )


def _parse_date(value: Optional[str], tz: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD: {e}")


def _parse_time(value: Optional[str]) -> Optional[time]:
    if value is None:
        return None
    parsed = parse_clock(value)
    if parsed is None:
        raise typer.BadParameter(f"Invalid time '{value}', expected HH:mm")
    return parsed


def _parse_now(value: Optional[str], tz: str) -> DateTime:
    if value is None:
        return pendulum.now(tz)
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid --now value '{value}': {e}")
    if not isinstance(parsed, DateTime):
        raise typer.BadParameter(f"--now must be a date and time, got '{value}'")
    return parsed.in_timezone(tz)


def _render_slots(result: SlotSearchResult) -> None:
    table = Table(
        title=f"Available slots ({len(result.slots)} of {result.total_found})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", justify="right")
    table.add_column("Date", style="bold")
    table.add_column("Time")
    table.add_column("Master", style="bold yellow")
    table.add_column("Score", justify="right")
    table.add_column("Match", style="dim")

    for slot in result.slots:
        candidate = slot.candidate
        match = slot.label.value + (" ★" if slot.is_preferred else "")
        table.add_row(
            str(slot.rank),
            candidate.start.format("ddd DD.MM.YYYY"),
            f"{candidate.start.format('HH:mm')} – {candidate.end.format('HH:mm')}",
            candidate.provider_name,
            str(slot.score),
            match,
        )

    console.print(table)
    if result.has_more:
        console.print(f"[dim]{result.total_found - len(result.slots)} more slot(s) not shown.[/dim]")


def _render_alternatives(alternatives: List[RankedSlot]) -> None:
    if not alternatives:
        console.print("[yellow]⚠ No nearby alternatives found.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(alternatives)} nearby alternative(s):[/bold green]\n")
    for slot in alternatives:
        console.print(f"  {slot.rank}. {slot.format_display()}")


@app.command()
def find(
    salon_id: Annotated[str, typer.Argument(help="Salon ID")],
    service_id: Annotated[str, typer.Argument(help="Service ID")],
    master: Annotated[Optional[str], typer.Option("--master", "-m", help="Preferred master ID")] = None,
    preferred_date: Annotated[Optional[str], typer.Option("--date", help="Preferred date (YYYY-MM-DD)")] = None,
    preferred_time: Annotated[Optional[str], typer.Option("--time", help="Preferred time (HH:mm)")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to search")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of slots")] = None,
    now_option: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO 8601), defaults to now")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    snapshot: Annotated[Optional[Path], typer.Option("--snapshot", "-s", help="Read salon data from a JSON snapshot")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """
    Find available slots ranked by preference.

    When a preferred date and time are given but cannot be booked exactly,
    nearby alternatives are listed as well.

    Examples:

        salonslots find salon-1 svc-haircut --snapshot data.json

        salonslots find salon-1 svc-haircut --master m-anna --date 2024-11-25 --time 14:00
    """
    try:
        config = _load_config(config_file, snapshot)
        _configure_logging(config.log_level, verbose)
        tz = config.timezone

        request = SearchRequest(
            salon_id=salon_id,
            service_id=service_id,
            provider_id=master,
            preferred_date=_parse_date(preferred_date, tz),
            preferred_time=_parse_time(preferred_time),
            max_days_ahead=days if days is not None else config.search.max_days_ahead,
            limit=limit if limit is not None else config.search.limit,
        )
        now = _parse_now(now_option, tz)
        service = _build_service(config)

        console.print("\n" + "="*60)
        console.print("[bold cyan]💇 Salon slots - available appointments[/bold cyan]")
        console.print("="*60 + "\n")

        candidate_set = asyncio.run(service.collect_candidates(request, now))
        result = service.rank_candidates(candidate_set, request)

        if not result.slots:
            console.print(
                "[yellow]⚠ No available slots found.[/yellow]\n"
                "Try a longer search period or another master."
            )
        else:
            _render_slots(result)

        wants_exact = request.preferred_date is not None and request.preferred_time is not None
        exact_available = any(
            candidate.date == request.preferred_date and candidate.start_time == request.preferred_time
            for candidate in candidate_set.candidates
        )
        if wants_exact and not exact_available:
            console.print("\n[bold]The requested time is not available.[/bold]")
            alternatives = service.find_nearby_alternatives(
                candidate_set.candidates,
                target_date=request.preferred_date,
                target_time=request.preferred_time,
            )
            _render_alternatives(alternatives)

        console.print()

    except (SlotEngineError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def alternatives(
    salon_id: Annotated[str, typer.Argument(help="Salon ID")],
    service_id: Annotated[str, typer.Argument(help="Service ID")],
    target_date: Annotated[str, typer.Option("--date", help="Requested date (YYYY-MM-DD)")],
    target_time: Annotated[str, typer.Option("--time", help="Requested time (HH:mm)")],
    master: Annotated[Optional[str], typer.Option("--master", "-m", help="Restrict to a master ID")] = None,
    max_alternatives: Annotated[Optional[int], typer.Option("--max", help="Maximum number of alternatives")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to search")] = None,
    prefer_same_time: Annotated[Optional[bool], typer.Option("--prefer-same-time/--no-prefer-same-time", help="Favour the same time on other days")] = None,
    prefer_same_day: Annotated[Optional[bool], typer.Option("--prefer-same-day/--no-prefer-same-day", help="Favour other times on the same day")] = None,
    now_option: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO 8601), defaults to now")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    snapshot: Annotated[Optional[Path], typer.Option("--snapshot", "-s", help="Read salon data from a JSON snapshot")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """
    Suggest slots close to a requested date and time.
    """
    try:
        config = _load_config(config_file, snapshot)
        _configure_logging(config.log_level, verbose)
        tz = config.timezone

        defaults = config.alternatives
        weighting = ProximityWeighting(
            prefer_same_time=defaults.prefer_same_time if prefer_same_time is None else prefer_same_time,
            prefer_same_day=defaults.prefer_same_day if prefer_same_day is None else prefer_same_day,
        )

        request = SearchRequest(
            salon_id=salon_id,
            service_id=service_id,
            provider_id=master,
            preferred_date=_parse_date(target_date, tz),
            preferred_time=_parse_time(target_time),
            max_days_ahead=days if days is not None else config.search.max_days_ahead,
            limit=config.search.limit,
        )
        now = _parse_now(now_option, tz)
        service = _build_service(config)

        suggestions = asyncio.run(
            service.search_alternatives(
                request,
                now,
                max_alternatives=max_alternatives,
                weighting=weighting,
            )
        )

        console.print()
        _render_alternatives(suggestions)
        console.print()

    except (SlotEngineError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
