"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Dict, List, Optional, Union

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.mock_provider_client import MockProviderClient
from ..adapters.provider_client import HttpProviderClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingSlotsError, ProviderError
from ..domain.models import AvailabilityResult
from ..services.availability import AvailabilityRequest, AvailabilityService

app = typer.Typer(
    name="bookingslots",
    help="Compute bookable appointment slots for services staffed by workers",
    add_completion=False,
)

console = Console()

EXIT_INVALID = 1
EXIT_PROVIDER = 2

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use bundled mock provider data instead of the provider API.")]
MockDataOption = Annotated[Optional[Path], typer.Option("--mock-data", help="JSON file with mock provider records (implies --mock).")]
NowOption = Annotated[Optional[str], typer.Option("--now", help="Reference time for the notice rule (ISO 8601). Defaults to now.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path], mock: bool) -> AppConfig:
    """
    Load the configuration file.

    In mock mode a missing config file falls back to defaults, since no
    provider credentials are needed.
    """
    config_path = config_file or get_default_config_path()
    if mock and config_file is None and not config_path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(config_path)


ProviderClient = Union[HttpProviderClient, MockProviderClient]


def _build_client(config: AppConfig, mock: bool, mock_data: Optional[Path]) -> ProviderClient:
    if mock or mock_data:
        return MockProviderClient(data_file=mock_data)

    if not config.provider.base_url:
        raise ValueError("provider.base_url is not configured. Use --mock to run with mock data.")

    # A single request must not outlive the whole load's deadline
    return HttpProviderClient(
        base_url=config.provider.base_url,
        access_token=config.provider.access_token,
        timeout=min(config.provider.timeout_seconds, config.defaults.deadline_seconds),
    )


def _build_service(config: AppConfig, client: ProviderClient) -> AvailabilityService:
    return AvailabilityService(
        client,
        max_retries=config.provider.max_retries,
        default_deadline_seconds=config.defaults.deadline_seconds,
    )


def _parse_now(now: Optional[str], tz: str):
    if now is None:
        return None
    try:
        return pendulum.parse(now, tz=tz)
    except ValueError as e:
        raise ValueError(f"Could not parse --now value {now!r}: {e}") from e


def _worker_names(config: AppConfig) -> Dict[str, str]:
    return {worker.id: worker.name for worker in config.workers}


def _print_availability(result: AvailabilityResult, names: Dict[str, str], title: str) -> None:
    if not result.slots_by_date:
        console.print(
            "[yellow]⚠ No bookable slots found.[/yellow]\n"
            "Try another month, a shorter duration or fewer notice minutes."
        )
    else:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold yellow")
        table.add_column("Start")
        table.add_column("Workers", style="dim")

        for day, slots in sorted(result.slots_by_date.items()):
            for index, slot in enumerate(slots):
                table.add_row(
                    day.format("ddd DD.MM.YYYY") if index == 0 else "",
                    slot.start.format("HH:mm"),
                    ", ".join(names.get(worker_id, worker_id) for worker_id in slot.worker_ids),
                )

        console.print()
        console.print(table)
        console.print(f"\n[bold green]✓ {result.total_slots()} slot(s) on {len(result.slots_by_date)} date(s)[/bold green]")

    if result.warnings:
        console.print(f"\n[yellow]{len(result.warnings)} record(s) skipped:[/yellow]")
        for warning in result.warnings:
            console.print(f"  [yellow]•[/yellow] {warning.message}")
    console.print()


@app.command()
def availability(
    workers: Annotated[List[str], typer.Argument(help="Worker names (aliases) or provider ids.")],
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="Month to compute (YYYY-MM). Defaults to the current month.")] = None,
    config_file: ConfigOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    interval: Annotated[Optional[int], typer.Option("--interval", "-i", help="Slot granularity in minutes")] = None,
    buffer: Annotated[Optional[int], typer.Option("--buffer", "-b", help="Buffer after each appointment in minutes")] = None,
    notice: Annotated[Optional[int], typer.Option("--notice", "-n", help="Minimum notice in minutes")] = None,
    strategy: Annotated[Optional[str], typer.Option("--strategy", "-s", help="Aggregation strategy: union or intersection")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the wire-format JSON response.")] = False,
    now: NowOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
    verbose: VerboseOption = False,
):
    """
    Compute bookable slots for every date of a month.

    Examples:

        # Current month for two configured workers
        bookingslots availability anna ben

        # A given month, 60 minute appointments, JSON output
        bookingslots availability anna --month 2025-09 --duration 60 --json

        # Use mock data (no provider account needed)
        bookingslots availability 101 102 --mock --month 2025-09 --now 2025-09-01T00:00
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file, mock or mock_data is not None)
        tz = config.timezone

        target = pendulum.from_format(month, "YYYY-MM", tz=tz) if month else pendulum.now(tz)
        worker_ids = config.resolve_workers(workers)
        parameters = config.service_parameters(duration, interval, buffer, notice)

        request = AvailabilityRequest(
            worker_ids=worker_ids,
            service_parameters=parameters,
            year=target.year,
            month=target.month,
            timezone=tz,
            now=_parse_now(now, tz),
            strategy=strategy or config.defaults.strategy,
        )

        client = _build_client(config, mock, mock_data)
        try:
            result = asyncio.run(_build_service(config, client).compute_availability(request))
        finally:
            client.close()

    except ProviderError as e:
        console.print(f"[bold red]Provider error:[/bold red] {e}")
        raise typer.Exit(EXIT_PROVIDER)

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_INVALID)

    if as_json:
        typer.echo(json.dumps(result.to_response(), indent=2))
        return

    _print_availability(
        result,
        _worker_names(config),
        title=f"Bookable slots {target.format('MMMM YYYY')} ({tz})",
    )


@app.command()
def select_worker(
    workers: Annotated[List[str], typer.Argument(help="Worker names (aliases) or provider ids.")],
    date: Annotated[str, typer.Option("--date", help="Booking date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Option("--time", "-t", help="Booking start time (HH:MM)")],
    config_file: ConfigOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    buffer: Annotated[Optional[int], typer.Option("--buffer", "-b", help="Buffer after each appointment in minutes")] = None,
    notice: Annotated[Optional[int], typer.Option("--notice", "-n", help="Minimum notice in minutes")] = None,
    now: NowOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
    verbose: VerboseOption = False,
):
    """
    Pick the worker to assign to a booking at a given date and time.

    Default workers are preferred over the others.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file, mock or mock_data is not None)
        tz = config.timezone

        day = pendulum.from_format(date, "YYYY-MM-DD", tz=tz).date()
        worker_ids = config.resolve_workers(workers)
        parameters = config.service_parameters(
            duration_minutes=duration,
            buffer_minutes=buffer,
            minimum_notice_minutes=notice,
        )

        reference_now = _parse_now(now, tz)
        client = _build_client(config, mock, mock_data)
        try:
            selection = asyncio.run(
                _build_service(config, client).select_worker(
                    worker_ids=worker_ids,
                    service_parameters=parameters,
                    day=day,
                    start_time=time,
                    timezone=tz,
                    default_worker_ids=config.default_worker_ids(),
                    now=reference_now,
                )
            )
        finally:
            client.close()

    except ProviderError as e:
        console.print(f"[bold red]Provider error:[/bold red] {e}")
        raise typer.Exit(EXIT_PROVIDER)

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_INVALID)

    if selection.selected is None:
        console.print(
            f"[yellow]⚠ None of the {selection.total_checked} worker(s) can take "
            f"{date} {time}.[/yellow]"
        )
        raise typer.Exit(EXIT_INVALID)

    console.print(
        f"[bold green]✓ Selected:[/bold green] {selection.selected.display_name()} "
        f"({selection.selected.id})"
    )
    for time_range in selection.free_time:
        console.print(f"  Free: {time_range} ({time_range.duration_minutes()} min)")
    others = [worker.display_name() for worker in selection.available[1:]]
    if others:
        console.print(f"  Also available: {', '.join(others)}")


@app.command()
def list_workers(
    config_file: ConfigOption = None,
):
    """
    List all configured workers.
    """
    try:
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_INVALID)

    if not config.workers:
        console.print("[yellow]No workers defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured workers",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Name (Alias)", style="bold yellow")
    table.add_column("Provider ID", style="dim")
    table.add_column("Default")

    for worker in config.workers:
        table.add_row(worker.name, worker.id, "✓" if worker.is_default else "")

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
