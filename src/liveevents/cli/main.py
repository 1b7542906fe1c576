"""
Main CLI application using Typer.

Provides the operator command-line interface for liveevents: schedule
inspection commands and a foreground runner for the event loop.
"""

from __future__ import annotations

import time
from pathlib import Path

import typer

from liveevents.domain.state import EventChange
from liveevents.infra.logging import configure_logging, get_logger
from liveevents.infra.settings import settings
from liveevents.runtime.clock import SystemTimeProvider
from liveevents.runtime.event_service import EventService, SchedulerStatus

from .commands import schedule as schedule_cmd
from .commands.schedule import load_schedule_or_exit

app = typer.Typer(help="liveevents operator CLI")

app.add_typer(schedule_cmd.app, name="schedule", help="Schedule validation and inspection operations")


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
    log_format: str | None = typer.Option(None, "--log-format", help="json or console (overrides LOG_FORMAT)"),
):
    """Configure logging for every command."""
    configure_logging(level=log_level, log_format=log_format)


@app.command("run")
def run_event(
    path: Path = typer.Argument(..., help="Schedule file (.json, .yaml, .yml)"),
    seconds: float | None = typer.Option(
        None, "--seconds", help="Stop after this many seconds (default: until the event is over)"
    ),
    interval: float | None = typer.Option(
        None, "--interval", help="Tick interval in seconds (default: LIVEEVENTS_TICK_INTERVAL_SECONDS)"
    ),
):
    """Run the event loop in the foreground and print every transition."""
    log = get_logger(__name__)
    schedule = load_schedule_or_exit(path)
    service = EventService(
        schedule,
        SystemTimeProvider(),
        tick_interval_seconds=interval or settings.tick_interval_seconds,
    )

    def _print_change(change: EventChange) -> None:
        stamp = service.get_current_event_time().isoformat(timespec="seconds")
        typer.echo(f"{stamp} {change.change_type.value} {change.phase_id or '-'}")

    service.event_changes.subscribe(_print_change)

    ok, reason = service.initialize()
    if not ok:
        typer.echo(reason, err=True)
        service.dispose()
        raise typer.Exit(1)

    log.info("run_started", event_name=schedule.name, seconds=seconds)
    deadline = time.monotonic() + seconds if seconds is not None else None
    try:
        while service.status == SchedulerStatus.ACTIVE:
            if deadline is not None and time.monotonic() >= deadline:
                break
            time.sleep(0.2)
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
    finally:
        final_status = service.status
        service.dispose()
    log.info("run_finished", event_name=schedule.name, status=final_status.value)
