"""
Schedule inspection command group.

Validates schedule files and reports the state a schedule would have at a
given moment, without starting the event loop.
"""

from __future__ import annotations

import json
from datetime import datetime
from itertools import islice
from pathlib import Path
from typing import Any

import typer

from liveevents.config.loader import load_schedule
from liveevents.domain.schedule import Schedule, normalise_datetime
from liveevents.domain.state import EventState
from liveevents.infra.exceptions import ScheduleConfigError
from liveevents.runtime.clock import SystemTimeProvider, read_clock
from liveevents.runtime.recurrence import compute_occurrence, iter_occurrences
from liveevents.runtime.state_calculator import calculate_state

app = typer.Typer(name="schedule", help="Schedule validation and inspection operations")


def load_schedule_or_exit(path: Path) -> Schedule:
    try:
        return load_schedule(path)
    except ScheduleConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _parse_moment(schedule: Schedule, raw: str | None) -> datetime:
    if raw is None:
        return read_clock(SystemTimeProvider(), schedule.time_mode)
    try:
        moment = datetime.fromisoformat(raw)
    except ValueError:
        typer.echo(f"Error: invalid ISO timestamp: {raw}", err=True)
        raise typer.Exit(2)
    return normalise_datetime(moment, schedule.time_mode)


def state_to_dict(state: EventState) -> dict[str, Any]:
    return {
        "occurrence_index": state.occurrence_index,
        "current_start": state.current_start.isoformat(),
        "current_end": state.current_end.isoformat(),
        "is_event_active": state.is_event_active,
        "active_phase_id": state.active_phase_id,
        "phase_progress": round(state.phase_progress.fraction, 6),
        "phase_time_remaining_seconds": int(state.phase_progress.remaining.total_seconds()),
    }


@app.command("validate")
def validate_schedule(
    path: Path = typer.Argument(..., help="Schedule file (.json, .yaml, .yml)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Check that a schedule file is well formed and internally consistent."""
    try:
        schedule = load_schedule(path)
    except ScheduleConfigError as e:
        if json_output:
            typer.echo(json.dumps({"status": "error", "errors": [str(e)]}, indent=2))
        else:
            typer.echo(f"✗ {path} is invalid", err=True)
            typer.echo(f"  Error: {e}", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "status": "ok",
                    "name": schedule.name,
                    "duration_hours": schedule.duration_hours,
                    "phases": schedule.phase_ids(),
                    "is_recurring": schedule.is_recurring,
                },
                indent=2,
            )
        )
    else:
        typer.echo(f"✓ {schedule.name} is valid ({len(schedule.phases)} phases)")


@app.command("status")
def schedule_status(
    path: Path = typer.Argument(..., help="Schedule file (.json, .yaml, .yml)"),
    at: str | None = typer.Option(None, "--at", help="ISO timestamp to evaluate (default: now)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the event state at a moment."""
    schedule = load_schedule_or_exit(path)
    moment = _parse_moment(schedule, at)
    state = calculate_state(schedule, moment)

    if json_output:
        payload = {"name": schedule.name, "at": moment.isoformat(), **state_to_dict(state)}
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Event: {schedule.name}")
    typer.echo(f"At: {moment.isoformat()}")
    typer.echo(
        f"Occurrence #{state.occurrence_index}: "
        f"{state.current_start.isoformat()} → {state.current_end.isoformat()}"
    )
    if state.is_event_active:
        progress = state.phase_progress
        typer.echo(
            f"Active: yes  phase={state.active_phase_id or '-'}  "
            f"progress={progress.fraction:.1%}  phase_remaining={progress.remaining}"
        )
    else:
        typer.echo("Active: no")


@app.command("occurrences")
def list_occurrences(
    path: Path = typer.Argument(..., help="Schedule file (.json, .yaml, .yml)"),
    count: int = typer.Option(5, "--count", "-n", min=1, help="Number of occurrences to list"),
    from_time: str | None = typer.Option(
        None, "--from", help="List occurrences current at or after this ISO timestamp"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List upcoming occurrences of a schedule."""
    schedule = load_schedule_or_exit(path)
    first_index = 1
    if from_time is not None:
        first_index = compute_occurrence(schedule, _parse_moment(schedule, from_time)).index

    occurrences = list(islice(iter_occurrences(schedule, first_index), count))

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {"index": o.index, "start": o.start.isoformat(), "end": o.end.isoformat()}
                    for o in occurrences
                ],
                indent=2,
            )
        )
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"Occurrences of {schedule.name}")
    table.add_column("#", style="yellow")
    table.add_column("Start", style="green")
    table.add_column("End", style="blue")
    for occurrence in occurrences:
        table.add_row(str(occurrence.index), occurrence.start.isoformat(), occurrence.end.isoformat())
    console.print(table)
