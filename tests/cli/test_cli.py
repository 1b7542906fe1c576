"""
Tests for the liveevents CLI.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from liveevents.cli.main import app

runner = CliRunner()

SCHEDULE_DATA = {
    "name": "spring-festival",
    "time_mode": "utc",
    "start_date": "2025-03-01T00:00:00",
    "end_date": "2025-03-01T10:00:00",
    "is_recurring": True,
    "recurrence": {"cycle": "weekly", "interval": 1, "max_occurrences": 4},
    "phases": [{"id": "prep", "duration_hours": 4}, {"id": "live", "duration_hours": 6}],
}


@pytest.fixture(autouse=True)
def _detach_cli_log_handler():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == "liveevents":
            root.removeHandler(handler)


@pytest.fixture
def schedule_file(tmp_path):
    path = tmp_path / "festival.json"
    path.write_text(json.dumps(SCHEDULE_DATA))
    return path


def _write(tmp_path, data, name="schedule.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return path


def test_app_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "liveevents operator CLI" in result.output


class TestValidate:
    def test_valid(self, schedule_file):
        result = runner.invoke(app, ["schedule", "validate", str(schedule_file)])
        assert result.exit_code == 0
        assert "spring-festival is valid (2 phases)" in result.output

    def test_valid_json(self, schedule_file):
        result = runner.invoke(app, ["schedule", "validate", str(schedule_file), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["status"] == "ok"
        assert payload["phases"] == ["prep", "live"]
        assert payload["duration_hours"] == 10

    def test_invalid(self, tmp_path):
        path = _write(tmp_path, dict(SCHEDULE_DATA, end_date="2025-03-01T09:00:00"))
        result = runner.invoke(app, ["schedule", "validate", str(path)])
        assert result.exit_code == 1
        assert "is invalid" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["schedule", "validate", str(tmp_path / "nope.json"), "--json"])
        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["status"] == "error"


class TestStatus:
    def test_active_phase(self, schedule_file):
        result = runner.invoke(
            app, ["schedule", "status", str(schedule_file), "--at", "2025-03-01T03:00:00", "--json"]
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["name"] == "spring-festival"
        assert payload["occurrence_index"] == 1
        assert payload["is_event_active"] is True
        assert payload["active_phase_id"] == "prep"
        assert payload["phase_progress"] == 0.75
        assert payload["phase_time_remaining_seconds"] == 3600

    def test_between_occurrences(self, schedule_file):
        result = runner.invoke(
            app, ["schedule", "status", str(schedule_file), "--at", "2025-03-03T12:00:00"]
        )
        assert result.exit_code == 0
        assert "Occurrence #2" in result.output
        assert "Active: no" in result.output

    def test_bad_timestamp(self, schedule_file):
        result = runner.invoke(app, ["schedule", "status", str(schedule_file), "--at", "yesterday"])
        assert result.exit_code == 2
        assert "invalid ISO timestamp" in result.output


class TestOccurrences:
    def test_listing_stops_at_cap(self, schedule_file):
        result = runner.invoke(
            app, ["schedule", "occurrences", str(schedule_file), "--count", "10", "--json"]
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [o["index"] for o in payload] == [1, 2, 3, 4]
        assert payload[1]["start"] == "2025-03-08T00:00:00+00:00"

    def test_from_time(self, schedule_file):
        result = runner.invoke(
            app,
            [
                "schedule",
                "occurrences",
                str(schedule_file),
                "-n",
                "2",
                "--from",
                "2025-03-02T00:00:00",
                "--json",
            ],
        )
        assert result.exit_code == 0
        assert [o["index"] for o in json.loads(result.stdout)] == [2, 3]

    def test_table(self, schedule_file):
        result = runner.invoke(app, ["schedule", "occurrences", str(schedule_file), "-n", "2"])
        assert result.exit_code == 0
        assert "Occurrences of spring-festival" in result.output


class TestRun:
    def test_refuses_finished_event(self, tmp_path):
        path = _write(tmp_path, dict(SCHEDULE_DATA, is_recurring=False, recurrence=None))
        result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1
        assert "It has completed and will not occur again." in result.output

    def test_prints_transitions(self, tmp_path):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        start = now - timedelta(minutes=30)
        data = {
            "name": "hourly-drop",
            "time_mode": "utc",
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(hours=1)).isoformat(),
            "is_recurring": True,
            "recurrence": {"cycle": "hourly"},
        }
        path = _write(tmp_path, data)

        result = runner.invoke(app, ["run", str(path), "--seconds", "0.3", "--interval", "0.05"])

        assert result.exit_code == 0
        assert "event_started active" in result.output
        assert "phase_started active" in result.output
