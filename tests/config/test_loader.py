"""Tests for schedule file loading."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
import yaml

from liveevents.config.loader import load_schedule, parse_schedule
from liveevents.domain.schedule import RecurrenceCycle, TimeMode
from liveevents.infra.exceptions import ScheduleConfigError

SCHEDULE_DATA = {
    "name": "spring-festival",
    "event_type": "festival",
    "time_mode": "utc",
    "start_date": "2025-03-01T00:00:00",
    "end_date": "2025-03-01T10:00:00",
    "is_recurring": True,
    "recurrence": {"cycle": "weekly", "interval": 1, "max_occurrences": 4},
    "phases": [{"id": "prep", "duration_hours": 4}, {"id": "live", "duration_hours": 6}],
}


def test_load_json(tmp_path):
    path = tmp_path / "festival.json"
    path.write_text(json.dumps(SCHEDULE_DATA))

    schedule = load_schedule(path)

    assert schedule.name == "spring-festival"
    assert schedule.event_type == "festival"
    assert schedule.time_mode == TimeMode.UTC
    assert schedule.start_date == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert schedule.recurrence.max_occurrences == 4
    assert schedule.phase_ids() == ["prep", "live"]


@pytest.mark.parametrize("suffix", [".yaml", ".yml"])
def test_load_yaml(tmp_path, suffix):
    path = tmp_path / f"festival{suffix}"
    path.write_text(yaml.safe_dump(SCHEDULE_DATA))

    schedule = load_schedule(str(path))

    assert schedule.name == "spring-festival"
    assert schedule.recurrence.cycle == RecurrenceCycle.WEEKLY


def test_missing_file(tmp_path):
    with pytest.raises(ScheduleConfigError, match="not found"):
        load_schedule(tmp_path / "missing.json")


def test_malformed_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ScheduleConfigError, match="Failed to parse"):
        load_schedule(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ScheduleConfigError, match="must contain a mapping"):
        load_schedule(path)


def test_inconsistent_schedule(tmp_path):
    data = dict(SCHEDULE_DATA, phases=[{"id": "prep", "duration_hours": 3}])
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(data))
    with pytest.raises(ScheduleConfigError, match="add up to 3h"):
        load_schedule(path)


def test_parse_reports_field_location():
    data = dict(SCHEDULE_DATA, recurrence={"cycle": "fortnightly"})
    with pytest.raises(ScheduleConfigError) as excinfo:
        parse_schedule(data)
    assert "recurrence.cycle" in str(excinfo.value)
