"""
File-based schedule loading.

Loads a Schedule from a JSON or YAML file.

Expected format (JSON shown; YAML uses the same keys):
{
  "name": "spring-festival",
  "time_mode": "utc",
  "start_date": "2025-03-01T00:00:00",
  "end_date": "2025-03-01T10:00:00",
  "is_recurring": true,
  "recurrence": {"cycle": "weekly", "interval": 1, "max_occurrences": 0},
  "phases": [{"id": "prep", "duration_hours": 4}, {"id": "live", "duration_hours": 6}]
}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from liveevents.domain.schedule import Schedule
from liveevents.infra.exceptions import ScheduleConfigError

_logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def parse_schedule(data: dict[str, Any]) -> Schedule:
    """Validate a mapping into a Schedule, raising ScheduleConfigError on failure."""
    try:
        return Schedule.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'schedule'}: {err['msg']}"
            for err in e.errors()
        )
        raise ScheduleConfigError(f"Invalid schedule: {problems}") from e


def load_schedule(path: Path | str) -> Schedule:
    """Read and validate a schedule file (.json, .yaml or .yml)."""
    schedule_path = Path(path)
    if not schedule_path.is_file():
        raise ScheduleConfigError(f"Schedule file not found: {schedule_path}")

    try:
        with open(schedule_path, "r", encoding="utf-8") as f:
            if schedule_path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ScheduleConfigError(f"Failed to parse schedule file {schedule_path}: {e}") from e
    except OSError as e:
        raise ScheduleConfigError(f"Failed to read schedule file {schedule_path}: {e}") from e

    if not isinstance(data, dict):
        raise ScheduleConfigError(f"Schedule file {schedule_path} must contain a mapping")

    schedule = parse_schedule(data)
    _logger.debug(
        "Loaded schedule %s from %s (recurring=%s, phases=%d)",
        schedule.name,
        schedule_path,
        schedule.is_recurring,
        len(schedule.phases),
    )
    return schedule
