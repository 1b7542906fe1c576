"""
Global test configuration for liveevents.

This module provides global pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from liveevents.domain.schedule import Schedule
from liveevents.runtime.clock import ControllableTimeProvider

# Day 0 of the reference schedules: Monday 2025-03-03 00:00 UTC.
DAY0 = datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)


def make_schedule(**overrides) -> Schedule:
    """10h weekly schedule with prep(4h) + live(6h), unless overridden."""
    data = {
        "name": "festival",
        "time_mode": "utc",
        "start_date": DAY0,
        "end_date": DAY0.replace(hour=10),
        "is_recurring": True,
        "recurrence": {"cycle": "weekly", "interval": 1, "max_occurrences": 0},
        "phases": [
            {"id": "prep", "duration_hours": 4},
            {"id": "live", "duration_hours": 6},
        ],
    }
    data.update(overrides)
    return Schedule.model_validate(data)


@pytest.fixture
def weekly_schedule() -> Schedule:
    return make_schedule()


@pytest.fixture
def clock() -> ControllableTimeProvider:
    return ControllableTimeProvider(epoch=DAY0)


@pytest.fixture
def schedule_factory():
    return make_schedule
