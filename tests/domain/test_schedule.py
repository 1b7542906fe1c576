"""Tests for Schedule construction and validation.

Verifies:
- A consistent schedule is accepted and exposes its derived values
- Missing phases default to a single "active" phase
- Window, phase and recurrence consistency errors are rejected
- Datetimes are normalised according to time_mode
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import DAY0, make_schedule
from liveevents.domain.schedule import (
    DEFAULT_PHASE_ID,
    EventPhase,
    RecurrenceCycle,
    RecurrenceSettings,
    Schedule,
    TimeMode,
    normalise_datetime,
)


class TestValidSchedule:
    def test_reference_schedule(self):
        schedule = make_schedule()
        assert schedule.duration == timedelta(hours=10)
        assert schedule.duration_hours == 10
        assert schedule.phase_ids() == ["prep", "live"]
        assert schedule.recurrence.cycle == RecurrenceCycle.WEEKLY
        assert schedule.max_occurrences == 0

    def test_non_recurring_has_single_occurrence(self):
        schedule = make_schedule(is_recurring=False, recurrence=None)
        assert schedule.recurrence is None
        assert schedule.max_occurrences == 1

    def test_recurring_without_rule_defaults_to_weekly(self):
        schedule = make_schedule(recurrence=None)
        assert schedule.recurrence == RecurrenceSettings()
        assert schedule.recurrence.cycle == RecurrenceCycle.WEEKLY
        assert schedule.recurrence.is_unbounded

    def test_default_phase_covers_window(self):
        schedule = make_schedule(phases=[])
        assert len(schedule.phases) == 1
        assert schedule.phases[0].id == DEFAULT_PHASE_ID
        assert schedule.phases[0].duration_hours == 10

    def test_phases_omitted_entirely(self):
        schedule = Schedule(
            name="bare",
            time_mode=TimeMode.UTC,
            start_date=DAY0,
            end_date=DAY0 + timedelta(hours=3),
        )
        assert schedule.phase_ids() == [DEFAULT_PHASE_ID]
        assert schedule.is_enabled is True

    def test_schedule_is_frozen(self):
        schedule = make_schedule()
        with pytest.raises(ValidationError):
            schedule.name = "other"


class TestInvalidSchedule:
    def test_start_after_end(self):
        with pytest.raises(ValidationError, match="starts later than its end"):
            make_schedule(start_date=DAY0 + timedelta(hours=11), phases=[])

    def test_start_equals_end(self):
        with pytest.raises(ValidationError, match="start date equals its end date"):
            make_schedule(end_date=DAY0, phases=[])

    def test_phase_sum_mismatch(self):
        with pytest.raises(ValidationError, match="add up to 9h"):
            make_schedule(phases=[{"id": "prep", "duration_hours": 4}, {"id": "live", "duration_hours": 5}])

    def test_duplicate_phase_ids(self):
        with pytest.raises(ValidationError, match="must be unique"):
            make_schedule(phases=[{"id": "a", "duration_hours": 5}, {"id": "a", "duration_hours": 5}])

    def test_window_longer_than_interval(self):
        with pytest.raises(ValidationError, match="exceeds the recurrence interval"):
            make_schedule(
                end_date=DAY0 + timedelta(hours=25),
                recurrence={"cycle": "daily"},
                phases=[{"id": "long", "duration_hours": 25}],
            )

    def test_window_longer_than_shortest_month(self):
        with pytest.raises(ValidationError, match="exceeds the recurrence interval"):
            make_schedule(
                end_date=DAY0 + timedelta(hours=673),
                recurrence={"cycle": "monthly"},
                phases=[{"id": "long", "duration_hours": 673}],
            )

    def test_window_longer_than_interval_allowed_when_not_recurring(self):
        schedule = make_schedule(
            is_recurring=False,
            end_date=DAY0 + timedelta(hours=25),
            recurrence={"cycle": "daily"},
            phases=[{"id": "long", "duration_hours": 25}],
        )
        assert schedule.duration_hours == 25

    @pytest.mark.parametrize("duration", [0, -1])
    def test_phase_duration_must_be_positive(self, duration):
        with pytest.raises(ValidationError):
            EventPhase(id="p", duration_hours=duration)

    def test_phase_id_required(self):
        with pytest.raises(ValidationError):
            EventPhase(id="", duration_hours=1)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            RecurrenceSettings(interval=0)

    def test_negative_max_occurrences(self):
        with pytest.raises(ValidationError):
            RecurrenceSettings(max_occurrences=-1)


class TestTimeModes:
    def test_utc_mode_makes_naive_dates_aware(self):
        schedule = make_schedule(
            start_date=datetime(2025, 3, 3, 0, 0),
            end_date=datetime(2025, 3, 3, 10, 0),
        )
        assert schedule.start_date == DAY0
        assert schedule.start_date.tzinfo is not None

    def test_utc_mode_converts_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        schedule = make_schedule(
            start_date=datetime(2025, 3, 3, 2, 0, tzinfo=plus_two),
            end_date=datetime(2025, 3, 3, 12, 0, tzinfo=plus_two),
        )
        assert schedule.start_date == DAY0
        assert schedule.start_date.utcoffset() == timedelta(0)

    def test_local_mode_keeps_naive_dates(self):
        schedule = make_schedule(
            time_mode="local",
            start_date=datetime(2025, 3, 3, 0, 0),
            end_date=datetime(2025, 3, 3, 10, 0),
        )
        assert schedule.time_mode == TimeMode.LOCAL
        assert schedule.start_date == datetime(2025, 3, 3, 0, 0)
        assert schedule.start_date.tzinfo is None

    def test_local_mode_strips_tzinfo(self):
        assert normalise_datetime(DAY0, TimeMode.LOCAL).tzinfo is None
