"""
Schedule configuration types.

A Schedule is the immutable, externally supplied description of an event:
its first active window, an optional recurrence rule and the ordered phases
that split every occurrence's window.  Instances are validated on
construction; an invalid schedule never reaches the runtime.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

DEFAULT_PHASE_ID = "active"

# Minimum length of one recurrence unit in hours, used to check that an
# occurrence never overlaps the next one.  A month is a calendar month; its
# shortest length (28 days) is the bound.
HOURS_PER_CYCLE_UNIT: dict[str, int] = {
    "hourly": 1,
    "daily": 24,
    "weekly": 168,
    "monthly": 672,
    "yearly": 8760,
}


class TimeMode(str, Enum):
    """Which wall clock the schedule is compared against."""

    LOCAL = "local"
    UTC = "utc"


class RecurrenceCycle(str, Enum):
    """Unit by which recurring occurrences are shifted."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def normalise_datetime(value: datetime, mode: TimeMode) -> datetime:
    """Express ``value`` the way a schedule in ``mode`` stores it.

    UTC mode: aware UTC (naive values are taken as UTC).
    Local mode: naive local wall-clock time (aware values are converted).
    """
    if mode == TimeMode.UTC:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class EventPhase(BaseModel):
    """A named sub-interval of an occurrence with a fixed duration in hours."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Phase identifier")
    duration_hours: int = Field(..., gt=0, description="Phase length in whole hours")


class RecurrenceSettings(BaseModel):
    """Recurrence rule for a recurring schedule."""

    model_config = ConfigDict(frozen=True)

    cycle: RecurrenceCycle = RecurrenceCycle.WEEKLY
    interval: int = Field(default=1, ge=1, description="Number of cycle units between occurrences")
    max_occurrences: int = Field(
        default=0, ge=0, description="Total number of occurrences; 0 means unbounded"
    )

    @property
    def is_unbounded(self) -> bool:
        return self.max_occurrences == 0

    @property
    def interval_hours(self) -> int:
        """Shortest possible distance between two occurrence starts, in hours."""
        return HOURS_PER_CYCLE_UNIT[self.cycle.value] * self.interval


class Schedule(BaseModel):
    """Immutable event schedule.

    Naive ``start_date``/``end_date`` values are read in ``time_mode``.  Aware
    values are normalised: UTC mode keeps aware UTC datetimes, local mode
    converts to naive local wall-clock time.

    When ``phases`` is empty a single ``"active"`` phase covering the whole
    window is substituted.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "event"
    event_type: str = ""
    is_enabled: bool = True
    time_mode: TimeMode = TimeMode.LOCAL
    start_date: datetime
    end_date: datetime
    is_recurring: bool = False
    recurrence: RecurrenceSettings | None = Field(default=None, validate_default=True)
    phases: tuple[EventPhase, ...] = Field(default=(), validate_default=True)

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalise_datetime(cls, value: datetime, info: ValidationInfo) -> datetime:
        return normalise_datetime(value, info.data.get("time_mode", TimeMode.LOCAL))

    @field_validator("recurrence")
    @classmethod
    def _default_recurrence(
        cls, value: RecurrenceSettings | None, info: ValidationInfo
    ) -> RecurrenceSettings | None:
        if value is None and info.data.get("is_recurring"):
            return RecurrenceSettings()
        return value

    @field_validator("phases")
    @classmethod
    def _default_phases(
        cls, value: tuple[EventPhase, ...], info: ValidationInfo
    ) -> tuple[EventPhase, ...]:
        if value:
            return value
        start = info.data.get("start_date")
        end = info.data.get("end_date")
        if start is None or end is None or end <= start:
            # Reported by the window check below.
            return value
        hours = int((end - start).total_seconds() // 3600)
        return (EventPhase(id=DEFAULT_PHASE_ID, duration_hours=max(hours, 1)),)

    @model_validator(mode="after")
    def _check_consistency(self) -> "Schedule":
        if self.start_date > self.end_date:
            raise ValueError(f"Schedule {self.name!r}: the event starts later than its end")
        if self.start_date == self.end_date:
            raise ValueError(f"Schedule {self.name!r}: the event start date equals its end date")

        ids = [phase.id for phase in self.phases]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Schedule {self.name!r}: phase ids must be unique, got {ids}")

        window_hours = self.duration_hours
        phases_hours = sum(phase.duration_hours for phase in self.phases)
        if phases_hours != window_hours:
            raise ValueError(
                f"Schedule {self.name!r}: the event lasts {window_hours:g}h but its phases "
                f"add up to {phases_hours}h"
            )

        if self.is_recurring and self.recurrence is not None:
            if window_hours > self.recurrence.interval_hours:
                raise ValueError(
                    f"Schedule {self.name!r}: the event duration ({window_hours:g}h) exceeds "
                    f"the recurrence interval ({self.recurrence.interval_hours}h)"
                )
        return self

    @property
    def duration(self) -> timedelta:
        return self.end_date - self.start_date

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600

    @property
    def max_occurrences(self) -> int:
        """Configured occurrence cap; 1 for non-recurring, 0 for unbounded."""
        if not self.is_recurring or self.recurrence is None:
            return 1
        return self.recurrence.max_occurrences

    def phase_ids(self) -> list[str]:
        return [phase.id for phase in self.phases]
