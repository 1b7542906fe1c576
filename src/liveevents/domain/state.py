"""
Event state snapshot and transition types.

EventState is recomputed on every tick and replaces the previous value as a
whole; nothing in it is ever mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from liveevents.domain.schedule import Schedule

NO_PHASE = ""


@dataclass(frozen=True)
class PhaseProgress:
    """Progress through the active phase."""

    fraction: float = 0.0
    remaining: timedelta = timedelta(0)

    @classmethod
    def zero(cls) -> PhaseProgress:
        return cls(0.0, timedelta(0))


@dataclass(frozen=True)
class Occurrence:
    """One concrete instance of the event's active window."""

    start: datetime
    end: datetime
    index: int

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class EventState:
    """What the event looks like at one instant."""

    current_start: datetime
    current_end: datetime
    occurrence_index: int
    is_event_active: bool = False
    active_phase_id: str = NO_PHASE
    phase_progress: PhaseProgress = PhaseProgress()

    @classmethod
    def pending(cls, schedule: Schedule) -> EventState:
        """State held before the first computation: the configured window, inactive."""
        return cls(
            current_start=schedule.start_date,
            current_end=schedule.end_date,
            occurrence_index=1,
        )

    @property
    def has_active_phase(self) -> bool:
        return self.is_event_active and self.active_phase_id != NO_PHASE


class EventChangeType(str, Enum):
    EVENT_STARTED = "event_started"
    EVENT_ENDED = "event_ended"
    PHASE_STARTED = "phase_started"
    PHASE_ENDED = "phase_ended"


@dataclass(frozen=True)
class EventChange:
    """A discrete transition between two consecutive snapshots."""

    change_type: EventChangeType
    phase_id: str = NO_PHASE
