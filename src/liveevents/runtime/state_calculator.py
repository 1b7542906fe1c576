"""State calculator: recurrence + phase lookup assembled into one snapshot."""

from __future__ import annotations

from datetime import datetime

from liveevents.domain.schedule import Schedule
from liveevents.domain.state import NO_PHASE, EventState, PhaseProgress
from liveevents.runtime.phase_locator import PhaseLocator
from liveevents.runtime.recurrence import compute_occurrence


class StateCalculator:
    """Computes the EventState of one schedule.

    Owns the schedule's PhaseLocator so the cached phase index survives
    between calls.
    """

    def __init__(self, schedule: Schedule, locator: PhaseLocator | None = None) -> None:
        self._schedule = schedule
        self._locator = locator if locator is not None else PhaseLocator(schedule.phases)

    @property
    def locator(self) -> PhaseLocator:
        return self._locator

    def calculate(self, check_time: datetime) -> EventState:
        occurrence = compute_occurrence(self._schedule, check_time)
        is_active = occurrence.contains(check_time)

        phase_id = NO_PHASE
        progress = PhaseProgress.zero()
        if is_active:
            location = self._locator.locate(occurrence.start, check_time)
            phase_id = location.phase_id
            progress = location.progress

        return EventState(
            current_start=occurrence.start,
            current_end=occurrence.end,
            occurrence_index=occurrence.index,
            is_event_active=is_active,
            active_phase_id=phase_id,
            phase_progress=progress,
        )


def calculate_state(schedule: Schedule, check_time: datetime) -> EventState:
    """Stateless variant of :meth:`StateCalculator.calculate`."""
    return StateCalculator(schedule).calculate(check_time)
