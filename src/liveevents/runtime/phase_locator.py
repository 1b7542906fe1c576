"""Phase locator.

Finds the phase that is active a given number of hours into an occurrence.
The locator remembers the index of the last phase it found: within one
occurrence the active phase only ever moves forward, so the next lookup
starts scanning there instead of at the first phase.  The cached index is a
shortcut only; a miss from a non-zero cache rescans from the start, so the
answer always equals a full scan.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from liveevents.domain.schedule import EventPhase
from liveevents.domain.state import NO_PHASE, PhaseProgress

_HOURS_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PhaseLocation:
    """Result of a phase lookup."""

    phase_id: str
    progress: PhaseProgress
    index: int

    @property
    def found(self) -> bool:
        return self.phase_id != NO_PHASE


_NOT_FOUND = PhaseLocation(NO_PHASE, PhaseProgress.zero(), 0)


class PhaseLocator:
    """Locates the active phase of an occurrence with a cached scan position."""

    def __init__(self, phases: Sequence[EventPhase], cached_index: int = 0) -> None:
        self._phases = tuple(phases)
        starts: list[int] = []
        acc = 0
        for phase in self._phases:
            starts.append(acc)
            acc += phase.duration_hours
        self._starts = tuple(starts)
        self._cached_index = max(0, min(cached_index, len(self._phases)))

    @property
    def cached_index(self) -> int:
        return self._cached_index

    def reset(self) -> None:
        self._cached_index = 0

    def locate(self, occurrence_start: datetime, check_time: datetime) -> PhaseLocation:
        hours_elapsed = (check_time - occurrence_start).total_seconds() / 3600

        location = self._scan(hours_elapsed, self._cached_index)
        if not location.found and self._cached_index > 0:
            location = self._scan(hours_elapsed, 0)

        self._cached_index = location.index
        return location

    def _scan(self, hours_elapsed: float, first: int) -> PhaseLocation:
        for index in range(first, len(self._phases)):
            phase = self._phases[index]
            acc = self._starts[index]
            phase_end = acc + phase.duration_hours

            reached = hours_elapsed > acc or math.isclose(
                hours_elapsed, acc, rel_tol=_HOURS_TOLERANCE, abs_tol=_HOURS_TOLERANCE
            )
            if reached and hours_elapsed < phase_end:
                fraction = (hours_elapsed - acc) / phase.duration_hours
                fraction = min(max(fraction, 0.0), 1.0)
                remaining = timedelta(hours=phase_end - hours_elapsed)
                return PhaseLocation(phase.id, PhaseProgress(fraction, remaining), index)

        return _NOT_FOUND


def locate_phase(
    phases: Sequence[EventPhase],
    occurrence_start: datetime,
    check_time: datetime,
    cached_index: int = 0,
) -> PhaseLocation:
    """One-shot lookup starting from ``cached_index``; returns the new cache in ``index``."""
    return PhaseLocator(phases, cached_index).locate(occurrence_start, check_time)
