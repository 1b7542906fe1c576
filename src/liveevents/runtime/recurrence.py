"""Recurrence calculator.

Pure functions mapping (schedule, wall-clock time) to the occurrence that is
current at that time.  The first configured window is the anchor: it is
returned for any time inside or before it, and every later occurrence ``k``
starts at ``anchor + (k - 1) * interval`` cycle units.

Month and year arithmetic goes through ``dateutil.relativedelta`` so that
variable month lengths clamp instead of overflowing (Jan 31 + 1 month is
Feb 28).  Every start is computed from the anchor, never from the previous
occurrence, so a clamped month does not shift the ones after it.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from dateutil.relativedelta import relativedelta

from liveevents.domain.schedule import RecurrenceCycle, RecurrenceSettings, Schedule
from liveevents.domain.state import Occurrence

FIRST_OCCURRENCE = 1

# Upper bound used when max_occurrences is 0 (unbounded).
UNBOUNDED_OCCURRENCES = 2**31 - 1


def _cycle_delta(recurrence: RecurrenceSettings, steps: int) -> relativedelta:
    units = recurrence.interval * steps
    cycle = recurrence.cycle
    if cycle == RecurrenceCycle.HOURLY:
        return relativedelta(hours=units)
    if cycle == RecurrenceCycle.DAILY:
        return relativedelta(days=units)
    if cycle == RecurrenceCycle.WEEKLY:
        return relativedelta(weeks=units)
    if cycle == RecurrenceCycle.MONTHLY:
        return relativedelta(months=units)
    if cycle == RecurrenceCycle.YEARLY:
        return relativedelta(years=units)
    raise ValueError(f"Unsupported recurrence cycle: {cycle!r}")


def occurrence_limit(schedule: Schedule) -> int:
    """Highest occurrence index the schedule can reach."""
    if not schedule.is_recurring or schedule.recurrence is None:
        return FIRST_OCCURRENCE
    if schedule.recurrence.is_unbounded:
        return UNBOUNDED_OCCURRENCES
    return schedule.recurrence.max_occurrences


def occurrence_at(schedule: Schedule, index: int) -> Occurrence:
    """Return occurrence ``index`` (1-based) of ``schedule``."""
    if index < FIRST_OCCURRENCE:
        raise ValueError(f"occurrence index must be >= 1, got {index}")
    if index == FIRST_OCCURRENCE or schedule.recurrence is None:
        return Occurrence(schedule.start_date, schedule.end_date, FIRST_OCCURRENCE)
    start = schedule.start_date + _cycle_delta(schedule.recurrence, index - 1)
    return Occurrence(start, start + schedule.duration, index)


def estimate_occurrence(schedule: Schedule, check_time: datetime) -> int:
    """Closed-form guess of the occurrence index for ``check_time``.

    May be off by one in either direction for monthly and yearly cycles;
    :func:`compute_occurrence` corrects it.
    """
    recurrence = schedule.recurrence
    if recurrence is None:
        return FIRST_OCCURRENCE

    start = schedule.start_date
    elapsed = check_time - start
    interval = recurrence.interval
    cycle = recurrence.cycle

    if cycle == RecurrenceCycle.HOURLY:
        units = int(elapsed.total_seconds() // 3600)
        return units // interval + 1
    if cycle == RecurrenceCycle.DAILY:
        return elapsed.days // interval + 1
    if cycle == RecurrenceCycle.WEEKLY:
        return elapsed.days // (7 * interval) + 1
    if cycle == RecurrenceCycle.MONTHLY:
        months = (check_time.year - start.year) * 12 + (check_time.month - start.month)
        return months // interval + 1
    return (check_time.year - start.year) // interval + 1


def compute_occurrence(schedule: Schedule, check_time: datetime) -> Occurrence:
    """Return the occurrence that is current at ``check_time``.

    The current occurrence is the first one whose end is not before
    ``check_time``: either the one containing it or the next one to start.
    When the occurrence cap is reached without such an occurrence, the last
    occurrence is returned and the event is over for good.
    """
    first = occurrence_at(schedule, FIRST_OCCURRENCE)
    if not schedule.is_recurring or schedule.recurrence is None:
        return first
    if check_time <= first.end:
        return first

    limit = occurrence_limit(schedule)
    index = min(max(estimate_occurrence(schedule, check_time), FIRST_OCCURRENCE), limit)

    # Overshoot: an earlier occurrence may still hold check_time.
    while index > FIRST_OCCURRENCE and check_time <= occurrence_at(schedule, index - 1).end:
        index -= 1

    while True:
        occurrence = occurrence_at(schedule, index)
        if check_time <= occurrence.end or index >= limit:
            return occurrence
        index += 1


def iter_occurrences(schedule: Schedule, first_index: int = FIRST_OCCURRENCE) -> Iterator[Occurrence]:
    """Yield occurrences from ``first_index`` up to the schedule's cap."""
    limit = occurrence_limit(schedule)
    index = first_index
    while index <= limit:
        yield occurrence_at(schedule, index)
        index += 1


def is_final_occurrence(schedule: Schedule, occurrence_index: int) -> bool:
    """True when no occurrence follows ``occurrence_index``."""
    if not schedule.is_recurring or schedule.recurrence is None:
        return True
    if schedule.recurrence.is_unbounded:
        return False
    return occurrence_index >= schedule.recurrence.max_occurrences
