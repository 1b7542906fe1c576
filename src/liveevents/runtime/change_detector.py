"""Change detector: turns two consecutive snapshots into transitions.

Activation changes come before phase changes, and a phase end comes before
the next phase start, so subscribers never see two phases active at once.
"""

from __future__ import annotations

from liveevents.domain.state import NO_PHASE, EventChange, EventChangeType, EventState


def diff_states(previous: EventState, current: EventState) -> list[EventChange]:
    changes: list[EventChange] = []

    if previous == current:
        return changes

    if _rolled_over_while_active(previous, current):
        # Back-to-back occurrences: the poll never saw the gap between them.
        changes.append(EventChange(EventChangeType.EVENT_ENDED, previous.active_phase_id))
        if previous.active_phase_id != NO_PHASE:
            changes.append(EventChange(EventChangeType.PHASE_ENDED, previous.active_phase_id))
        changes.append(EventChange(EventChangeType.EVENT_STARTED, current.active_phase_id))
        if current.active_phase_id != NO_PHASE:
            changes.append(EventChange(EventChangeType.PHASE_STARTED, current.active_phase_id))
        return changes

    if previous.is_event_active != current.is_event_active:
        change_type = (
            EventChangeType.EVENT_STARTED if current.is_event_active else EventChangeType.EVENT_ENDED
        )
        changes.append(EventChange(change_type, current.active_phase_id))

    if previous.active_phase_id != current.active_phase_id:
        if previous.active_phase_id != NO_PHASE:
            changes.append(EventChange(EventChangeType.PHASE_ENDED, previous.active_phase_id))
        if current.active_phase_id != NO_PHASE:
            changes.append(EventChange(EventChangeType.PHASE_STARTED, current.active_phase_id))

    return changes


def _rolled_over_while_active(previous: EventState, current: EventState) -> bool:
    return (
        previous.is_event_active
        and current.is_event_active
        and previous.occurrence_index != current.occurrence_index
    )
