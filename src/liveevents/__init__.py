"""Time-driven event lifecycle engine.

Derives the live occurrence, active phase and phase progress of a scheduled
event from wall-clock time and publishes transitions to subscribers.
"""

from liveevents.domain.schedule import (
    EventPhase,
    RecurrenceCycle,
    RecurrenceSettings,
    Schedule,
    TimeMode,
)
from liveevents.domain.state import EventChange, EventChangeType, EventState, PhaseProgress
from liveevents.runtime.event_service import EventService, SchedulerStatus

__all__ = [
    "EventChange",
    "EventChangeType",
    "EventPhase",
    "EventService",
    "EventState",
    "PhaseProgress",
    "RecurrenceCycle",
    "RecurrenceSettings",
    "Schedule",
    "SchedulerStatus",
    "TimeMode",
]

__version__ = "0.1.0"
