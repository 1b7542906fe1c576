"""Event Service: wall-clock-driven event lifecycle loop.

Recomputes the state of one scheduled event at a fixed interval, diffs it
against the previous snapshot and publishes the resulting transitions
(event started/ended, phase started/ended) exactly once each.

Lifecycle: UNINITIALIZED → ACTIVE → TERMINATED.
           initialize() computes the first snapshot and starts a background
           daemon thread; tick() can be called manually for testing.
           The loop terminates on its own once the final occurrence is over.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum

from liveevents.domain.schedule import Schedule
from liveevents.domain.state import NO_PHASE, EventChange, EventChangeType, EventState, PhaseProgress
from liveevents.infra.settings import settings
from liveevents.runtime.change_detector import diff_states
from liveevents.runtime.clock import TimeProvider, read_clock
from liveevents.runtime.recurrence import is_final_occurrence
from liveevents.runtime.state_calculator import StateCalculator
from liveevents.runtime.streams import EventStream, ObservableValue

logger = logging.getLogger(__name__)


class SchedulerStatus(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    TERMINATED = "terminated"


def _whole_seconds(delta: timedelta) -> timedelta:
    return timedelta(seconds=int(delta.total_seconds()))


class EventService:
    """Publishes the live state of one scheduled event.

    Readers use the query methods or subscribe to the channels below; both
    only ever see complete snapshots, which are replaced by reference.

    Channels:
        current_state      EventState, on every change
        event_changes      every EventChange, in order
        event_active       bool, deduplicated
        active_phase       phase id ("" when none), deduplicated
        phase_progress     PhaseProgress, zero when no phase is active, deduplicated
        time_remaining     whole seconds to the occurrence end; zero while inactive
        time_until_start   whole seconds to the occurrence start; zero while active
        event_started / event_ended / phase_started / phase_ended
                           phase id carried by the transition
    """

    def __init__(
        self,
        schedule: Schedule,
        time_provider: TimeProvider,
        *,
        tick_interval_seconds: float | None = None,
    ):
        if schedule is None:
            raise ValueError("schedule is required")
        if time_provider is None:
            raise ValueError("time_provider is required")

        self._schedule = schedule
        self._clock = time_provider
        self._interval_s = (
            tick_interval_seconds if tick_interval_seconds is not None else settings.tick_interval_seconds
        )
        if self._interval_s <= 0:
            raise ValueError("tick_interval_seconds must be greater than zero")

        self._calculator = StateCalculator(schedule)
        self._status = SchedulerStatus.UNINITIALIZED

        # Channels
        self.current_state: ObservableValue[EventState] = ObservableValue(
            EventState.pending(schedule), "current_state"
        )
        self.event_changes: EventStream[EventChange] = EventStream("event_changes")
        self.event_active: ObservableValue[bool] = ObservableValue(False, "event_active")
        self.active_phase: ObservableValue[str] = ObservableValue(NO_PHASE, "active_phase")
        self.phase_progress: ObservableValue[PhaseProgress] = ObservableValue(
            PhaseProgress.zero(), "phase_progress"
        )
        self.time_remaining: ObservableValue[timedelta] = ObservableValue(timedelta(0), "time_remaining")
        self.time_until_start: ObservableValue[timedelta] = ObservableValue(
            timedelta(0), "time_until_start"
        )
        self.event_started: EventStream[str] = EventStream("event_started")
        self.event_ended: EventStream[str] = EventStream("event_ended")
        self.phase_started: EventStream[str] = EventStream("phase_started")
        self.phase_ended: EventStream[str] = EventStream("phase_ended")

        self._transition_channels: dict[EventChangeType, EventStream[str]] = {
            EventChangeType.EVENT_STARTED: self.event_started,
            EventChangeType.EVENT_ENDED: self.event_ended,
            EventChangeType.PHASE_STARTED: self.phase_started,
            EventChangeType.PHASE_ENDED: self.phase_ended,
        }

        # Lifecycle
        self._tick_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def state(self) -> EventState:
        """Last published snapshot."""
        return self.current_state.value

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Queries (read the published snapshot; never recompute)
    # ------------------------------------------------------------------

    def is_event_active(self) -> bool:
        return self.state.is_event_active

    def is_phase_active(self, phase_id: str) -> bool:
        state = self.state
        return state.is_event_active and state.active_phase_id == phase_id

    def get_phase_progress(self) -> PhaseProgress:
        return self.state.phase_progress

    def get_time_remaining(self) -> timedelta:
        return self.state.current_end - self.get_current_event_time()

    def get_time_until_start(self) -> timedelta:
        return self.state.current_start - self.get_current_event_time()

    def get_current_event_time(self) -> datetime:
        return read_clock(self._clock, self._schedule.time_mode)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, *, start_loop: bool = True) -> tuple[bool, str | None]:
        """Compute the first snapshot and start ticking.

        Returns ``(True, None)`` on success, ``(False, reason)`` when the
        event is disabled or already over for good.
        """
        name = self._schedule.name
        if self._status != SchedulerStatus.UNINITIALIZED:
            return False, f"Event {name} is already {self._status.value}."

        if not self._schedule.is_enabled:
            reason = f"Unable to initialize event {name}. It is not enabled."
            logger.warning("EventService[%s]: %s", name, reason)
            return False, reason

        with self._tick_lock:
            now = self.get_current_event_time()
            state = self._calculator.calculate(now)
            self._publish(state)

            if self._is_complete(state, now):
                if not self._schedule.is_recurring:
                    reason = f"Unable to initialize event {name}. It has completed and will not occur again."
                    self._status = SchedulerStatus.TERMINATED
                    logger.info("EventService[%s]: %s", name, reason)
                    return False, reason
                if is_final_occurrence(self._schedule, state.occurrence_index):
                    reason = (
                        f"Unable to initialize event {name}. It is complete and will not recur. "
                        f"The maximum number of recurrences {state.occurrence_index} has been reached."
                    )
                    self._status = SchedulerStatus.TERMINATED
                    logger.info("EventService[%s]: %s", name, reason)
                    return False, reason

            self._status = SchedulerStatus.ACTIVE
            self._publish_time(state, now)

        logger.info(
            "EventService[%s]: initialized (time_mode=%s, start=%s, end=%s, occurrence=%d, phase=%s)",
            name,
            self._schedule.time_mode.value,
            state.current_start.isoformat(),
            state.current_end.isoformat(),
            state.occurrence_index,
            state.active_phase_id or "-",
        )
        if start_loop:
            self.start()
        return True, None

    def tick(self) -> list[EventChange]:
        """Run one recompute-and-publish cycle.  Returns the published transitions."""
        with self._tick_lock:
            if self._status != SchedulerStatus.ACTIVE:
                return []

            now = self.get_current_event_time()
            previous = self.state
            if now < previous.current_start:
                # Nothing can change before the occurrence starts.
                self.time_until_start.set(_whole_seconds(previous.current_start - now))
                return []

            state = self._calculator.calculate(now)
            changes = self._publish(state)

            if self._is_complete(state, now) and is_final_occurrence(self._schedule, state.occurrence_index):
                self._terminate(state)
                return changes

            self._publish_time(state, now)
            return changes

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        if self._status != SchedulerStatus.ACTIVE:
            logger.warning(
                "EventService[%s]: not started, status is %s", self._schedule.name, self._status.value
            )
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"EventService-{self._schedule.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "EventService[%s]: started (interval=%.3gs)", self._schedule.name, self._interval_s
        )

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval_s + 5)
        if thread is not None and not thread.is_alive():
            self._thread = None
        logger.info("EventService[%s]: stopped", self._schedule.name)

    def dispose(self) -> None:
        """Stop ticking and close every channel."""
        self.stop()
        with self._tick_lock:
            self._status = SchedulerStatus.TERMINATED
        for channel in (
            self.current_state,
            self.event_changes,
            self.event_active,
            self.active_phase,
            self.phase_progress,
            self.time_remaining,
            self.time_until_start,
            *self._transition_channels.values(),
        ):
            channel.close()
        logger.debug("EventService[%s]: disposed", self._schedule.name)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop: sleep → tick → repeat."""
        while not self._stop_event.wait(timeout=self._interval_s):
            try:
                self.tick()
            except Exception:
                logger.exception("EventService[%s]: tick failed", self._schedule.name)
            if self._status == SchedulerStatus.TERMINATED:
                break

    def _publish(self, state: EventState) -> list[EventChange]:
        changes = diff_states(self.state, state)

        self.current_state.set(state)
        self.event_active.set(state.is_event_active)
        self.active_phase.set(state.active_phase_id)
        self.phase_progress.set(state.phase_progress)

        for change in changes:
            logger.debug(
                "EventService[%s]: %s (phase=%s, occurrence=%d)",
                self._schedule.name,
                change.change_type.value,
                change.phase_id or "-",
                state.occurrence_index,
            )
            self.event_changes.emit(change)
            self._transition_channels[change.change_type].emit(change.phase_id)

        return changes

    def _publish_time(self, state: EventState, now: datetime) -> None:
        if state.is_event_active:
            self.time_remaining.set(_whole_seconds(state.current_end - now))
            self.time_until_start.set(timedelta(0))
        else:
            self.time_until_start.set(_whole_seconds(state.current_start - now))
            self.time_remaining.set(timedelta(0))

    def _terminate(self, state: EventState) -> None:
        self._status = SchedulerStatus.TERMINATED
        self._stop_event.set()
        if self._schedule.is_recurring:
            logger.info(
                "EventService[%s]: event is complete and will not recur; "
                "the maximum number of recurrences (%d) has been reached",
                self._schedule.name,
                state.occurrence_index,
            )
        else:
            logger.info(
                "EventService[%s]: event has completed and will not occur again",
                self._schedule.name,
            )

    @staticmethod
    def _is_complete(state: EventState, now: datetime) -> bool:
        return now > state.current_end
