"""Notification channels used to publish event state.

Two primitives:

- :class:`EventStream` broadcasts discrete values to every subscriber.
- :class:`ObservableValue` holds a current value and notifies subscribers
  only when a new value differs from the held one.

Subscribers may attach and detach at any time, including from inside a
callback: delivery iterates over a snapshot of the subscriber list taken
under the lock.
"""

from __future__ import annotations

from threading import Lock
from typing import Callable, Generic, TypeVar

from liveevents.infra.exceptions import ChannelClosedError

T = TypeVar("T")

Callback = Callable[[T], None]


class Subscription:
    """Handle returned by ``subscribe``; ``dispose()`` detaches the callback."""

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach: Callable[[], None] | None = detach

    @property
    def disposed(self) -> bool:
        return self._detach is None

    def dispose(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()


class EventStream(Generic[T]):
    """Multi-consumer broadcast channel."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._subscribers: list[Callback[T]] = []
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: Callback[T]) -> Subscription:
        with self._lock:
            if self._closed:
                raise ChannelClosedError(f"Channel {self.name or '<unnamed>'} is closed")
            self._subscribers.append(callback)
        return Subscription(lambda: self._unsubscribe(callback))

    def emit(self, value: T) -> None:
        with self._lock:
            if self._closed:
                return
            snapshot = list(self._subscribers)
        for callback in snapshot:
            callback(value)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscribers.clear()

    def _unsubscribe(self, callback: Callback[T]) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass


class ObservableValue(EventStream[T]):
    """Current value plus change notifications (deduplicated)."""

    def __init__(self, initial: T, name: str = "") -> None:
        super().__init__(name)
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Replace the held value.  Returns True when subscribers were notified."""
        with self._lock:
            if self._closed or value == self._value:
                return False
            self._value = value
        self.emit(value)
        return True
