"""Time providers used by the event runtime.

A time provider supplies the wall clock in two representations: ``now()``
is naive local wall-clock time and ``utc()`` is timezone-aware UTC.  A
schedule's ``time_mode`` picks which of the two it is compared against.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from threading import Lock
from typing import Protocol, runtime_checkable

from liveevents.domain.schedule import TimeMode


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol implemented by wall-clock sources."""

    def now(self) -> datetime:
        """Return the current local wall-clock time (naive)."""

    def utc(self) -> datetime:
        """Return the current UTC time (aware)."""


class SystemTimeProvider:
    """Time provider backed by the system clock."""

    def now(self) -> datetime:
        return datetime.now()

    def utc(self) -> datetime:
        return datetime.now(timezone.utc)


class ControllableTimeProvider:
    """Deterministic time provider used for tests and simulations.

    Time advances only when :meth:`advance` or :meth:`set` is called.  Local
    time is the UTC instant viewed in ``local_tz`` (UTC by default), with the
    tzinfo stripped.
    """

    def __init__(self, epoch: datetime | None = None, local_tz: tzinfo = timezone.utc) -> None:
        if epoch is None:
            epoch = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self._current = self._ensure_aware(epoch)
        self._local_tz = local_tz
        self._lock = Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current.astimezone(self._local_tz).replace(tzinfo=None)

    def utc(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, moment: datetime) -> None:
        """Jump to ``moment``.  Naive values are read as UTC."""
        with self._lock:
            self._current = self._ensure_aware(moment)

    def advance(self, seconds: float = 0.0, **delta: float) -> datetime:
        """Advance by ``seconds`` plus any ``timedelta`` keyword (must be non-negative)."""
        step = timedelta(seconds=seconds, **delta)
        if step < timedelta(0):
            raise ValueError("step must be non-negative")
        with self._lock:
            self._current += step
            return self._current

    @staticmethod
    def _ensure_aware(moment: datetime) -> datetime:
        if moment.tzinfo is None or moment.tzinfo.utcoffset(moment) is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)


def read_clock(provider: TimeProvider, mode: TimeMode) -> datetime:
    """Return the clock reading a schedule in ``mode`` is compared against."""
    if mode == TimeMode.UTC:
        return provider.utc()
    return provider.now()
