"""Clock abstraction for expiry, windows and token lifetimes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Protocol for getting the current time.  Inject a fake in tests."""

    def now(self) -> datetime: ...


class SystemClock:
    """Default clock backed by the real system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class ManualClock:
    """Clock that only moves when told to.

    Parameters:
        start: Initial time as epoch seconds.
    """

    def __init__(self, start: float = 1_000_000.0) -> None:
        self._now = datetime.fromtimestamp(start, tz=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)

    def set(self, when: datetime) -> None:
        self._now = when


def timestamp(clock: Clock) -> float:
    """Current time of *clock* as epoch seconds."""
    return clock.now().timestamp()
