"""
Clock sources for time-based auction transitions.

The engine never reads wall time directly; it asks an injected clock.
ManualClock lets tests and simulations jump to arbitrary instants.
"""

import time


class Clock:
    """Source of the current time in whole seconds."""

    def now(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("Clock cannot move backwards")
        self._now = timestamp
