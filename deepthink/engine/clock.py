"""Clock sources that supply elapsed time to a session controller.

A clock never sleeps and never schedules anything. It only answers "how many
seconds have passed", so tests can drive sessions with a steppable clock.
"""
from __future__ import annotations

import time
from typing import Protocol


class ClockSource(Protocol):
    def now(self) -> float:
        """Monotonic seconds since an arbitrary origin."""
        ...


class RealClock:
    """Wall-clock backed source for production use."""

    def now(self) -> float:
        return time.monotonic()


class VirtualClock:
    """Steppable clock. Only moves forward, and only when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError(f"Cannot move clock backwards by {seconds}s")
        self._now += seconds
        return self._now

    def advance_to(self, target: float) -> float:
        if target < self._now:
            raise ValueError(f"Cannot move clock backwards from {self._now} to {target}")
        self._now = float(target)
        return self._now
