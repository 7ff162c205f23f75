"""
clock.py - Time sources for the green bond

Provides implementations of the Clock protocol:
- ManualClock: Simulation time, advanced explicitly (tests, demos, replays)
- SystemClock: Wall-clock unix seconds, never reported backwards

All timestamps are integer unix seconds.
"""

import time

from .core import require_uint


class ManualClock:
    """
    Logical clock advanced by the caller.

    Time can only move forward, never backward.
    """

    def __init__(self, start: int = 0):
        self._now = require_uint('start', start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        """
        Move the clock to timestamp.

        Raises:
            ValueError: If timestamp is before the current time
        """
        require_uint('timestamp', timestamp)
        if timestamp < self._now:
            raise ValueError(f"Cannot move time backwards: {timestamp} < {self._now}")
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        """Advance by seconds and return the new time."""
        require_uint('seconds', seconds)
        self._now += seconds
        return self._now

    def __repr__(self):
        return f"ManualClock(now={self._now})"


class SystemClock:
    """Wall-clock time in whole seconds, clamped so it never decreases."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        current = int(time.time())
        if current > self._last:
            self._last = current
        return self._last

    def __repr__(self):
        return "SystemClock()"
