"""
Block-time sources for the oracle engines.
"""

from __future__ import annotations

import threading
import time


class SystemClock:
    """Wall-clock seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Deterministic clock advanced explicitly, one "block" at a time.

    Time never moves backwards.
    """

    def __init__(self, start: int = 1_700_000_000):
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int = 1) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, timestamp: int) -> int:
        with self._lock:
            if timestamp < self._now:
                raise ValueError(f"Timestamp must be monotonically increasing: {timestamp} < {self._now}")
            self._now = int(timestamp)
            return self._now
