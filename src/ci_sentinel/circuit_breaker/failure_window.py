"""Sliding time window of failure timestamps."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class FailureWindow:
    """Counts failures recorded within the last ``window_ms`` milliseconds.

    Timestamps are kept in insertion order, so expiry only ever pops from
    the left.
    """

    def __init__(self, window_ms: float, clock: Callable[[], float] = monotonic_ms) -> None:
        self._window_ms = window_ms
        self._clock = clock
        self._timestamps: deque[float] = deque()

    @property
    def window_ms(self) -> float:
        """Return the window length in milliseconds."""
        return self._window_ms

    def record_failure(self) -> None:
        """Record a failure at the current time."""
        self._timestamps.append(self._clock())
        self._expire()

    def get_recent_count(self) -> int:
        """Return the number of failures still inside the window."""
        self._expire()
        return len(self._timestamps)

    def reset(self) -> None:
        """Forget every recorded failure."""
        self._timestamps.clear()

    def _expire(self) -> None:
        cutoff = self._clock() - self._window_ms
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()
