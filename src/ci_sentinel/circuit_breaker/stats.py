"""Call accounting for circuit breakers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .failure_window import monotonic_ms
from .state import CircuitState


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Point-in-time snapshot of a circuit breaker.

    Attributes:
        name: Breaker name (the adapter it protects).
        state: Current circuit state.
        recent_failures: Failures inside the sliding window.
        consecutive_successes: Successes since the last failure.
        last_failure_time: Clock value of the last failure, if any.
        last_state_change: Clock value of the last transition.
        total_calls: Calls made through the breaker, including rejected ones.
        total_successes: Calls that completed successfully.
        total_failures: Calls whose operation raised.
    """

    name: str
    state: CircuitState
    recent_failures: int
    consecutive_successes: int
    last_failure_time: float | None
    last_state_change: float
    total_calls: int
    total_successes: int
    total_failures: int

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly dictionary."""
        return {
            "name": self.name,
            "state": self.state.value,
            "recent_failures": self.recent_failures,
            "consecutive_successes": self.consecutive_successes,
            "last_failure_time": self.last_failure_time,
            "last_state_change": self.last_state_change,
            "total_calls": self.total_calls,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
        }


class StatsTracker:
    """Monotonic call counters plus the current success streak.

    Pure accounting: nothing here influences breaker transitions.
    """

    def __init__(self, clock: Callable[[], float] = monotonic_ms) -> None:
        self._clock = clock
        self.total_calls = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.last_failure_time: float | None = None

    def record_call(self) -> None:
        self.total_calls += 1

    def record_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1

    def record_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_successes = 0
        self.last_failure_time = self._clock()

    def reset_consecutive(self) -> None:
        self.consecutive_successes = 0
