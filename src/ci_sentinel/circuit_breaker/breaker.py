"""Circuit breaker guarding a single named dependency.

The breaker has three states:
- CLOSED: Normal operation, failures are counted in a sliding window
- OPEN: Circuit tripped, calls fail fast without running
- HALF_OPEN: Reset timeout elapsed, one probe call decides the next state
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from ..config import (
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_FAILURE_WINDOW_MS,
    DEFAULT_RESET_TIMEOUT_MS,
)
from .exceptions import CircuitBreakerOpenError
from .failure_window import FailureWindow, monotonic_ms
from .state import CircuitState
from .stats import CircuitBreakerStats, StatsTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateChangeListener = Callable[[str, CircuitState, CircuitState], None]


class CircuitBreaker:
    """Fail-fast guard around calls to one adapter.

    Usage:
        breaker = CircuitBreaker("actionlint", failure_threshold=5)
        result = await breaker.execute(lambda: adapter.run(options))

    Attributes:
        name: Unique breaker name (usually the adapter name).
        state: Current circuit state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        failure_window_ms: float = DEFAULT_FAILURE_WINDOW_MS,
        reset_timeout_ms: float = DEFAULT_RESET_TIMEOUT_MS,
        clock: Callable[[], float] = monotonic_ms,
        on_state_change: StateChangeListener | None = None,
    ) -> None:
        """Initialize the circuit breaker.

        Args:
            name: Unique identifier for this circuit.
            failure_threshold: Failures inside the window that open the circuit.
            failure_window_ms: Length of the sliding failure window.
            reset_timeout_ms: Time spent OPEN before a probe is allowed.
            clock: Millisecond clock, injectable for tests.
            on_state_change: Optional listener called as (name, old, new).
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if reset_timeout_ms < 0:
            raise ValueError("reset_timeout_ms must not be negative")

        self._name = name
        self._failure_threshold = failure_threshold
        self._reset_timeout_ms = reset_timeout_ms
        self._clock = clock
        self._on_state_change = on_state_change

        self._state = CircuitState.CLOSED
        self._window = FailureWindow(failure_window_ms, clock)
        self._stats = StatsTracker(clock)
        self._last_state_change = clock()
        self._probe_in_flight = False

    @property
    def name(self) -> str:
        """Return the breaker name."""
        return self._name

    @property
    def state(self) -> CircuitState:
        """Return the current circuit state."""
        return self._state

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def reset_timeout_ms(self) -> float:
        return self._reset_timeout_ms

    @property
    def is_open(self) -> bool:
        """Check if circuit is currently open (failing fast)."""
        return self._state == CircuitState.OPEN

    def time_until_retry_ms(self) -> float:
        """Milliseconds left before an OPEN circuit admits a probe."""
        if self._state != CircuitState.OPEN:
            return 0.0
        elapsed = self._clock() - self._last_state_change
        return max(0.0, self._reset_timeout_ms - elapsed)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` through the breaker.

        Args:
            operation: Zero-argument coroutine factory.

        Returns:
            Whatever ``operation`` returns.

        Raises:
            CircuitBreakerOpenError: If the circuit is open, or a half-open
                probe is already running. ``operation`` is not called.
            Exception: Any failure raised by ``operation`` is re-raised as-is.
        """
        self._stats.record_call()
        self._before_call()

        is_probe = self._state == CircuitState.HALF_OPEN
        if is_probe:
            self._probe_in_flight = True

        try:
            result = await operation()
        except BaseException as exc:
            if is_probe:
                self._probe_in_flight = False
            if isinstance(exc, Exception):
                self._on_failure()
            raise

        if is_probe:
            self._probe_in_flight = False
        self._on_success()
        return result

    def force_close(self) -> None:
        """Reset the circuit to CLOSED and forget recent failures."""
        logger.warning("Circuit %s force-closed (was %s)", self._name, self._state.value)
        self._transition(CircuitState.CLOSED)
        self._window.reset()
        self._stats.reset_consecutive()
        self._probe_in_flight = False

    def get_stats(self) -> CircuitBreakerStats:
        """Return a snapshot of the breaker. Has no side effects."""
        return CircuitBreakerStats(
            name=self._name,
            state=self._state,
            recent_failures=self._window.get_recent_count(),
            consecutive_successes=self._stats.consecutive_successes,
            last_failure_time=self._stats.last_failure_time,
            last_state_change=self._last_state_change,
            total_calls=self._stats.total_calls,
            total_successes=self._stats.total_successes,
            total_failures=self._stats.total_failures,
        )

    def _before_call(self) -> None:
        if self._state == CircuitState.OPEN:
            remaining = self.time_until_retry_ms()
            if remaining > 0:
                logger.warning("Circuit %s is open - failing fast", self._name)
                raise CircuitBreakerOpenError(self._name, remaining)
            self._transition(CircuitState.HALF_OPEN)
        elif self._state == CircuitState.HALF_OPEN and self._probe_in_flight:
            logger.warning("Circuit %s probe in progress - failing fast", self._name)
            raise CircuitBreakerOpenError(self._name, 0.0)

    def _on_success(self) -> None:
        self._stats.record_success()
        if self._state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.CLOSED)
            self._window.reset()

    def _on_failure(self) -> None:
        self._window.record_failure()
        self._stats.record_failure()

        if self._state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.OPEN)
            return

        recent = self._window.get_recent_count()
        logger.warning(
            "Circuit %s recorded failure (%d/%d in window)",
            self._name,
            recent,
            self._failure_threshold,
        )
        if self._state == CircuitState.CLOSED and recent >= self._failure_threshold:
            self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._last_state_change = self._clock()
        if old_state == new_state:
            return
        logger.info(
            "Circuit %s transitioned %s -> %s",
            self._name,
            old_state.value,
            new_state.value,
        )
        if self._on_state_change is not None:
            self._on_state_change(self._name, old_state, new_state)
