"""Backoff strategies for the retry engine.

Each strategy maps a 0-based retry index to a delay in milliseconds.
Strategies hold only their parameters, so one instance can be shared
across concurrent retries.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Callable


class RetryStrategy(ABC):
    """Maps a retry index to a delay in milliseconds."""

    def __init__(self, jitter: float = 0.1, rng: Callable[[], float] = random.random) -> None:
        if jitter < 0:
            raise ValueError("jitter must not be negative")
        self.jitter = jitter
        self._rng = rng

    @abstractmethod
    def base_delay(self, attempt: int) -> float:
        """Return the delay before jitter and clamping."""

    @abstractmethod
    def get_name(self) -> str:
        """Return the strategy name used in logs."""

    @property
    def max_delay_ms(self) -> float | None:
        return None

    def calculate_delay(self, attempt: int) -> float:
        """Return the delay in milliseconds before retry ``attempt``.

        Args:
            attempt: 0-based retry index.

        Returns:
            Jittered delay, never above ``max_delay_ms`` when one is set.
        """
        if attempt < 0:
            raise ValueError("attempt must not be negative")
        delay = self.base_delay(attempt) * (1 + self._rng() * self.jitter)
        if self.max_delay_ms is not None:
            delay = min(delay, self.max_delay_ms)
        return delay

    def __repr__(self) -> str:
        return f"{type(self).__name__}(jitter={self.jitter})"


class ExponentialBackoffStrategy(RetryStrategy):
    """``initial * multiplier ** attempt``."""

    def __init__(
        self,
        initial_delay_ms: float = 100,
        max_delay_ms: float = 30_000,
        multiplier: float = 2,
        jitter: float = 0.1,
        rng: Callable[[], float] = random.random,
    ) -> None:
        super().__init__(jitter, rng)
        self.initial_delay_ms = initial_delay_ms
        self._max_delay_ms = max_delay_ms
        self.multiplier = multiplier

    @property
    def max_delay_ms(self) -> float:
        return self._max_delay_ms

    def base_delay(self, attempt: int) -> float:
        return self.initial_delay_ms * self.multiplier**attempt

    def get_name(self) -> str:
        return "exponential"


class LinearBackoffStrategy(RetryStrategy):
    """``initial + increment * attempt``."""

    def __init__(
        self,
        initial_delay_ms: float = 100,
        increment_ms: float = 100,
        max_delay_ms: float = 30_000,
        jitter: float = 0.1,
        rng: Callable[[], float] = random.random,
    ) -> None:
        super().__init__(jitter, rng)
        self.initial_delay_ms = initial_delay_ms
        self.increment_ms = increment_ms
        self._max_delay_ms = max_delay_ms

    @property
    def max_delay_ms(self) -> float:
        return self._max_delay_ms

    def base_delay(self, attempt: int) -> float:
        return self.initial_delay_ms + self.increment_ms * attempt

    def get_name(self) -> str:
        return "linear"


class FibonacciBackoffStrategy(RetryStrategy):
    """``initial * fib(attempt)`` with fib(0) = fib(1) = 1."""

    def __init__(
        self,
        initial_delay_ms: float = 100,
        max_delay_ms: float = 30_000,
        jitter: float = 0.1,
        rng: Callable[[], float] = random.random,
    ) -> None:
        super().__init__(jitter, rng)
        self.initial_delay_ms = initial_delay_ms
        self._max_delay_ms = max_delay_ms

    @property
    def max_delay_ms(self) -> float:
        return self._max_delay_ms

    def base_delay(self, attempt: int) -> float:
        return self.initial_delay_ms * _fibonacci(attempt)

    def get_name(self) -> str:
        return "fibonacci"


class FixedDelayStrategy(RetryStrategy):
    """The same delay for every retry."""

    def __init__(
        self,
        delay_ms: float = 1000,
        jitter: float = 0.1,
        rng: Callable[[], float] = random.random,
    ) -> None:
        super().__init__(jitter, rng)
        self.delay_ms = delay_ms

    def base_delay(self, attempt: int) -> float:
        return self.delay_ms

    def get_name(self) -> str:
        return "fixed"


def _fibonacci(n: int) -> int:
    a, b = 1, 1
    for _ in range(n):
        a, b = b, a + b
    return a
