"""Circuit breaker exception classes."""

from __future__ import annotations


class CircuitBreakerError(Exception):
    """Base exception for circuit breaker errors."""

    pass


class CircuitBreakerOpenError(CircuitBreakerError):
    """Raised when a circuit is open and the call is rejected without running."""

    def __init__(self, name: str, time_until_retry_ms: float = 0.0) -> None:
        self.name = name
        self.time_until_retry_ms = time_until_retry_ms
        super().__init__(
            f"Circuit breaker open for {name} - failing fast "
            f"(retry in {time_until_retry_ms / 1000:.1f}s)"
        )
