"""Circuit breaker package.

Fail-fast protection for adapters, with a shared registry keyed by
adapter name.
"""

from .breaker import CircuitBreaker
from .exceptions import CircuitBreakerError, CircuitBreakerOpenError
from .failure_window import FailureWindow, monotonic_ms
from .registry import (
    CircuitBreakerRegistry,
    RegistryEntry,
    TrackedBreaker,
    get_default_registry,
    reset_default_registry,
)
from .state import CircuitState
from .stats import CircuitBreakerStats, StatsTracker

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitBreakerOpenError",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitState",
    "FailureWindow",
    "RegistryEntry",
    "StatsTracker",
    "TrackedBreaker",
    "get_default_registry",
    "monotonic_ms",
    "reset_default_registry",
]
