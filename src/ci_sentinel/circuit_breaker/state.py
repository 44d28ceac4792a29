"""Circuit breaker states."""

from __future__ import annotations

from enum import Enum


class CircuitState(Enum):
    """Possible states for a circuit breaker."""

    CLOSED = "closed"  # Normal operation - calls allowed
    OPEN = "open"  # Circuit tripped - calls fail fast
    HALF_OPEN = "half_open"  # Testing recovery - one probe call
