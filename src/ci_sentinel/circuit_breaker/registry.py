"""Circuit breaker registry keyed by adapter name.

Breakers are created lazily on first use and shared by every run in the
process, so a tool that keeps failing stays isolated across runs. Idle
entries are evicted by ``cleanup()`` to bound memory in long-lived
processes; open circuits are never evicted.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from ..config import (
    DEFAULT_CLEANUP_INTERVAL_MS,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_FAILURE_WINDOW_MS,
    DEFAULT_REGISTRY_TTL_MS,
    DEFAULT_RESET_TIMEOUT_MS,
)
from ..metrics import get_metrics_collector
from .breaker import CircuitBreaker, StateChangeListener
from .failure_window import monotonic_ms
from .state import CircuitState
from .stats import CircuitBreakerStats

logger = logging.getLogger(__name__)


@dataclass
class RegistryEntry:
    """A tracked breaker with its access bookkeeping."""

    breaker: CircuitBreaker
    last_access_time: float
    created_at: float


@dataclass(frozen=True)
class TrackedBreaker:
    """Read-only view of a registry entry for monitoring."""

    name: str
    state: CircuitState
    last_access_time: float
    created_at: float
    age_ms: float
    idle_ms: float


class CircuitBreakerRegistry:
    """Named cache of circuit breakers.

    Usage:
        registry = CircuitBreakerRegistry()
        breaker = registry.get_or_create("actionlint", failure_threshold=3)

        # Long-running processes
        registry.start_periodic_cleanup()
        ...
        await registry.stop_periodic_cleanup()

    ``get_or_create`` is atomic, so two concurrent callers never end up
    with different breakers for the same name.
    """

    def __init__(
        self,
        clock: Callable[[], float] = monotonic_ms,
        on_state_change: StateChangeListener | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            clock: Millisecond clock shared with created breakers.
            on_state_change: Listener attached to every created breaker.
        """
        self._clock = clock
        self._on_state_change = on_state_change
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = threading.Lock()
        self._cleanup_task: asyncio.Task[None] | None = None

    def get_or_create(
        self,
        name: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        failure_window_ms: float = DEFAULT_FAILURE_WINDOW_MS,
        reset_timeout_ms: float = DEFAULT_RESET_TIMEOUT_MS,
    ) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it if needed.

        Options only apply when the breaker is created; an existing
        breaker keeps its original settings.

        Args:
            name: Breaker name.
            failure_threshold: Threshold for a new breaker.
            failure_window_ms: Failure window for a new breaker.
            reset_timeout_ms: Reset timeout for a new breaker.

        Returns:
            The shared CircuitBreaker for ``name``.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(name)
            if entry is not None:
                entry.last_access_time = now
                return entry.breaker

            breaker = CircuitBreaker(
                name,
                failure_threshold=failure_threshold,
                failure_window_ms=failure_window_ms,
                reset_timeout_ms=reset_timeout_ms,
                clock=self._clock,
                on_state_change=self._on_state_change,
            )
            self._entries[name] = RegistryEntry(breaker, last_access_time=now, created_at=now)
            logger.info(
                "Registered circuit breaker %s (threshold=%d, reset=%.0fms)",
                name,
                failure_threshold,
                reset_timeout_ms,
            )
            return breaker

    def get(self, name: str) -> CircuitBreaker | None:
        """Return the breaker for ``name`` without creating or touching it."""
        with self._lock:
            entry = self._entries.get(name)
            return entry.breaker if entry is not None else None

    def cleanup(self, ttl_ms: float = DEFAULT_REGISTRY_TTL_MS) -> int:
        """Evict breakers idle for at least ``ttl_ms``.

        Open breakers are kept and their access time refreshed, so an
        idle but still broken tool keeps failing fast.

        Returns:
            Number of breakers removed.
        """
        removed = 0
        with self._lock:
            now = self._clock()
            for name in list(self._entries):
                entry = self._entries[name]
                if now - entry.last_access_time < ttl_ms:
                    continue
                if entry.breaker.state == CircuitState.OPEN:
                    entry.last_access_time = now
                    continue
                del self._entries[name]
                removed += 1
                logger.info("Evicted idle circuit breaker %s", name)

        if removed > 0:
            logger.debug("Registry cleanup removed %d breaker(s)", removed)
        return removed

    def get_all_stats(self) -> dict[str, CircuitBreakerStats]:
        """Return stats for every tracked breaker, refreshing access times."""
        with self._lock:
            now = self._clock()
            stats: dict[str, CircuitBreakerStats] = {}
            for name, entry in self._entries.items():
                entry.last_access_time = now
                stats[name] = entry.breaker.get_stats()
            return stats

    def reset_all(self) -> None:
        """Force-close every tracked breaker. Entries are kept."""
        with self._lock:
            now = self._clock()
            for entry in self._entries.values():
                entry.breaker.force_close()
                entry.last_access_time = now

    def get_tracked_breakers(self) -> list[TrackedBreaker]:
        """Return monitoring info for every entry, sorted by name."""
        with self._lock:
            now = self._clock()
            return [
                TrackedBreaker(
                    name=name,
                    state=entry.breaker.state,
                    last_access_time=entry.last_access_time,
                    created_at=entry.created_at,
                    age_ms=now - entry.created_at,
                    idle_ms=now - entry.last_access_time,
                )
                for name, entry in sorted(self._entries.items())
            ]

    @property
    def size(self) -> int:
        """Return the number of tracked breakers."""
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry. Used by tests and forced resets."""
        with self._lock:
            self._entries.clear()

    def start_periodic_cleanup(
        self,
        interval_ms: float = DEFAULT_CLEANUP_INTERVAL_MS,
        ttl_ms: float = DEFAULT_REGISTRY_TTL_MS,
    ) -> asyncio.Task[None]:
        """Start a background task running ``cleanup(ttl_ms)`` every interval.

        Must be called from a running event loop. Calling it again while
        a task is running returns the existing task.
        """
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return self._cleanup_task

        self._cleanup_task = asyncio.get_running_loop().create_task(
            self._cleanup_loop(interval_ms, ttl_ms),
            name="circuit-breaker-registry-cleanup",
        )
        logger.info(
            "Started registry cleanup (interval=%.0fms, ttl=%.0fms)",
            interval_ms,
            ttl_ms,
        )
        return self._cleanup_task

    async def stop_periodic_cleanup(self) -> None:
        """Cancel the background cleanup task, if any, and wait for it."""
        task = self._cleanup_task
        self._cleanup_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped registry cleanup")

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    async def _cleanup_loop(self, interval_ms: float, ttl_ms: float) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000)
            try:
                self.cleanup(ttl_ms)
            except Exception:
                logger.exception("Registry cleanup failed")


_default_registry: CircuitBreakerRegistry | None = None


def _record_state_change(name: str, old: CircuitState, new: CircuitState) -> None:
    get_metrics_collector().record_state_change(name, old.value, new.value)


def get_default_registry() -> CircuitBreakerRegistry:
    """Return the process-wide registry, creating it on first use.

    State transitions of its breakers are reported to the global
    metrics collector.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = CircuitBreakerRegistry(on_state_change=_record_state_change)
    return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry. For tests."""
    global _default_registry
    _default_registry = None
