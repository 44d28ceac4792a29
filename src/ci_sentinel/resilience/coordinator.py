"""Resilience coordinator.

Composes circuit breaker, retry engine and adapter executor around one
adapter call:

    retry( breaker( executor( adapter.run ) ) )

and fans that out across adapters. Coordinator calls never raise; every
failure comes back as a ResilientAdapterResult with a classified error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Sequence

from ..adapters.base import Adapter
from ..circuit_breaker.registry import CircuitBreakerRegistry, get_default_registry
from ..config import ResilienceOptions
from ..error_classifier import EXIT_CODES, ErrorClassifier, ErrorContext
from ..metrics import MetricsCollector, get_metrics_collector
from ..models import (
    AdapterFailure,
    AdapterResult,
    AdapterRunOptions,
    ResilientAdapterResult,
)
from ..retry.engine import retry
from .adapter_executor import AdapterExecutor

logger = logging.getLogger(__name__)


class ResilienceCoordinator:
    """Runs adapters under circuit breaker, retry and timeout protection.

    Usage:
        coordinator = ResilienceCoordinator()
        results = await coordinator.execute_resilient_parallel(
            adapters, options, ResilienceOptions(max_retries=2)
        )

    Attributes:
        registry: Breaker registry shared across runs.
    """

    def __init__(
        self,
        registry: CircuitBreakerRegistry | None = None,
        *,
        executor: AdapterExecutor | None = None,
        classifier: ErrorClassifier | None = None,
        metrics: MetricsCollector | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize the coordinator.

        Args:
            registry: Breaker registry. Defaults to the process-wide one.
            executor: Adapter executor.
            classifier: Error classifier.
            metrics: Metrics sink. Defaults to the global collector.
            sleep: Sleep used between retries. Injectable for tests.
        """
        self.registry = registry if registry is not None else get_default_registry()
        self._executor = executor or AdapterExecutor()
        self._classifier = classifier or ErrorClassifier()
        self._metrics = metrics if metrics is not None else get_metrics_collector()
        self._sleep = sleep

    async def execute_resilient(
        self,
        adapter: Adapter,
        options: AdapterRunOptions,
        resilience: ResilienceOptions | None = None,
    ) -> ResilientAdapterResult:
        """Run one adapter with the configured protections.

        Args:
            adapter: Adapter to run.
            options: Run options. Each attempt gets its own copy.
            resilience: Protection settings. Defaults to ``ResilienceOptions()``.

        Returns:
            Success with the adapter's result, or failure with the
            classified error. Never raises.
        """
        opts = resilience or ResilienceOptions()
        name = adapter.name
        started = time.monotonic()
        attempts = 0

        breaker = (
            self.registry.get_or_create(
                name,
                failure_threshold=opts.failure_threshold,
                failure_window_ms=opts.failure_window_ms,
                reset_timeout_ms=opts.reset_timeout_ms,
            )
            if opts.circuit_breaker
            else None
        )
        timeout_ms = opts.adapter_timeout_ms if opts.timeout else None

        async def run_once() -> AdapterResult:
            return await self._executor.execute(adapter, options, timeout_ms)

        async def guarded() -> AdapterResult:
            nonlocal attempts
            attempts += 1
            if breaker is not None:
                return await breaker.execute(run_once)
            return await run_once()

        def on_retry(attempt: int, delay_ms: float) -> None:
            self._metrics.record_retry(name, attempt, delay_ms)

        logger.debug(
            "Executing %s (breaker=%s, retry=%s, timeout=%s)",
            name,
            opts.circuit_breaker,
            opts.retry,
            timeout_ms,
        )

        try:
            if opts.retry:
                result = await retry(
                    guarded,
                    max_attempts=opts.max_retries,
                    strategy=opts.build_strategy(),
                    is_retryable=opts.is_retryable,
                    name=name,
                    on_retry=on_retry,
                    sleep=self._sleep,
                )
            else:
                result = await guarded()
        except Exception as exc:
            duration_ms = _elapsed_ms(started)
            classification = self._classifier.classify(
                exc, ErrorContext(attempts=attempts, max_retries=opts.max_retries)
            )
            logger.error(
                "Adapter %s failed: %s (type=%s, exit=%d, attempts=%d, %.0fms)",
                name,
                classification.message,
                classification.type.value,
                EXIT_CODES[classification.type],
                attempts,
                duration_ms,
            )
            self._metrics.record_adapter_error(name, classification.type.value)
            return ResilientAdapterResult(
                adapter=name,
                success=False,
                duration_ms=duration_ms,
                error=AdapterFailure(
                    message=classification.message,
                    type=classification.type,
                    attempts=attempts,
                    duration_ms=duration_ms,
                ),
            )

        duration_ms = _elapsed_ms(started)
        logger.info(
            "Adapter %s succeeded (attempts=%d, %.0fms, %d violations)",
            name,
            attempts,
            duration_ms,
            len(result.violations),
        )
        self._metrics.record_adapter_run(name, duration_ms, len(result.violations))
        return ResilientAdapterResult(
            adapter=name,
            success=True,
            duration_ms=duration_ms,
            result=result,
        )

    async def execute_resilient_parallel(
        self,
        adapters: Sequence[Adapter],
        options: AdapterRunOptions,
        resilience: ResilienceOptions | None = None,
    ) -> list[ResilientAdapterResult]:
        """Run every adapter concurrently and wait for all of them.

        Results come back in input order. One adapter failing never
        cancels or changes the others.
        """
        return list(
            await asyncio.gather(
                *(self.execute_resilient(a, options.copy(), resilience) for a in adapters)
            )
        )

    async def execute_resilient_sequential(
        self,
        adapters: Sequence[Adapter],
        options: AdapterRunOptions,
        resilience: ResilienceOptions | None = None,
    ) -> list[ResilientAdapterResult]:
        """Run adapters one after another, in input order."""
        results = []
        for adapter in adapters:
            results.append(await self.execute_resilient(adapter, options.copy(), resilience))
        return results


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000
