"""Legacy execution: run adapters directly, no retry, breaker or deadline."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from ..adapters.base import Adapter
from ..error_classifier import ErrorClassifier
from ..metrics import MetricsCollector, get_metrics_collector
from ..models import AdapterResult, AdapterRunOptions
from .base import ExecutionStrategy

logger = logging.getLogger(__name__)


class LegacyExecutionStrategy(ExecutionStrategy):
    """Runs each adapter once and turns a crash into a skipped result."""

    name = "legacy"

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._classifier = classifier or ErrorClassifier()
        self._metrics = metrics if metrics is not None else get_metrics_collector()

    async def execute_parallel(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        return list(await asyncio.gather(*(self._run_safe(a, options.copy()) for a in adapters)))

    async def execute_sequential(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        results = []
        for adapter in adapters:
            results.append(await self._run_safe(adapter, options.copy()))
        return results

    async def _run_safe(self, adapter: Adapter, options: AdapterRunOptions) -> AdapterResult:
        started = time.monotonic()
        logger.debug("Running %s on %d file(s)", adapter.name, len(options.files))
        try:
            result = await adapter.run(options)
        except Exception as exc:
            classification = self._classifier.classify(exc)
            logger.error(
                "Adapter %s failed: %s (type=%s, exit=%d)",
                adapter.name,
                classification.message,
                classification.type.value,
                classification.exit_code,
            )
            self._metrics.record_adapter_error(adapter.name, classification.type.value)
            return AdapterResult(
                tool=adapter.name,
                version="unknown",
                exit_code=classification.exit_code,
                violations=[],
                execution_time_ms=0.0,
                skipped=True,
                skip_reason=f"{classification.reason}: {classification.message}",
            )

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            "Adapter %s completed (exit=%d, %.0fms, %d violations)",
            adapter.name,
            result.exit_code,
            duration_ms,
            len(result.violations),
        )
        self._metrics.record_adapter_run(adapter.name, duration_ms, len(result.violations))
        return result
