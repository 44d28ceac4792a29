"""Resilient execution: every adapter goes through the coordinator."""

from __future__ import annotations

import logging
from typing import Sequence

from ..adapters.base import Adapter
from ..config import ResilienceOptions
from ..models import AdapterResult, AdapterRunOptions, ResilientAdapterResult
from ..resilience.coordinator import ResilienceCoordinator
from ..resilience.result_converter import ResultConverter
from ..resilience.stats_computer import StatsComputer
from .base import ExecutionStrategy

logger = logging.getLogger(__name__)


class ResilientExecutionStrategy(ExecutionStrategy):
    """Circuit breaker, retry and timeout around every adapter.

    Failures come back as skipped results with the exit code of their
    classified error type.
    """

    name = "resilient"

    def __init__(
        self,
        resilience: ResilienceOptions | None = None,
        coordinator: ResilienceCoordinator | None = None,
        converter: ResultConverter | None = None,
    ) -> None:
        self.resilience = resilience or ResilienceOptions()
        self._coordinator = coordinator or ResilienceCoordinator()
        self._converter = converter or ResultConverter()

    async def execute_parallel(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        outcomes = await self._coordinator.execute_resilient_parallel(
            adapters, options, self.resilience
        )
        self._log_stats(outcomes)
        return self._converter.convert_batch(outcomes)

    async def execute_sequential(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        outcomes = await self._coordinator.execute_resilient_sequential(
            adapters, options, self.resilience
        )
        self._log_stats(outcomes)
        return self._converter.convert_batch(outcomes)

    def _log_stats(self, outcomes: Sequence[ResilientAdapterResult]) -> None:
        if not outcomes:
            return
        stats = StatsComputer.compute(outcomes)
        if StatsComputer.is_partial_success(outcomes):
            failures = self._converter.extract_failures(outcomes)
            logger.warning(
                "Partial success: %d/%d adapters succeeded (%d%%), failed: %s",
                stats.successful_adapters,
                len(outcomes),
                stats.success_rate,
                ", ".join(f"{f.adapter} ({f.type.value})" for f in failures),
            )
        elif StatsComputer.is_complete_failure(outcomes):
            logger.error("All %d adapters failed", len(outcomes))
        else:
            logger.debug("All %d adapters succeeded", len(outcomes))
