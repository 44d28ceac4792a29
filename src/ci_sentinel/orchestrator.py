"""Orchestrator: runs adapters over a file set and merges their results.

Flow for one run:
    validate options -> select adapters -> pick strategy ->
    execute (parallel or sequential) -> merge, dedupe, sort -> summary
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from .adapters.base import Adapter
from .circuit_breaker.registry import CircuitBreakerRegistry
from .metrics import MetricsCollector, get_metrics_collector
from .models import (
    SEVERITY_ORDER,
    AdapterResult,
    OrchestratorResult,
    RunMetadata,
    RunOptions,
    RunSummary,
    ToolMetadata,
    Violation,
)
from .resilience.coordinator import ResilienceCoordinator
from .strategies.base import ExecutionStrategy
from .strategies.legacy import LegacyExecutionStrategy
from .strategies.resilient import ResilientExecutionStrategy
from .validation import validate_run_options

logger = logging.getLogger(__name__)

MAX_VIOLATIONS = 50_000

AdapterFactory = Callable[[], Adapter]


@dataclass
class AdapterRegistryEntry:
    """Registered adapter factory."""

    name: str
    factory: AdapterFactory
    enabled: bool = True


class Orchestrator:
    """Runs registered adapters and produces a deterministic result.

    Usage:
        orchestrator = Orchestrator()
        orchestrator.register("actionlint", lambda: CommandAdapter("actionlint", "actionlint"))
        result = await orchestrator.run(RunOptions(files=[".github/workflows/ci.yml"]))

    Adapters are built lazily from their factory and cached.
    """

    def __init__(
        self,
        strategy: ExecutionStrategy | None = None,
        *,
        metrics: MetricsCollector | None = None,
        registry: CircuitBreakerRegistry | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            strategy: Strategy used when a run does not request resilience.
                Defaults to the legacy strategy.
            metrics: Metrics sink. Defaults to the global collector.
            registry: Breaker registry for resilient runs. Defaults to the
                process-wide one.
        """
        self._metrics = metrics if metrics is not None else get_metrics_collector()
        self._strategy = strategy or LegacyExecutionStrategy(metrics=self._metrics)
        self._registry = registry
        self._entries: dict[str, AdapterRegistryEntry] = {}
        self._instances: dict[str, Adapter] = {}

    def register(self, name: str, factory: AdapterFactory, enabled: bool = True) -> None:
        """Register (or replace) an adapter factory under ``name``."""
        self._entries[name] = AdapterRegistryEntry(name=name, factory=factory, enabled=enabled)
        self._instances.pop(name, None)

    def get_adapter(self, name: str) -> Adapter:
        """Return the cached adapter instance for ``name``.

        Raises:
            KeyError: If no adapter is registered under ``name``.
        """
        if name not in self._entries:
            raise KeyError(f"Unknown adapter: {name}")
        if name not in self._instances:
            self._instances[name] = self._entries[name].factory()
        return self._instances[name]

    def list_adapters(self) -> list[str]:
        """Return the names of enabled adapters, sorted."""
        return sorted(name for name, entry in self._entries.items() if entry.enabled)

    async def run(self, options: RunOptions) -> OrchestratorResult:
        """Run the selected adapters over ``options.files``.

        An empty or missing ``options.tools`` selects every enabled
        adapter. Unknown or disabled names are skipped with a warning.

        Raises:
            OptionsValidationError: If ``options`` is invalid.
        """
        started = time.monotonic()
        validated = validate_run_options(options)

        names = self._select_names(validated.tools)
        adapters = [self.get_adapter(name) for name in names]
        if not adapters:
            logger.info("No adapters selected, nothing to run")
            return _build_result([], [], _elapsed_ms(started), validated.profile)

        strategy = self._select_strategy(validated)
        logger.info(
            "Running %d adapter(s) [%s] on %d file(s) (strategy=%s, parallel=%s)",
            len(adapters),
            ", ".join(names),
            len(validated.files),
            strategy.name,
            validated.parallel,
        )

        adapter_options = validated.to_adapter_options()
        if validated.parallel:
            results = await strategy.execute_parallel(adapters, adapter_options)
        else:
            results = await strategy.execute_sequential(adapters, adapter_options)

        violations = merge_violations(results)
        result = _build_result(results, violations, _elapsed_ms(started), validated.profile)
        status = "clean" if result.exit_code == 0 else "failed"
        self._metrics.record_orchestrator_run(
            validated.profile or "default", status, result.run_metadata.execution_time_ms
        )
        logger.info(
            "Run complete: %d violation(s) (%d errors, %d warnings, %d info) in %.0fms",
            result.summary.total,
            result.summary.errors,
            result.summary.warnings,
            result.summary.info,
            result.run_metadata.execution_time_ms,
        )
        return result

    def _select_names(self, requested: Sequence[str] | None) -> list[str]:
        if not requested:
            return self.list_adapters()
        names = []
        for name in requested:
            entry = self._entries.get(name)
            if entry is None:
                logger.warning("Unknown adapter %s, skipping", name)
            elif not entry.enabled:
                logger.warning("Adapter %s is disabled, skipping", name)
            else:
                names.append(name)
        return names

    def _select_strategy(self, options: RunOptions) -> ExecutionStrategy:
        if options.resilience is not None:
            coordinator = ResilienceCoordinator(self._registry, metrics=self._metrics)
            return ResilientExecutionStrategy(options.resilience, coordinator)
        return self._strategy


def violation_key(violation: Violation) -> str:
    """Deduplication key for a violation."""
    digest = hashlib.sha256(violation.message.encode("utf-8")).hexdigest()[:32]
    return "|".join(
        [
            violation.source,
            violation.id,
            violation.path or "",
            str(violation.line or 0),
            str(violation.column or 0),
            digest,
        ]
    )


def _sort_key(v: Violation) -> tuple[int, str, int, int, str, str]:
    return (
        SEVERITY_ORDER.get(v.severity, len(SEVERITY_ORDER)),
        v.path or "",
        v.line or 0,
        v.column or 0,
        v.id,
        v.source,
    )


def merge_violations(
    results: Sequence[AdapterResult], limit: int = MAX_VIOLATIONS
) -> list[Violation]:
    """Concatenate, de-duplicate and sort violations from every result.

    At most ``limit`` unique violations are kept.
    """
    seen: set[str] = set()
    merged: list[Violation] = []
    for result in results:
        for violation in result.violations:
            key = violation_key(violation)
            if key in seen:
                continue
            if len(merged) >= limit:
                logger.warning("Violation limit (%d) reached, dropping the rest", limit)
                return sorted(merged, key=_sort_key)
            seen.add(key)
            merged.append(violation)
    return sorted(merged, key=_sort_key)


def _build_result(
    results: Sequence[AdapterResult],
    violations: list[Violation],
    execution_time_ms: float,
    profile: str | None,
) -> OrchestratorResult:
    summary = RunSummary(
        total=len(violations),
        errors=sum(1 for v in violations if v.severity == "error"),
        warnings=sum(1 for v in violations if v.severity == "warning"),
        info=sum(1 for v in violations if v.severity == "info"),
    )
    tools = [
        ToolMetadata(
            name=r.tool,
            version=r.version,
            exit_code=r.exit_code,
            skipped=r.skipped,
            reason=r.skip_reason,
        )
        for r in results
    ]
    return OrchestratorResult(
        summary=summary,
        violations=violations,
        tools=tools,
        run_metadata=RunMetadata(
            generated_at=datetime.now(timezone.utc).isoformat(),
            execution_time_ms=execution_time_ms,
            profile=profile,
        ),
    )


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000
