"""Metrics collection for adapter runs and circuit breakers.

In-process sink for the events emitted by the resilience layer. Values
can be exported in Prometheus exposition format or forwarded to
registered callbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

_STATE_VALUES = {"closed": 0, "open": 1, "half_open": 2}


class MetricType(Enum):
    """Types of metrics collected."""

    COUNTER = "counter"  # Monotonically increasing count
    GAUGE = "gauge"  # Point-in-time value
    HISTOGRAM = "histogram"  # Last observed value of a distribution


@dataclass
class MetricValue:
    """A single metric value with metadata."""

    name: str
    value: float
    metric_type: MetricType
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    description: str = ""

    def to_prometheus(self) -> str:
        """Format as one Prometheus exposition line."""
        label_str = ""
        if self.labels:
            pairs = [f'{k}="{v}"' for k, v in sorted(self.labels.items())]
            label_str = "{" + ",".join(pairs) + "}"
        return f"{self.name}{label_str} {self.value}"


class MetricsCollector:
    """Collects adapter and circuit breaker metrics.

    Counters accumulate per label set; gauges and histograms keep the
    last observed value.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, MetricValue] = {}
        self._callbacks: list[Callable[[MetricValue], None]] = []

    def register_callback(self, callback: Callable[[MetricValue], None]) -> None:
        """Register a callback for metric updates."""
        self._callbacks.append(callback)

    def record_adapter_run(self, adapter: str, duration_ms: float, violations: int) -> None:
        """Record a completed adapter run."""
        labels = {"adapter": adapter}
        self._emit_metric(
            "adapter_runs_total", 1, MetricType.COUNTER, labels, "Total completed adapter runs"
        )
        self._emit_metric(
            "adapter_duration_ms",
            duration_ms,
            MetricType.HISTOGRAM,
            labels,
            "Adapter execution time",
        )
        self._emit_metric(
            "adapter_violations_total",
            violations,
            MetricType.COUNTER,
            labels,
            "Violations reported by adapters",
        )

    def record_adapter_error(self, adapter: str, error_type: str) -> None:
        """Record a failed adapter run."""
        self._emit_metric(
            "adapter_errors_total",
            1,
            MetricType.COUNTER,
            {"adapter": adapter, "error_type": error_type},
            "Total adapter failures by type",
        )

    def record_retry(self, adapter: str, attempt: int, delay_ms: float) -> None:
        """Record a scheduled retry."""
        labels = {"adapter": adapter}
        self._emit_metric("adapter_retries_total", 1, MetricType.COUNTER, labels, "Total retries")
        self._emit_metric(
            "adapter_retry_delay_ms", delay_ms, MetricType.HISTOGRAM, labels, "Retry backoff delay"
        )
        logger.debug("Retry %d for %s scheduled in %.0fms", attempt + 1, adapter, delay_ms)

    def record_state_change(self, name: str, from_state: str, to_state: str) -> None:
        """Record a circuit breaker state transition."""
        self._emit_metric(
            "circuit_breaker_state_changes_total",
            1,
            MetricType.COUNTER,
            {"name": name, "from": from_state, "to": to_state},
            "Total state changes",
        )
        self._emit_metric(
            "circuit_breaker_state",
            _STATE_VALUES.get(to_state, -1),
            MetricType.GAUGE,
            {"name": name},
            "Current state (0=closed, 1=open, 2=half_open)",
        )

    def record_orchestrator_run(self, profile: str, status: str, duration_ms: float) -> None:
        """Record a whole orchestrator run."""
        self._emit_metric(
            "orchestrator_runs_total",
            1,
            MetricType.COUNTER,
            {"profile": profile, "status": status},
            "Total orchestrator runs",
        )
        self._emit_metric(
            "orchestrator_duration_ms",
            duration_ms,
            MetricType.HISTOGRAM,
            {"profile": profile},
            "Orchestrator run time",
        )

    def get_metric(self, name: str, labels: dict[str, str] | None = None) -> MetricValue | None:
        """Return the stored metric for ``name`` and ``labels``, if any."""
        return self._metrics.get(_metric_key(name, labels or {}))

    def get_all_metrics(self) -> list[MetricValue]:
        """Get all current metrics."""
        return list(self._metrics.values())

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus format."""
        lines = []
        for metric in self._metrics.values():
            if metric.description:
                lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.metric_type.value}")
            lines.append(metric.to_prometheus())
        return "\n".join(lines)

    def reset(self) -> None:
        """Drop every stored metric. Callbacks stay registered."""
        self._metrics.clear()

    def _emit_metric(
        self,
        name: str,
        value: float,
        metric_type: MetricType,
        labels: dict[str, str],
        description: str = "",
    ) -> None:
        """Store a metric and notify callbacks."""
        key = _metric_key(name, labels)
        previous = self._metrics.get(key)
        if metric_type == MetricType.COUNTER and previous is not None:
            value = previous.value + value

        metric = MetricValue(
            name=name,
            value=value,
            metric_type=metric_type,
            labels=labels,
            description=description,
        )
        self._metrics[key] = metric

        for callback in self._callbacks:
            try:
                callback(metric)
            except Exception as e:
                logger.error("Metrics callback error: %s", e)


def _metric_key(name: str, labels: dict[str, str]) -> str:
    return f"{name}:{':'.join(f'{k}={v}' for k, v in sorted(labels.items()))}"


# Global metrics collector instance
_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector


def reset_metrics_collector() -> None:
    """Reset the global metrics collector (for testing)."""
    global _collector
    _collector = None
