"""Tests for the metrics collector."""

from __future__ import annotations

from unittest.mock import MagicMock

from ci_sentinel.metrics import (
    MetricType,
    MetricValue,
    MetricsCollector,
    get_metrics_collector,
    reset_metrics_collector,
)


class TestMetricValue:
    def test_to_prometheus(self) -> None:
        metric = MetricValue("adapter_runs_total", 2, MetricType.COUNTER, {"b": "2", "a": "1"})
        assert metric.to_prometheus() == 'adapter_runs_total{a="1",b="2"} 2'

    def test_to_prometheus_without_labels(self) -> None:
        assert MetricValue("x", 1.5, MetricType.GAUGE).to_prometheus() == "x 1.5"


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_counters_accumulate(self) -> None:
        collector = MetricsCollector()
        collector.record_adapter_run("lint", 10, 3)
        collector.record_adapter_run("lint", 20, 2)
        assert collector.get_metric("adapter_runs_total", {"adapter": "lint"}).value == 2
        assert collector.get_metric("adapter_violations_total", {"adapter": "lint"}).value == 5
        assert collector.get_metric("adapter_duration_ms", {"adapter": "lint"}).value == 20

    def test_state_change_gauge(self) -> None:
        collector = MetricsCollector()
        collector.record_state_change("lint", "closed", "open")
        assert collector.get_metric("circuit_breaker_state", {"name": "lint"}).value == 1

    def test_callbacks_notified(self) -> None:
        collector = MetricsCollector()
        callback = MagicMock()
        collector.register_callback(callback)
        collector.record_adapter_error("lint", "timeout")
        [metric] = [c.args[0] for c in callback.call_args_list]
        assert metric.labels == {"adapter": "lint", "error_type": "timeout"}

    def test_failing_callback_does_not_break_recording(self) -> None:
        collector = MetricsCollector()
        collector.register_callback(MagicMock(side_effect=RuntimeError("sink down")))
        collector.record_retry("lint", 0, 100)
        assert collector.get_metric("adapter_retries_total", {"adapter": "lint"}).value == 1

    def test_export_and_reset(self) -> None:
        collector = MetricsCollector()
        collector.record_orchestrator_run("default", "clean", 5)
        exported = collector.export_prometheus()
        assert "# TYPE orchestrator_runs_total counter" in exported
        assert 'orchestrator_runs_total{profile="default",status="clean"} 1' in exported
        collector.reset()
        assert collector.get_all_metrics() == []


def test_global_collector() -> None:
    first = get_metrics_collector()
    assert get_metrics_collector() is first
    reset_metrics_collector()
    assert get_metrics_collector() is not first
