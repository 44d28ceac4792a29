"""Resilient adapter execution: executor, coordinator, conversion and stats."""

from .adapter_executor import AdapterExecutor
from .coordinator import ResilienceCoordinator
from .result_converter import FailureSummary, ResultConverter
from .stats_computer import ExecutionStats, StatsComputer

__all__ = [
    "AdapterExecutor",
    "ExecutionStats",
    "FailureSummary",
    "ResilienceCoordinator",
    "ResultConverter",
    "StatsComputer",
]
