"""Execution strategies selected by the orchestrator."""

from .base import ExecutionStrategy
from .legacy import LegacyExecutionStrategy
from .resilient import ResilientExecutionStrategy

__all__ = [
    "ExecutionStrategy",
    "LegacyExecutionStrategy",
    "ResilientExecutionStrategy",
]
