"""Aggregate statistics over resilient outcomes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from ..models import ResilientAdapterResult


@dataclass(frozen=True)
class ExecutionStats:
    successful_adapters: int
    failed_adapters: int
    success_rate: int  # Rounded percentage, 0 when nothing ran


class StatsComputer:
    """Pure functions over a batch of ResilientAdapterResult values.

    An empty batch is neither a success nor a failure.
    """

    @staticmethod
    def compute(outcomes: Sequence[ResilientAdapterResult]) -> ExecutionStats:
        successful = sum(1 for o in outcomes if o.success)
        failed = len(outcomes) - successful
        # Halves round up: 1 of 8 is 13%
        rate = math.floor(successful / len(outcomes) * 100 + 0.5) if outcomes else 0
        return ExecutionStats(
            successful_adapters=successful,
            failed_adapters=failed,
            success_rate=rate,
        )

    @staticmethod
    def is_complete_success(outcomes: Sequence[ResilientAdapterResult]) -> bool:
        return bool(outcomes) and all(o.success for o in outcomes)

    @staticmethod
    def is_complete_failure(outcomes: Sequence[ResilientAdapterResult]) -> bool:
        return bool(outcomes) and not any(o.success for o in outcomes)

    @staticmethod
    def is_partial_success(outcomes: Sequence[ResilientAdapterResult]) -> bool:
        successes = sum(1 for o in outcomes if o.success)
        return 0 < successes < len(outcomes)
