"""Execution strategy interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..adapters.base import Adapter
from ..models import AdapterResult, AdapterRunOptions


class ExecutionStrategy(ABC):
    """Top-level policy for running a batch of adapters.

    Both methods return one AdapterResult per adapter, in input order,
    and never raise for an adapter failure.
    """

    name: str = "base"

    @abstractmethod
    async def execute_parallel(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        """Run all adapters concurrently."""

    @abstractmethod
    async def execute_sequential(
        self, adapters: Sequence[Adapter], options: AdapterRunOptions
    ) -> list[AdapterResult]:
        """Run adapters one at a time."""
