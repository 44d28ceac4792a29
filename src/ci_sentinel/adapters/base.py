"""Adapter protocol: one adapter wraps one external checking tool."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import AdapterResult, AdapterRunOptions


@runtime_checkable
class Adapter(Protocol):
    """Interface every tool adapter implements.

    ``run`` may raise; the execution strategies turn failures into
    skipped results. Adapters are allowed to mutate the options they
    receive, so callers always pass a private copy.
    """

    name: str

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        """Run the tool over ``options.files`` and return normalized findings."""
        ...
