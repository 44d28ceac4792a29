"""Adapter execution with input isolation and an optional deadline."""

from __future__ import annotations

import logging

from ..adapters.base import Adapter
from ..models import AdapterResult, AdapterRunOptions
from ..timeout import with_timeout

logger = logging.getLogger(__name__)


class AdapterExecutor:
    """Runs one adapter invocation.

    The adapter always receives its own copy of the options, so it can
    mutate ``files`` without affecting adapters running alongside it.
    """

    async def execute(
        self,
        adapter: Adapter,
        options: AdapterRunOptions,
        timeout_ms: float | None = None,
    ) -> AdapterResult:
        """Run ``adapter`` with copied options.

        Args:
            adapter: Adapter to run.
            options: Caller's options. Never passed through by reference.
            timeout_ms: Deadline. ``None`` or ``<= 0`` disables it.

        Raises:
            OperationTimeoutError: If the deadline passes first.
            Exception: Anything the adapter raises.
        """
        isolated = options.copy()
        if timeout_ms is not None and timeout_ms > 0:
            return await with_timeout(
                lambda: adapter.run(isolated),
                timeout_ms,
                f"{adapter.name} execution",
            )
        return await adapter.run(isolated)

    async def execute_raw(self, adapter: Adapter, options: AdapterRunOptions) -> AdapterResult:
        """Run ``adapter`` with the given options as-is, without a deadline.

        For tests and debugging only.
        """
        logger.debug("Raw execution of %s", adapter.name)
        return await adapter.run(options)
