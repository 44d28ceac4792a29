"""Timeout enforcement for async operations.

All timeouts are in milliseconds. A timeout cancels the waiting task;
an adapter that spawned a subprocess is responsible for killing it when
cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationTimeoutError(TimeoutError):
    """Raised when an operation exceeds its deadline."""

    def __init__(self, message: str, timeout_ms: float, operation: str) -> None:
        self.timeout_ms = timeout_ms
        self.operation = operation
        super().__init__(message)


class GlobalTimeoutError(OperationTimeoutError):
    """Raised when a global time budget runs out between steps."""

    pass


async def with_timeout(
    fn: Callable[[], Awaitable[T]],
    timeout_ms: float,
    operation: str = "operation",
) -> T:
    """Run ``fn()`` bounded by ``timeout_ms``.

    Args:
        fn: Zero-argument coroutine factory.
        timeout_ms: Deadline in milliseconds.
        operation: Operation name used in the error message.

    Returns:
        The result of ``fn()``.

    Raises:
        OperationTimeoutError: If the deadline passes first.
    """
    deadline = asyncio.timeout(timeout_ms / 1000)
    try:
        async with deadline:
            return await fn()
    except TimeoutError:
        if not deadline.expired():
            raise
        logger.error("Operation '%s' timed out after %sms", operation, _fmt_ms(timeout_ms))
        raise OperationTimeoutError(
            f"Operation '{operation}' timed out after {_fmt_ms(timeout_ms)}ms",
            timeout_ms=timeout_ms,
            operation=operation,
        ) from None


@dataclass(frozen=True)
class TimedOperation(Generic[T]):
    """An operation paired with its own deadline."""

    fn: Callable[[], Awaitable[T]]
    timeout_ms: float
    name: str = "operation"


@dataclass(frozen=True)
class TimeoutOutcome(Generic[T]):
    """Per-operation outcome of ``with_timeouts``."""

    success: bool
    result: T | None = None
    error: BaseException | None = None


async def with_timeouts(operations: Sequence[TimedOperation[Any]]) -> list[TimeoutOutcome[Any]]:
    """Run every operation concurrently, each with its own deadline.

    Never raises for an individual failure; outcomes are returned in
    input order.
    """

    async def _settle(op: TimedOperation[Any]) -> TimeoutOutcome[Any]:
        try:
            result = await with_timeout(op.fn, op.timeout_ms, op.name)
        except Exception as exc:
            return TimeoutOutcome(success=False, error=exc)
        return TimeoutOutcome(success=True, result=result)

    return list(await asyncio.gather(*(_settle(op) for op in operations)))


async def with_global_and_step_timeouts(
    steps: Sequence[TimedOperation[Any]],
    global_timeout_ms: float,
    operation: str = "orchestration",
    clock: Callable[[], float] = time.monotonic,
) -> list[Any]:
    """Run steps in order under per-step and global deadlines.

    Each step gets ``min(step.timeout_ms, remaining_budget)``. Once the
    budget is exhausted the next step is not started.

    Args:
        steps: Steps to run sequentially.
        global_timeout_ms: Total budget for all steps.
        operation: Name used in the global timeout message.
        clock: Clock in seconds. Injectable for tests.

    Returns:
        Step results in order.

    Raises:
        GlobalTimeoutError: If the budget is gone before a step starts.
        OperationTimeoutError: If a step exceeds its effective deadline.
    """
    started = clock()
    results: list[Any] = []
    for step in steps:
        elapsed_ms = (clock() - started) * 1000
        remaining_ms = global_timeout_ms - elapsed_ms
        if remaining_ms <= 0:
            logger.error(
                "Global timeout (%sms) exceeded during '%s'",
                _fmt_ms(global_timeout_ms),
                operation,
            )
            raise GlobalTimeoutError(
                f"Global timeout ({_fmt_ms(global_timeout_ms)}ms) exceeded during '{operation}'",
                timeout_ms=global_timeout_ms,
                operation=operation,
            )
        effective_ms = min(step.timeout_ms, remaining_ms)
        results.append(await with_timeout(step.fn, effective_ms, step.name))
    return results


class TimeoutManager:
    """Registry of named one-shot timers on the running event loop.

    Setting a name that already has a timer replaces it.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def set(self, name: str, callback: Callable[[], Any], delay_ms: float) -> None:
        """Schedule ``callback`` to run after ``delay_ms``."""
        self.clear(name)
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handles.pop(name, None)
            callback()

        self._handles[name] = loop.call_later(delay_ms / 1000, _fire)

    def clear(self, name: str) -> bool:
        """Cancel the timer ``name``. Returns whether one was active."""
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def clear_all(self) -> None:
        """Cancel every active timer."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def get_active_count(self) -> int:
        """Return the number of timers that have not fired or been cleared."""
        return len(self._handles)


def _fmt_ms(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"
