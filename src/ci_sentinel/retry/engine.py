"""Retry engine driving repeated attempts of an async operation."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .strategies import ExponentialBackoffStrategy, RetryStrategy

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryListener = Callable[[int, float], None]


def build_strategy(
    strategy: RetryStrategy | None = None,
    initial_delay_ms: float | None = None,
    max_delay_ms: float | None = None,
    backoff_multiplier: float | None = None,
    jitter: float | None = None,
) -> RetryStrategy:
    """Return ``strategy`` or an exponential backoff built from the parameters.

    Parameters left as ``None`` fall back to the exponential defaults
    (100ms initial, x2, 30s cap, 10% jitter).
    """
    if strategy is not None:
        return strategy
    defaults = ExponentialBackoffStrategy()
    return ExponentialBackoffStrategy(
        initial_delay_ms=defaults.initial_delay_ms if initial_delay_ms is None else initial_delay_ms,
        max_delay_ms=defaults.max_delay_ms if max_delay_ms is None else max_delay_ms,
        multiplier=defaults.multiplier if backoff_multiplier is None else backoff_multiplier,
        jitter=defaults.jitter if jitter is None else jitter,
    )


async def retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    strategy: RetryStrategy | None = None,
    initial_delay_ms: float | None = None,
    max_delay_ms: float | None = None,
    backoff_multiplier: float | None = None,
    jitter: float | None = None,
    is_retryable: Callable[[BaseException], bool] | None = None,
    name: str = "operation",
    on_retry: RetryListener | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        max_attempts: Total number of attempts, including the first.
        strategy: Backoff strategy. Built from the delay parameters if omitted.
        initial_delay_ms: Initial delay for the default exponential strategy.
        max_delay_ms: Delay cap for the default exponential strategy.
        backoff_multiplier: Growth factor for the default exponential strategy.
        jitter: Jitter fraction for the default exponential strategy.
        is_retryable: Optional predicate. A failure it rejects is raised at once.
            When omitted every failure is retried.
        name: Operation name for logs.
        on_retry: Observer called as ``(attempt_index, delay_ms)`` before sleeping.
        sleep: Coroutine taking seconds. Injectable for tests.

    Returns:
        The first successful result.

    Raises:
        Exception: The last failure once attempts are exhausted, or the first
            failure ``is_retryable`` rejects.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    backoff = build_strategy(strategy, initial_delay_ms, max_delay_ms, backoff_multiplier, jitter)

    attempt = 0
    while True:
        try:
            result = await operation()
        except Exception as exc:
            attempt += 1
            if attempt >= max_attempts:
                logger.error(
                    "%s failed after %d attempt(s): %s",
                    name,
                    attempt,
                    exc,
                )
                raise
            if is_retryable is not None and not is_retryable(exc):
                logger.error("%s failed with non-retryable error: %s", name, exc)
                raise

            retry_index = attempt - 1
            delay_ms = backoff.calculate_delay(retry_index)
            logger.warning(
                "%s attempt %d/%d failed, retrying in %.0fms (%s): %s",
                name,
                attempt,
                max_attempts,
                delay_ms,
                backoff.get_name(),
                exc,
            )
            if on_retry is not None:
                on_retry(retry_index, delay_ms)
            await sleep(delay_ms / 1000)
            continue

        if attempt > 0:
            logger.info("%s succeeded after %d retries", name, attempt)
        return result
