"""Tests for backoff strategies and the retry engine."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ci_sentinel.error_classifier import is_retryable
from ci_sentinel.retry import (
    ExponentialBackoffStrategy,
    FibonacciBackoffStrategy,
    FixedDelayStrategy,
    LinearBackoffStrategy,
    build_strategy,
    retry,
)
from tests.unit.helpers import no_sleep


class TestBackoffStrategies:
    """Delay sequences without jitter."""

    def test_exponential(self) -> None:
        strategy = ExponentialBackoffStrategy(100, 10_000, 2, 0)
        assert [strategy.calculate_delay(k) for k in range(4)] == [100, 200, 400, 800]

    def test_linear(self) -> None:
        strategy = LinearBackoffStrategy(100, 50, 10_000, 0)
        assert [strategy.calculate_delay(k) for k in range(4)] == [100, 150, 200, 250]

    def test_fibonacci(self) -> None:
        strategy = FibonacciBackoffStrategy(100, 100_000, 0)
        assert [strategy.calculate_delay(k) for k in range(6)] == [100, 100, 200, 300, 500, 800]

    def test_fixed(self) -> None:
        strategy = FixedDelayStrategy(500, 0)
        assert {strategy.calculate_delay(k) for k in range(10)} == {500}

    def test_max_delay_clamps(self) -> None:
        """Delays never exceed the configured maximum."""
        strategy = ExponentialBackoffStrategy(100, 1000, 2, 0)
        assert strategy.calculate_delay(10) == 1000

    def test_jitter_bounds(self) -> None:
        """Jitter scales the delay by at most (1 + jitter)."""
        high = ExponentialBackoffStrategy(100, 10_000, 2, 0.5, rng=lambda: 1.0)
        low = ExponentialBackoffStrategy(100, 10_000, 2, 0.5, rng=lambda: 0.0)
        assert high.calculate_delay(1) == pytest.approx(300)
        assert low.calculate_delay(1) == 200

    def test_jitter_is_clamped_too(self) -> None:
        strategy = LinearBackoffStrategy(900, 0, 1000, 0.5, rng=lambda: 1.0)
        assert strategy.calculate_delay(0) == 1000

    def test_names(self) -> None:
        assert ExponentialBackoffStrategy().get_name() == "exponential"
        assert LinearBackoffStrategy().get_name() == "linear"
        assert FibonacciBackoffStrategy().get_name() == "fibonacci"
        assert FixedDelayStrategy().get_name() == "fixed"

    def test_negative_jitter_rejected(self) -> None:
        with pytest.raises(ValueError):
            FixedDelayStrategy(100, jitter=-0.1)

    def test_build_strategy_from_parameters(self) -> None:
        """Explicit parameters build an exponential strategy."""
        strategy = build_strategy(initial_delay_ms=10, backoff_multiplier=3, jitter=0)
        assert isinstance(strategy, ExponentialBackoffStrategy)
        assert [strategy.calculate_delay(k) for k in range(3)] == [10, 30, 90]

    def test_build_strategy_prefers_instance(self) -> None:
        fixed = FixedDelayStrategy(5, 0)
        assert build_strategy(fixed, initial_delay_ms=999) is fixed


class TestRetry:
    """Tests for retry()."""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        operation = AsyncMock(return_value=42)
        assert await retry(operation, sleep=no_sleep) == 42
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_exhaustion_raises_original_error(self) -> None:
        """An always-failing operation runs max_attempts times."""
        error = RuntimeError("always")
        operation = AsyncMock(side_effect=error)
        with pytest.raises(RuntimeError) as exc_info:
            await retry(operation, max_attempts=3, sleep=no_sleep)
        assert exc_info.value is error
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self) -> None:
        operation = AsyncMock(side_effect=[RuntimeError("1"), RuntimeError("2"), "done"])
        assert await retry(operation, max_attempts=5, sleep=no_sleep) == "done"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_on_retry_and_sleep_receive_delays(self) -> None:
        """on_retry gets (index, delay) and sleep gets seconds."""
        operation = AsyncMock(side_effect=[RuntimeError("1"), RuntimeError("2"), "ok"])
        on_retry = MagicMock()
        sleep = AsyncMock()

        await retry(
            operation,
            max_attempts=3,
            strategy=ExponentialBackoffStrategy(100, 10_000, 2, 0),
            on_retry=on_retry,
            sleep=sleep,
        )

        assert [c.args for c in on_retry.call_args_list] == [(0, 100), (1, 200)]
        assert [c.args for c in sleep.call_args_list] == [(0.1,), (0.2,)]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self) -> None:
        operation = AsyncMock(side_effect=ValueError("nope"))
        sleep = AsyncMock()
        with pytest.raises(ValueError):
            await retry(operation, max_attempts=1, sleep=sleep)
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_predicate_stops_non_retryable(self) -> None:
        """A rejected failure is raised without another attempt."""
        operation = AsyncMock(side_effect=FileNotFoundError("actionlint not found"))
        with pytest.raises(FileNotFoundError):
            await retry(operation, max_attempts=5, is_retryable=is_retryable, sleep=no_sleep)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_without_predicate_everything_is_retried(self) -> None:
        operation = AsyncMock(side_effect=ValueError("validation failed"))
        with pytest.raises(ValueError):
            await retry(operation, max_attempts=3, sleep=no_sleep)
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self) -> None:
        with pytest.raises(ValueError):
            await retry(AsyncMock(), max_attempts=0)
