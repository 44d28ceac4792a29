"""Tests for timeout enforcement helpers."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from ci_sentinel.timeout import (
    GlobalTimeoutError,
    OperationTimeoutError,
    TimedOperation,
    TimeoutManager,
    with_global_and_step_timeouts,
    with_timeout,
    with_timeouts,
)


async def _value(v: object, delay: float = 0) -> object:
    await asyncio.sleep(delay)
    return v


class TestWithTimeout:
    """Tests for with_timeout()."""

    @pytest.mark.asyncio
    async def test_returns_result_in_time(self) -> None:
        assert await with_timeout(lambda: _value("ok"), 1000, "quick") == "ok"

    @pytest.mark.asyncio
    async def test_raises_typed_timeout(self) -> None:
        """The error carries the timeout and operation name."""
        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(lambda: _value("late", 1), 20, "slow-tool")
        err = exc_info.value
        assert err.timeout_ms == 20
        assert err.operation == "slow-tool"
        assert str(err) == "Operation 'slow-tool' timed out after 20ms"
        assert isinstance(err, TimeoutError)

    @pytest.mark.asyncio
    async def test_cancels_the_operation(self) -> None:
        """The losing operation is cancelled, not left running."""
        cancelled = asyncio.Event()

        async def hang() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(OperationTimeoutError):
            await with_timeout(hang, 10, "hang")
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_inner_timeout_error_propagates_unchanged(self) -> None:
        """A TimeoutError raised by the operation itself is not rewritten."""
        inner = TimeoutError("socket timed out")

        async def raises() -> None:
            raise inner

        with pytest.raises(TimeoutError) as exc_info:
            await with_timeout(raises, 1000, "net")
        assert exc_info.value is inner

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        async def raises() -> None:
            raise KeyError("x")

        with pytest.raises(KeyError):
            await with_timeout(raises, 1000)


class TestWithTimeouts:
    """Tests for with_timeouts()."""

    @pytest.mark.asyncio
    async def test_mixed_outcomes_in_order(self) -> None:
        """Each operation settles independently; order is preserved."""
        outcomes = await with_timeouts(
            [
                TimedOperation(lambda: _value(1), 1000, "one"),
                TimedOperation(lambda: _value(2, 1), 20, "two"),
                TimedOperation(lambda: _value(3), 1000, "three"),
            ]
        )
        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[0].result == 1
        assert outcomes[2].result == 3
        assert isinstance(outcomes[1].error, OperationTimeoutError)

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        assert await with_timeouts([]) == []


class TestGlobalAndStepTimeouts:
    """Tests for with_global_and_step_timeouts()."""

    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self) -> None:
        order: list[int] = []

        def step(i: int) -> TimedOperation[int]:
            async def fn() -> int:
                order.append(i)
                return i

            return TimedOperation(fn, 1000, f"step{i}")

        results = await with_global_and_step_timeouts([step(1), step(2)], 5000)
        assert results == [1, 2]
        assert order == [1, 2]

    @pytest.mark.asyncio
    async def test_exhausted_budget_stops_before_next_step(self) -> None:
        """No step starts once the budget is gone."""
        now = [0.0]
        second = MagicMock()

        async def first() -> str:
            now[0] += 2.0  # two seconds pass
            return "first"

        async def run_second() -> str:
            second()
            return "second"

        with pytest.raises(GlobalTimeoutError) as exc_info:
            await with_global_and_step_timeouts(
                [TimedOperation(first, 5000), TimedOperation(run_second, 5000)],
                1000,
                clock=lambda: now[0],
            )
        second.assert_not_called()
        assert str(exc_info.value) == "Global timeout (1000ms) exceeded during 'orchestration'"

    @pytest.mark.asyncio
    async def test_step_limited_by_remaining_budget(self) -> None:
        """A step gets min(step timeout, remaining budget)."""
        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_global_and_step_timeouts(
                [TimedOperation(lambda: _value("x", 1), 10_000, "long")], 30
            )
        assert exc_info.value.timeout_ms <= 30
        assert not isinstance(exc_info.value, GlobalTimeoutError)


class TestTimeoutManager:
    """Tests for TimeoutManager."""

    @pytest.mark.asyncio
    async def test_set_and_fire(self) -> None:
        manager = TimeoutManager()
        fired = asyncio.Event()
        manager.set("job", fired.set, 5)
        assert manager.get_active_count() == 1
        await asyncio.wait_for(fired.wait(), 1)
        assert manager.get_active_count() == 0

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        manager = TimeoutManager()
        callback = MagicMock()
        manager.set("job", callback, 10)
        assert manager.clear("job") is True
        assert manager.clear("job") is False
        await asyncio.sleep(0.03)
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_clear_all_and_replace(self) -> None:
        manager = TimeoutManager()
        callback = MagicMock()
        manager.set("a", callback, 10)
        manager.set("a", callback, 10)
        manager.set("b", callback, 10)
        assert manager.get_active_count() == 2
        manager.clear_all()
        assert manager.get_active_count() == 0
        await asyncio.sleep(0.03)
        callback.assert_not_called()
