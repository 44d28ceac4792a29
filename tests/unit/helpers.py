"""Shared test doubles: a manual clock and in-memory adapters."""

from __future__ import annotations

import asyncio

from ci_sentinel.models import AdapterResult, AdapterRunOptions, Violation


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def make_result(tool: str, violations: list[Violation] | None = None) -> AdapterResult:
    return AdapterResult(
        tool=tool,
        version="1.0.0",
        exit_code=1 if violations else 0,
        violations=violations or [],
        execution_time_ms=1.0,
    )


class StaticAdapter:
    """Always returns the same violations."""

    def __init__(self, name: str, violations: list[Violation] | None = None) -> None:
        self.name = name
        self.violations = violations or []
        self.calls = 0
        self.seen_files: list[list[str]] = []

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        self.calls += 1
        self.seen_files.append(list(options.files))
        return make_result(self.name, list(self.violations))


class FailingAdapter:
    """Always raises ``error``."""

    def __init__(self, name: str, error: Exception | None = None) -> None:
        self.name = name
        self.error = error or RuntimeError(f"{name} crashed")
        self.calls = 0

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        self.calls += 1
        raise self.error


class FlakyAdapter:
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, name: str, failures: int) -> None:
        self.name = name
        self.failures = failures
        self.calls = 0

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"transient failure {self.calls}")
        return make_result(self.name)


class MutatingAdapter:
    """Clears and rewrites the files it receives."""

    def __init__(self, name: str = "mutator") -> None:
        self.name = name

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        options.files.clear()
        options.files.append("injected.yml")
        options.cwd = "/elsewhere"
        return make_result(self.name)


class SlowAdapter:
    """Sleeps before returning; used for timeout tests."""

    def __init__(self, name: str, delay_s: float) -> None:
        self.name = name
        self.delay_s = delay_s
        self.cancelled = False

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        try:
            await asyncio.sleep(self.delay_s)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return make_result(self.name)


async def no_sleep(seconds: float) -> None:
    """Stand-in for asyncio.sleep that returns at once."""
    return None
