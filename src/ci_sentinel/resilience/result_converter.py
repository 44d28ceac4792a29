"""Conversion of resilient outcomes into plain adapter results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..error_classifier import EXIT_CODES, ErrorType
from ..models import AdapterResult, ResilientAdapterResult


@dataclass(frozen=True)
class FailureSummary:
    """One failed adapter, for reporting."""

    adapter: str
    reason: str
    type: ErrorType


class ResultConverter:
    """Turns ResilientAdapterResult values into AdapterResult values.

    A success passes the adapter's own result through. A failure becomes
    a skipped result whose exit code comes from the classified error type.
    """

    def convert(self, outcome: ResilientAdapterResult) -> AdapterResult:
        if outcome.success and outcome.result is not None:
            return outcome.result

        error = outcome.error
        if error is None:
            return AdapterResult(
                tool=outcome.adapter,
                version="unknown",
                exit_code=EXIT_CODES[ErrorType.UNKNOWN],
                violations=[],
                execution_time_ms=outcome.duration_ms,
                skipped=True,
                skip_reason="Unknown error",
            )

        return AdapterResult(
            tool=outcome.adapter,
            version="unknown",
            exit_code=EXIT_CODES[error.type],
            violations=[],
            execution_time_ms=outcome.duration_ms,
            skipped=True,
            skip_reason=error.message,
        )

    def convert_batch(self, outcomes: Sequence[ResilientAdapterResult]) -> list[AdapterResult]:
        """Convert outcomes, keeping their order."""
        return [self.convert(outcome) for outcome in outcomes]

    @staticmethod
    def extract_successful(outcomes: Sequence[ResilientAdapterResult]) -> list[AdapterResult]:
        """Return the real results of successful adapters only."""
        return [o.result for o in outcomes if o.success and o.result is not None]

    @staticmethod
    def extract_failures(outcomes: Sequence[ResilientAdapterResult]) -> list[FailureSummary]:
        """Return adapter, reason and type for every failed adapter."""
        return [
            FailureSummary(adapter=o.adapter, reason=o.error.message, type=o.error.type)
            for o in outcomes
            if not o.success and o.error is not None
        ]
