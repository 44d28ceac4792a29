"""Error classification for adapter failures.

Single source of truth mapping any failure to an error type, a
POSIX-flavored exit code, and a human-readable reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .circuit_breaker.exceptions import CircuitBreakerOpenError


class ErrorType(str, Enum):
    """Failure taxonomy for adapter executions."""

    CIRCUIT_BREAKER_OPEN = "circuit_breaker_open"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    VALIDATION = "validation"
    RETRIES_EXHAUSTED = "retries_exhausted"
    CRASH = "crash"
    UNKNOWN = "unknown"


EXIT_CODES: dict[ErrorType, int] = {
    ErrorType.CIRCUIT_BREAKER_OPEN: 129,
    ErrorType.TIMEOUT: 124,
    ErrorType.NOT_FOUND: 127,
    ErrorType.PERMISSION: 126,
    ErrorType.VALIDATION: 1,
    ErrorType.RETRIES_EXHAUSTED: 130,
    ErrorType.CRASH: 3,
    ErrorType.UNKNOWN: 1,
}

_REASONS: dict[ErrorType, str] = {
    ErrorType.CIRCUIT_BREAKER_OPEN: "Circuit breaker open",
    ErrorType.TIMEOUT: "Execution timeout",
    ErrorType.NOT_FOUND: "Tool not found",
    ErrorType.PERMISSION: "Permission denied",
    ErrorType.VALIDATION: "Invalid input",
    ErrorType.RETRIES_EXHAUSTED: "Max retries exhausted",
    ErrorType.CRASH: "Adapter crashed",
    ErrorType.UNKNOWN: "Unknown error",
}

_NON_RETRYABLE = frozenset(
    {
        ErrorType.NOT_FOUND,
        ErrorType.PERMISSION,
        ErrorType.VALIDATION,
        ErrorType.RETRIES_EXHAUSTED,
    }
)


def exit_code_for(error_type: ErrorType) -> int:
    """Return the exit code for an error type."""
    return EXIT_CODES[error_type]


@dataclass(frozen=True)
class ErrorContext:
    """Retry context used to detect exhausted retries."""

    attempts: int = 0
    max_retries: int | None = None


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying one failure. Recomputed, never stored."""

    type: ErrorType
    exit_code: int
    reason: str
    message: str


class ErrorClassifier:
    """Classifies failures in a fixed priority order.

    circuit breaker open -> timeout -> not found -> permission ->
    validation -> retries exhausted -> crash -> unknown. The first match wins.
    """

    def classify(
        self,
        error: BaseException | str | object,
        context: ErrorContext | None = None,
    ) -> ErrorClassification:
        """Classify ``error``.

        Args:
            error: An exception, or any value (strings are used as the message).
            context: Attempt count and retry limit, when known.

        Returns:
            The matching ErrorClassification.
        """
        message = _message_of(error)
        error_type = self._classify_type(error, message.lower(), context)
        return ErrorClassification(
            type=error_type,
            exit_code=EXIT_CODES[error_type],
            reason=_REASONS[error_type],
            message=message,
        )

    def is_retryable(self, error: BaseException | str | object) -> bool:
        """Return False for not-found, permission, validation and exhausted retries."""
        return self.classify(error).type not in _NON_RETRYABLE

    @staticmethod
    def _classify_type(
        error: object,
        lowered: str,
        context: ErrorContext | None,
    ) -> ErrorType:
        if isinstance(error, CircuitBreakerOpenError) or "circuit breaker open" in lowered:
            return ErrorType.CIRCUIT_BREAKER_OPEN
        if isinstance(error, TimeoutError) or any(
            marker in lowered for marker in ("timeout", "etimedout", "timed out")
        ):
            return ErrorType.TIMEOUT
        if isinstance(error, FileNotFoundError) or "enoent" in lowered or "not found" in lowered:
            return ErrorType.NOT_FOUND
        if isinstance(error, PermissionError) or "eacces" in lowered or "permission" in lowered:
            return ErrorType.PERMISSION
        if "validation" in lowered or "invalid" in lowered:
            return ErrorType.VALIDATION
        if (
            context is not None
            and context.max_retries is not None
            and context.attempts >= context.max_retries
        ):
            return ErrorType.RETRIES_EXHAUSTED
        if isinstance(error, BaseException) and error.__traceback__ is not None:
            return ErrorType.CRASH
        return ErrorType.UNKNOWN


def _message_of(error: object) -> str:
    if isinstance(error, BaseException):
        text = str(error)
        return text or type(error).__name__
    return str(error)


_default_classifier = ErrorClassifier()


def classify_error(
    error: BaseException | str | object,
    context: ErrorContext | None = None,
) -> ErrorClassification:
    """Classify ``error`` with the shared classifier."""
    return _default_classifier.classify(error, context)


def is_retryable(error: BaseException | str | object) -> bool:
    """Return whether ``error`` is worth retrying."""
    return _default_classifier.is_retryable(error)
