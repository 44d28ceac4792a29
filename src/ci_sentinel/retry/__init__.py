"""Retry engine and backoff strategies."""

from .engine import build_strategy, retry
from .strategies import (
    ExponentialBackoffStrategy,
    FibonacciBackoffStrategy,
    FixedDelayStrategy,
    LinearBackoffStrategy,
    RetryStrategy,
)

__all__ = [
    "ExponentialBackoffStrategy",
    "FibonacciBackoffStrategy",
    "FixedDelayStrategy",
    "LinearBackoffStrategy",
    "RetryStrategy",
    "build_strategy",
    "retry",
]
