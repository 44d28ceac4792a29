"""CI Sentinel.

Runs independent CI workflow checkers (linters, scanners) over a file set
under circuit breaker, retry and timeout protection, and merges their
findings into one deterministic result.
"""

from __future__ import annotations

from .adapters import Adapter, CommandAdapter
from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitBreakerRegistry,
    CircuitState,
    FailureWindow,
    StatsTracker,
    get_default_registry,
)
from .config import (
    ConfigError,
    ResilienceOptions,
    SentinelConfig,
    load_config,
    resilience_profile,
)
from .error_classifier import (
    EXIT_CODES,
    ErrorClassification,
    ErrorClassifier,
    ErrorContext,
    ErrorType,
)
from .metrics import MetricsCollector, get_metrics_collector
from .models import (
    AdapterFailure,
    AdapterResult,
    AdapterRunOptions,
    OrchestratorResult,
    ResilientAdapterResult,
    RunOptions,
    Violation,
)
from .orchestrator import Orchestrator
from .resilience import (
    AdapterExecutor,
    ResilienceCoordinator,
    ResultConverter,
    StatsComputer,
)
from .retry import (
    ExponentialBackoffStrategy,
    FibonacciBackoffStrategy,
    FixedDelayStrategy,
    LinearBackoffStrategy,
    RetryStrategy,
    retry,
)
from .strategies import (
    ExecutionStrategy,
    LegacyExecutionStrategy,
    ResilientExecutionStrategy,
)
from .timeout import (
    GlobalTimeoutError,
    OperationTimeoutError,
    TimeoutManager,
    with_global_and_step_timeouts,
    with_timeout,
    with_timeouts,
)
from .validation import OptionsValidationError, validate_run_options

__all__ = [
    # Adapters
    "Adapter",
    "CommandAdapter",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitBreakerRegistry",
    "CircuitState",
    "FailureWindow",
    "StatsTracker",
    "get_default_registry",
    # Config
    "ConfigError",
    "ResilienceOptions",
    "SentinelConfig",
    "load_config",
    "resilience_profile",
    # Errors
    "EXIT_CODES",
    "ErrorClassification",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorType",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    # Models
    "AdapterFailure",
    "AdapterResult",
    "AdapterRunOptions",
    "OrchestratorResult",
    "ResilientAdapterResult",
    "RunOptions",
    "Violation",
    # Orchestration
    "Orchestrator",
    "AdapterExecutor",
    "ResilienceCoordinator",
    "ResultConverter",
    "StatsComputer",
    "ExecutionStrategy",
    "LegacyExecutionStrategy",
    "ResilientExecutionStrategy",
    # Retry
    "ExponentialBackoffStrategy",
    "FibonacciBackoffStrategy",
    "FixedDelayStrategy",
    "LinearBackoffStrategy",
    "RetryStrategy",
    "retry",
    # Timeouts
    "GlobalTimeoutError",
    "OperationTimeoutError",
    "TimeoutManager",
    "with_global_and_step_timeouts",
    "with_timeout",
    "with_timeouts",
    # Validation
    "OptionsValidationError",
    "validate_run_options",
]
