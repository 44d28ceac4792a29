"""Configuration for CI Sentinel.

Holds the resilience defaults, the named resilience profiles, environment
overrides, and the per-project .ci-sentinel/config.toml loader.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from .retry.strategies import (
    ExponentialBackoffStrategy,
    LinearBackoffStrategy,
    RetryStrategy,
)

logger = logging.getLogger(__name__)

_CONFIG_DIR = ".ci-sentinel"
_CONFIG_FILE = "config.toml"

# Circuit breaker
DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_FAILURE_WINDOW_MS = 60_000
DEFAULT_RESET_TIMEOUT_MS = 30_000

# Retry
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_INITIAL_DELAY_MS = 100
DEFAULT_RETRY_MULTIPLIER = 2
DEFAULT_RETRY_JITTER = 0.1
DEFAULT_RETRY_MAX_DELAY_MS = 30_000

# Timeouts
DEFAULT_ADAPTER_TIMEOUT_MS = 60_000
DEFAULT_RUN_TIMEOUT_MS = 30_000

# Registry housekeeping
DEFAULT_REGISTRY_TTL_MS = 60 * 60 * 1000  # 1 hour
DEFAULT_CLEANUP_INTERVAL_MS = 10 * 60 * 1000  # 10 minutes

ENV_FAILURE_THRESHOLD = "CI_SENTINEL_FAILURE_THRESHOLD"
ENV_MAX_RETRIES = "CI_SENTINEL_MAX_RETRIES"
ENV_ADAPTER_TIMEOUT_MS = "CI_SENTINEL_ADAPTER_TIMEOUT_MS"
ENV_RESET_TIMEOUT_MS = "CI_SENTINEL_RESET_TIMEOUT_MS"


class ConfigError(ValueError):
    """Raised for invalid configuration files or values."""

    pass


@dataclass(frozen=True)
class ResilienceOptions:
    """Options for resilient adapter execution.

    Attributes:
        circuit_breaker: Route calls through the adapter's circuit breaker.
        retry: Retry failed calls with backoff.
        timeout: Bound each call with ``adapter_timeout_ms``.
        failure_threshold: Failures in the window that open the circuit.
        failure_window_ms: Sliding window for counting failures.
        reset_timeout_ms: Time an open circuit waits before probing.
        max_retries: Total attempts made by the retry engine.
        adapter_timeout_ms: Per-call deadline.
        strategy: Backoff strategy. ``None`` means the default exponential one.
        is_retryable: Optional predicate; failures it rejects are not retried.
    """

    circuit_breaker: bool = True
    retry: bool = True
    timeout: bool = True
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    failure_window_ms: int = DEFAULT_FAILURE_WINDOW_MS
    reset_timeout_ms: int = DEFAULT_RESET_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    adapter_timeout_ms: int = DEFAULT_ADAPTER_TIMEOUT_MS
    strategy: RetryStrategy | None = None
    is_retryable: Callable[[BaseException], bool] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        _validate_resilience(self)

    def build_strategy(self) -> RetryStrategy:
        """Return the configured strategy or the default exponential backoff."""
        if self.strategy is not None:
            return self.strategy
        return ExponentialBackoffStrategy(
            initial_delay_ms=DEFAULT_RETRY_INITIAL_DELAY_MS,
            max_delay_ms=DEFAULT_RETRY_MAX_DELAY_MS,
            multiplier=DEFAULT_RETRY_MULTIPLIER,
            jitter=DEFAULT_RETRY_JITTER,
        )

    @classmethod
    def from_env(
        cls,
        base: ResilienceOptions | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> ResilienceOptions:
        """Apply CI_SENTINEL_* environment overrides on top of ``base``.

        Args:
            base: Starting options. Defaults to ``ResilienceOptions()``.
            environ: Environment mapping. Defaults to ``os.environ``.

        Raises:
            ConfigError: If an override is not an integer.
        """
        env = os.environ if environ is None else environ
        options = base or cls()
        overrides: dict[str, int] = {}
        for var, attr in (
            (ENV_FAILURE_THRESHOLD, "failure_threshold"),
            (ENV_MAX_RETRIES, "max_retries"),
            (ENV_ADAPTER_TIMEOUT_MS, "adapter_timeout_ms"),
            (ENV_RESET_TIMEOUT_MS, "reset_timeout_ms"),
        ):
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            try:
                overrides[attr] = int(raw)
            except ValueError as exc:
                msg = f"{var} must be an integer, got '{raw}'"
                raise ConfigError(msg) from exc
        if overrides:
            logger.debug("Resilience overrides from environment: %s", overrides)
            return replace(options, **overrides)
        return options


def _validate_resilience(options: ResilienceOptions) -> None:
    if options.failure_threshold < 1:
        msg = f"failure_threshold must be positive, got {options.failure_threshold}"
        raise ConfigError(msg)
    if options.failure_window_ms <= 0:
        msg = f"failure_window_ms must be positive, got {options.failure_window_ms}"
        raise ConfigError(msg)
    if options.reset_timeout_ms < 0:
        msg = f"reset_timeout_ms must not be negative, got {options.reset_timeout_ms}"
        raise ConfigError(msg)
    if options.max_retries < 1:
        msg = f"max_retries must be at least 1, got {options.max_retries}"
        raise ConfigError(msg)
    if options.adapter_timeout_ms <= 0:
        msg = f"adapter_timeout_ms must be positive, got {options.adapter_timeout_ms}"
        raise ConfigError(msg)


RESILIENCE_PROFILES: dict[str, ResilienceOptions] = {
    "default": ResilienceOptions(
        failure_threshold=5,
        failure_window_ms=60_000,
        reset_timeout_ms=30_000,
        max_retries=3,
        adapter_timeout_ms=30_000,
        strategy=ExponentialBackoffStrategy(
            initial_delay_ms=100, max_delay_ms=5_000, multiplier=2, jitter=0.1
        ),
    ),
    # Fail fast for local development and pre-commit hooks
    "aggressive": ResilienceOptions(
        failure_threshold=3,
        failure_window_ms=30_000,
        reset_timeout_ms=10_000,
        max_retries=5,
        adapter_timeout_ms=10_000,
        strategy=ExponentialBackoffStrategy(
            initial_delay_ms=50, max_delay_ms=2_000, multiplier=2, jitter=0.2
        ),
    ),
    # Tolerant settings for slow CI runners
    "conservative": ResilienceOptions(
        failure_threshold=10,
        failure_window_ms=120_000,
        reset_timeout_ms=60_000,
        max_retries=3,
        adapter_timeout_ms=60_000,
        strategy=LinearBackoffStrategy(
            initial_delay_ms=200, increment_ms=200, max_delay_ms=10_000, jitter=0.05
        ),
    ),
}


def resilience_profile(name: str) -> ResilienceOptions:
    """Return the named resilience profile.

    Raises:
        ConfigError: If the profile does not exist.
    """
    try:
        return RESILIENCE_PROFILES[name]
    except KeyError:
        available = ", ".join(sorted(RESILIENCE_PROFILES))
        msg = f"Unknown resilience profile '{name}' (available: {available})"
        raise ConfigError(msg) from None


@dataclass(frozen=True)
class RunConfig:
    """[run] section."""

    parallel: bool = True
    timeout_ms: int = DEFAULT_RUN_TIMEOUT_MS
    resilient: bool = True
    profile: str = "default"


@dataclass(frozen=True)
class ToolConfig:
    """[tools.<name>] section describing one external checker."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    file_patterns: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class SentinelConfig:
    """Per-project configuration loaded from .ci-sentinel/config.toml."""

    run: RunConfig = field(default_factory=RunConfig)
    resilience: ResilienceOptions = field(default_factory=ResilienceOptions)
    tools: dict[str, ToolConfig] = field(default_factory=dict)


def default_config_path(project_path: Path) -> Path:
    """Return the conventional config file location under ``project_path``."""
    return project_path / _CONFIG_DIR / _CONFIG_FILE


def load_config(config_file: Path) -> SentinelConfig:
    """Load a CI Sentinel config file.

    Args:
        config_file: Path to a config.toml file.

    Returns:
        Parsed SentinelConfig.

    Raises:
        FileNotFoundError: If the file is missing.
        ConfigError: On invalid, empty, or corrupt TOML.
    """
    if not config_file.exists():
        msg = f"Config not found: {config_file}"
        raise FileNotFoundError(msg)

    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Config file is empty: {config_file}"
        raise ConfigError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_file}: {exc}"
        raise ConfigError(msg) from exc

    config = parse_config(data)
    logger.debug("Loaded config %s (%d tools)", config_file, len(config.tools))
    return config


def parse_config(data: Mapping[str, Any]) -> SentinelConfig:
    """Parse raw TOML data into a SentinelConfig.

    Unknown fields are silently ignored for forward compatibility.
    """
    run_data = _section(data, "run")
    resilience_data = _section(data, "resilience")
    tools_data = _section(data, "tools")

    try:
        run = RunConfig(
            parallel=_bool_field("run", "parallel", run_data.get("parallel", True)),
            timeout_ms=int(run_data.get("timeout_ms", DEFAULT_RUN_TIMEOUT_MS)),
            resilient=_bool_field("run", "resilient", run_data.get("resilient", True)),
            profile=str(run_data.get("profile", "default")),
        )
    except (TypeError, ValueError) as exc:
        msg = f"Invalid [run] section: {exc}"
        raise ConfigError(msg) from exc
    if run.timeout_ms <= 0:
        msg = f"run.timeout_ms must be positive, got {run.timeout_ms}"
        raise ConfigError(msg)

    resilience = _parse_resilience(resilience_profile(run.profile), resilience_data)

    tools: dict[str, ToolConfig] = {}
    for name, tool_data in tools_data.items():
        if not isinstance(tool_data, dict):
            msg = f"[tools.{name}] section must be a table"
            raise ConfigError(msg)
        tools[name] = _parse_tool(name, tool_data)

    return SentinelConfig(run=run, resilience=resilience, tools=tools)


def _section(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key, {})
    if not isinstance(section, dict):
        msg = f"[{key}] section must be a table"
        raise ConfigError(msg)
    return section


def _bool_field(section: str, key: str, value: Any) -> bool:
    if type(value) is not bool:
        msg = f"{section}.{key} must be bool, got {value!r}"
        raise ConfigError(msg)
    return value


_RESILIENCE_KEYS = (
    "circuit_breaker",
    "retry",
    "timeout",
    "failure_threshold",
    "failure_window_ms",
    "reset_timeout_ms",
    "max_retries",
    "adapter_timeout_ms",
)


def _parse_resilience(base: ResilienceOptions, data: Mapping[str, Any]) -> ResilienceOptions:
    overrides: dict[str, Any] = {}
    for key in _RESILIENCE_KEYS:
        if key not in data:
            continue
        value = data[key]
        expected = bool if key in ("circuit_breaker", "retry", "timeout") else int
        if type(value) is not expected:
            msg = f"resilience.{key} must be {expected.__name__}, got {value!r}"
            raise ConfigError(msg)
        overrides[key] = value
    return replace(base, **overrides) if overrides else base


def _parse_tool(name: str, data: Mapping[str, Any]) -> ToolConfig:
    command = data.get("command")
    if not isinstance(command, str) or not command:
        msg = f"tools.{name}.command is required and must be a non-empty string"
        raise ConfigError(msg)

    args = data.get("args", [])
    patterns = data.get("file_patterns", [])
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        msg = f"tools.{name}.args must be a list of strings"
        raise ConfigError(msg)
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        msg = f"tools.{name}.file_patterns must be a list of strings"
        raise ConfigError(msg)

    return ToolConfig(
        name=name,
        command=command,
        args=tuple(args),
        file_patterns=tuple(patterns),
        enabled=_bool_field(f"tools.{name}", "enabled", data.get("enabled", True)),
    )
