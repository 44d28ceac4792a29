"""Tests for configuration: resilience options, profiles, env overrides and
the config.toml loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from ci_sentinel.config import (
    RESILIENCE_PROFILES,
    ConfigError,
    ResilienceOptions,
    default_config_path,
    load_config,
    parse_config,
    resilience_profile,
)
from ci_sentinel.retry import ExponentialBackoffStrategy, LinearBackoffStrategy


class TestResilienceOptions:
    """Tests for ResilienceOptions."""

    def test_defaults(self) -> None:
        options = ResilienceOptions()
        assert options.circuit_breaker is True
        assert options.retry is True
        assert options.timeout is True
        assert options.failure_threshold == 5
        assert options.max_retries == 3
        assert options.adapter_timeout_ms == 60_000
        assert options.reset_timeout_ms == 30_000
        assert options.failure_window_ms == 60_000

    def test_default_strategy(self) -> None:
        strategy = ResilienceOptions().build_strategy()
        assert isinstance(strategy, ExponentialBackoffStrategy)
        assert strategy.initial_delay_ms == 100
        assert strategy.multiplier == 2
        assert strategy.jitter == 0.1

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            ResilienceOptions().max_retries = 9  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"failure_threshold": 0},
            {"failure_window_ms": 0},
            {"reset_timeout_ms": -1},
            {"max_retries": 0},
            {"adapter_timeout_ms": 0},
        ],
    )
    def test_invalid_values(self, kwargs: dict[str, int]) -> None:
        with pytest.raises(ConfigError):
            ResilienceOptions(**kwargs)


class TestFromEnv:
    """Tests for ResilienceOptions.from_env()."""

    def test_overrides(self) -> None:
        options = ResilienceOptions.from_env(
            environ={
                "CI_SENTINEL_FAILURE_THRESHOLD": "7",
                "CI_SENTINEL_MAX_RETRIES": "4",
                "CI_SENTINEL_ADAPTER_TIMEOUT_MS": "1500",
                "CI_SENTINEL_RESET_TIMEOUT_MS": "250",
            }
        )
        assert options.failure_threshold == 7
        assert options.max_retries == 4
        assert options.adapter_timeout_ms == 1500
        assert options.reset_timeout_ms == 250

    def test_no_overrides_returns_base(self) -> None:
        base = ResilienceOptions(max_retries=2)
        assert ResilienceOptions.from_env(base, environ={}) is base

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CI_SENTINEL_MAX_RETRIES", "6")
        assert ResilienceOptions.from_env().max_retries == 6

    def test_non_integer(self) -> None:
        with pytest.raises(ConfigError, match="CI_SENTINEL_MAX_RETRIES"):
            ResilienceOptions.from_env(environ={"CI_SENTINEL_MAX_RETRIES": "lots"})


class TestProfiles:
    """Tests for the named resilience profiles."""

    def test_available(self) -> None:
        assert set(RESILIENCE_PROFILES) == {"default", "aggressive", "conservative"}

    def test_aggressive(self) -> None:
        profile = resilience_profile("aggressive")
        assert profile.failure_threshold == 3
        assert profile.max_retries == 5
        assert profile.adapter_timeout_ms == 10_000
        strategy = profile.build_strategy()
        assert isinstance(strategy, ExponentialBackoffStrategy)
        assert strategy.max_delay_ms == 2_000

    def test_conservative_uses_linear_backoff(self) -> None:
        strategy = resilience_profile("conservative").build_strategy()
        assert isinstance(strategy, LinearBackoffStrategy)
        assert strategy.increment_ms == 200

    def test_unknown(self) -> None:
        with pytest.raises(ConfigError, match="Unknown resilience profile"):
            resilience_profile("reckless")


def _write(tmp_path: Path, content: str) -> Path:
    config_file = default_config_path(tmp_path)
    config_file.parent.mkdir(parents=True)
    config_file.write_text(content, encoding="utf-8")
    return config_file


class TestLoadConfig:
    """Tests for load_config()."""

    def test_full_config(self, tmp_path: Path) -> None:
        config_file = _write(
            tmp_path,
            "[run]\n"
            "parallel = false\n"
            "timeout_ms = 9000\n"
            'profile = "aggressive"\n'
            "\n"
            "[resilience]\n"
            "max_retries = 2\n"
            "circuit_breaker = false\n"
            "\n"
            "[tools.actionlint]\n"
            'command = "actionlint"\n'
            'args = ["-no-color"]\n'
            'file_patterns = [".github/workflows/*.yml"]\n'
            "\n"
            "[tools.zizmor]\n"
            'command = "zizmor"\n'
            "enabled = false\n",
        )
        config = load_config(config_file)

        assert config.run.parallel is False
        assert config.run.timeout_ms == 9000
        assert config.run.profile == "aggressive"
        assert config.resilience.max_retries == 2
        assert config.resilience.circuit_breaker is False
        assert config.resilience.failure_threshold == 3  # from the profile
        assert config.tools["actionlint"].args == ("-no-color",)
        assert config.tools["actionlint"].file_patterns == (".github/workflows/*.yml",)
        assert config.tools["zizmor"].enabled is False

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_empty_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="empty"):
            load_config(_write(tmp_path, "   \n"))

    def test_invalid_toml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(_write(tmp_path, "[run\n"))

    def test_unknown_keys_ignored(self) -> None:
        config = parse_config({"run": {"future_option": 1}, "extra": {"x": 1}})
        assert config.run.parallel is True
        assert config.tools == {}

    def test_section_must_be_table(self) -> None:
        with pytest.raises(ConfigError, match=r"\[run\] section must be a table"):
            parse_config({"run": "yes"})

    def test_tool_requires_command(self) -> None:
        with pytest.raises(ConfigError, match="command is required"):
            parse_config({"tools": {"x": {"args": []}}})

    def test_tool_args_must_be_strings(self) -> None:
        with pytest.raises(ConfigError, match="args"):
            parse_config({"tools": {"x": {"command": "x", "args": [1]}}})

    def test_resilience_type_checked(self) -> None:
        with pytest.raises(ConfigError, match="resilience.max_retries"):
            parse_config({"resilience": {"max_retries": "3"}})

    @pytest.mark.parametrize(
        ("data", "field"),
        [
            ({"run": {"parallel": "false"}}, "run.parallel"),
            ({"run": {"resilient": 0}}, "run.resilient"),
            ({"tools": {"x": {"command": "x", "enabled": "no"}}}, "tools.x.enabled"),
        ],
    )
    def test_booleans_type_checked(self, data: dict, field: str) -> None:
        """Strings and ints are not silently coerced to bool."""
        with pytest.raises(ConfigError, match=f"{field} must be bool"):
            parse_config(data)

    def test_boolean_values_kept(self) -> None:
        config = parse_config(
            {
                "run": {"parallel": False, "resilient": False},
                "tools": {"x": {"command": "x", "enabled": False}},
            }
        )
        assert config.run.parallel is False
        assert config.run.resilient is False
        assert config.tools["x"].enabled is False

    def test_unknown_profile(self) -> None:
        with pytest.raises(ConfigError):
            parse_config({"run": {"profile": "nope"}})
