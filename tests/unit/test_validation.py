"""Tests for run option validation."""

from __future__ import annotations

import pytest

from ci_sentinel.models import RunOptions
from ci_sentinel.validation import (
    MAX_PATH_LENGTH,
    OptionsValidationError,
    normalize_files,
    validate_run_options,
)


class TestValidateRunOptions:
    """Tests for validate_run_options()."""

    def test_valid_options_are_normalized(self) -> None:
        options = RunOptions(files=["a\\b.yml", "c.yml", "a/b.yml"], tools=["actionlint"])
        validated = validate_run_options(options)
        assert validated.files == ("a/b.yml", "c.yml")
        assert validated.tools == ("actionlint",)
        assert validated is not options

    def test_empty_files(self) -> None:
        with pytest.raises(OptionsValidationError) as exc_info:
            validate_run_options(RunOptions(files=[]))
        assert "files" in exc_info.value.errors[0]

    @pytest.mark.parametrize("path", ["", "bad\x00path", "x" * (MAX_PATH_LENGTH + 1)])
    def test_bad_paths(self, path: str) -> None:
        with pytest.raises(OptionsValidationError, match="validation failed"):
            validate_run_options(RunOptions(files=[path]))

    def test_max_length_path_allowed(self) -> None:
        validate_run_options(RunOptions(files=["x" * MAX_PATH_LENGTH]))

    @pytest.mark.parametrize("name", ["has space", "semi;colon", "", "x" * 65])
    def test_bad_tool_names(self, name: str) -> None:
        with pytest.raises(OptionsValidationError):
            validate_run_options(RunOptions(files=["a.yml"], tools=[name]))

    def test_bad_profile(self) -> None:
        with pytest.raises(OptionsValidationError):
            validate_run_options(RunOptions(files=["a.yml"], profile="../etc"))

    @pytest.mark.parametrize("timeout_ms", [0, -5, 600_001])
    def test_bad_timeout(self, timeout_ms: int) -> None:
        with pytest.raises(OptionsValidationError):
            validate_run_options(RunOptions(files=["a.yml"], timeout_ms=timeout_ms))

    def test_max_timeout_allowed(self) -> None:
        assert validate_run_options(RunOptions(files=["a"], timeout_ms=600_000)).timeout_ms == 600_000

    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_run_options(RunOptions(files=[]))


def test_normalize_files_keeps_first_occurrence() -> None:
    assert normalize_files(["b", "a", "b", "c\\d"]) == ["b", "a", "c/d"]
