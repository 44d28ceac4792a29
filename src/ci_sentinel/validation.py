"""Run option validation with Pydantic."""

from __future__ import annotations

import re
from dataclasses import replace

from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import RunOptions

MAX_PATH_LENGTH = 4096
MAX_TIMEOUT_MS = 600_000
_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


class OptionsValidationError(ValueError):
    """Raised when run options fail validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Run options validation failed: " + "; ".join(errors))


def _check_name(kind: str, value: str) -> str:
    if not _NAME_PATTERN.match(value):
        raise ValueError(
            f"{kind} '{value}' must be 1-64 characters of letters, digits, '_' or '-'"
        )
    return value


class RunOptionsModel(BaseModel):
    """Validated shape of RunOptions."""

    model_config = {"extra": "ignore"}

    files: list[str] = Field(min_length=1)
    cwd: str = "."
    timeout_ms: int | None = Field(default=None, gt=0, le=MAX_TIMEOUT_MS)
    tools: list[str] | None = None
    profile: str | None = None
    parallel: bool = True

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: list[str]) -> list[str]:
        """Validate every path is non-empty, bounded and free of NUL bytes."""
        for path in v:
            if not path:
                raise ValueError("file path must not be empty")
            if len(path) > MAX_PATH_LENGTH:
                raise ValueError(f"file path exceeds {MAX_PATH_LENGTH} characters")
            if "\x00" in path:
                raise ValueError("file path must not contain NUL bytes")
        return v

    @field_validator("tools")
    @classmethod
    def validate_tools(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [_check_name("adapter name", name) for name in v]

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_name("profile", v)


def normalize_files(files: list[str]) -> list[str]:
    """Use forward slashes and drop duplicates, keeping first occurrences."""
    seen: set[str] = set()
    normalized = []
    for path in files:
        path = path.replace("\\", "/")
        if path not in seen:
            seen.add(path)
            normalized.append(path)
    return normalized


def validate_run_options(options: RunOptions) -> RunOptions:
    """Validate ``options`` and return a normalized copy.

    The caller's object is never modified.

    Raises:
        OptionsValidationError: On any invalid field.
    """
    try:
        model = RunOptionsModel(
            files=list(options.files),
            cwd=options.cwd,
            timeout_ms=options.timeout_ms,
            tools=list(options.tools) if options.tools is not None else None,
            profile=options.profile,
            parallel=options.parallel,
        )
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or 'options'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise OptionsValidationError(errors) from exc

    return replace(
        options,
        files=tuple(normalize_files(model.files)),
        tools=tuple(model.tools) if model.tools is not None else None,
    )
