"""Pydantic report models for JSON output.

These models serialize OrchestratorResult dataclasses, which keeps the
JSON shape in one place for the CLI and any other consumer.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import OrchestratorResult


class ViolationReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    severity: Literal["error", "warning", "info"]
    message: str
    source: str
    path: str | None = None
    line: int | None = None
    column: int | None = None
    hint: str | None = None


class SummaryReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int = Field(ge=0)
    errors: int = Field(ge=0)
    warnings: int = Field(ge=0)
    info: int = Field(ge=0)


class ToolReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    version: str
    exit_code: int
    skipped: bool = False
    reason: str | None = None


class RunMetadataReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    generated_at: str
    execution_time_ms: float
    profile: str | None = None


class RunReport(BaseModel):
    """Top-level JSON report for one run."""

    model_config = ConfigDict(from_attributes=True)

    schema_version: int
    deterministic: bool
    summary: SummaryReport
    violations: list[ViolationReport]
    tools: list[ToolReport]
    run_metadata: RunMetadataReport
    exit_code: int

    @classmethod
    def from_result(cls, result: OrchestratorResult) -> RunReport:
        """Build a report from an OrchestratorResult."""
        return cls.model_validate(result)


def render_json(result: OrchestratorResult, indent: int | None = 2) -> str:
    """Serialize a run result to JSON, dropping unset optional fields."""
    return RunReport.from_result(result).model_dump_json(indent=indent, exclude_none=True)
