"""Domain models for CI Sentinel runs.

A run fans out over adapters (one per external checking tool). Each
adapter returns an AdapterResult; the resilient path wraps it in a
ResilientAdapterResult first, and the orchestrator merges everything
into an OrchestratorResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .config import ResilienceOptions
    from .error_classifier import ErrorType

Severity = Literal["error", "warning", "info"]

SEVERITY_ORDER: dict[str, int] = {"error": 0, "warning": 1, "info": 2}


@dataclass(frozen=True)
class Violation:
    """A single finding reported by a tool.

    Attributes:
        id: Rule identifier (e.g. "expression", "SC2086").
        severity: One of "error", "warning", "info".
        message: Human-readable description.
        source: Tool that produced the finding.
        path: File path, when the finding is tied to a file.
        line: 1-based line number.
        column: 1-based column number.
        hint: Optional remediation hint.
    """

    id: str
    severity: Severity
    message: str
    source: str
    path: str | None = None
    line: int | None = None
    column: int | None = None
    hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "severity": self.severity,
            "message": self.message,
            "source": self.source,
        }
        for key in ("path", "line", "column", "hint"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class AdapterRunOptions:
    """Options handed to a single adapter.

    Adapters may mutate what they receive, so every caller builds a
    fresh instance per adapter with ``copy()``.
    """

    files: list[str]
    cwd: str
    timeout_ms: int | None = None

    def copy(self) -> AdapterRunOptions:
        """Return an instance with its own ``files`` list."""
        return AdapterRunOptions(files=list(self.files), cwd=self.cwd, timeout_ms=self.timeout_ms)


@dataclass
class AdapterResult:
    """Normalized result of one tool run.

    Attributes:
        tool: Adapter name.
        version: Tool version, or "unknown".
        exit_code: Tool exit code, or the classified exit code when skipped.
        violations: Findings reported by the tool.
        execution_time_ms: Wall-clock duration of the run.
        skipped: True when the tool did not produce a real result.
        skip_reason: Why the tool was skipped.
    """

    tool: str
    version: str
    exit_code: int
    violations: list[Violation] = field(default_factory=list)
    execution_time_ms: float = 0.0
    skipped: bool = False
    skip_reason: str | None = None


@dataclass(frozen=True)
class AdapterFailure:
    """Why a resilient execution failed."""

    message: str
    type: ErrorType
    attempts: int
    duration_ms: float


@dataclass(frozen=True)
class ResilientAdapterResult:
    """Outcome of one resilient adapter execution.

    Exactly one of ``result`` and ``error`` is set, depending on ``success``.
    """

    adapter: str
    success: bool
    duration_ms: float
    result: AdapterResult | None = None
    error: AdapterFailure | None = None


@dataclass(frozen=True)
class RunOptions:
    """Options for a whole orchestrator run.

    Attributes:
        files: Files to check, in order.
        cwd: Working directory for the tools.
        timeout_ms: Per-adapter timeout handed to each tool.
        tools: Adapter names to run. ``None`` runs every enabled adapter.
        profile: Profile label recorded in the run metadata.
        parallel: Run adapters concurrently (default) or one after another.
        resilience: When set, use the resilient strategy with these options.
    """

    files: tuple[str, ...] | list[str]
    cwd: str = "."
    timeout_ms: int | None = None
    tools: tuple[str, ...] | list[str] | None = None
    profile: str | None = None
    parallel: bool = True
    resilience: ResilienceOptions | None = None

    def to_adapter_options(self) -> AdapterRunOptions:
        """Return fresh adapter options with a private copy of ``files``."""
        return AdapterRunOptions(files=list(self.files), cwd=self.cwd, timeout_ms=self.timeout_ms)


@dataclass(frozen=True)
class RunSummary:
    """Violation counts by severity."""

    total: int = 0
    errors: int = 0
    warnings: int = 0
    info: int = 0


@dataclass(frozen=True)
class ToolMetadata:
    """Per-tool line in the run report."""

    name: str
    version: str
    exit_code: int
    skipped: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class RunMetadata:
    generated_at: str
    execution_time_ms: float
    profile: str | None = None


@dataclass(frozen=True)
class OrchestratorResult:
    """Merged, deterministic result of a run."""

    summary: RunSummary
    violations: list[Violation]
    tools: list[ToolMetadata]
    run_metadata: RunMetadata
    schema_version: int = 1
    deterministic: bool = True

    @property
    def exit_code(self) -> int:
        """Process exit code for the run.

        0 when clean, 1 when error violations exist, otherwise the
        highest exit code among failed or skipped tools.
        """
        if self.summary.errors > 0:
            return 1
        tool_codes = [t.exit_code for t in self.tools if t.skipped or t.exit_code != 0]
        return max(tool_codes, default=0)
