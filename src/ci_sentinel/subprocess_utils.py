"""Shared subprocess utilities for tool adapters."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path


def resolve_tool(tool_name: str) -> str:
    """Resolve the executable for an external checking tool.

    Paths containing a separator are returned unchanged. Otherwise the
    directory of sys.executable (venv bin) is tried first, then PATH,
    falling back to the bare name so that the subprocess call itself
    reports the missing binary.

    Args:
        tool_name: Tool name or path (e.g., "actionlint", "./bin/zizmor").

    Returns:
        Path to the tool if found, otherwise the bare name.
    """
    if "/" in tool_name or "\\" in tool_name:
        return tool_name
    tool_path = Path(sys.executable).parent / tool_name
    if tool_path.exists():
        return str(tool_path)
    return shutil.which(tool_name) or tool_name


def decode_output(data: bytes | None) -> str:
    """Decode subprocess output, replacing invalid bytes."""
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
