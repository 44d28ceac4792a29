"""Generic adapter running an external checker as a subprocess.

Usage:
    adapter = CommandAdapter(
        "actionlint",
        "actionlint",
        args=("-no-color",),
        file_patterns=(".github/workflows/*.yml", ".github/workflows/*.yaml"),
    )
    result = await adapter.run(AdapterRunOptions(files=files, cwd="."))
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from fnmatch import fnmatch
from typing import Callable, Sequence

from ..models import AdapterResult, AdapterRunOptions, Violation
from ..subprocess_utils import decode_output, resolve_tool
from ..timeout import OperationTimeoutError

logger = logging.getLogger(__name__)

Parser = Callable[[str, str, str], list[Violation]]

# path:line:col: message [rule]
_LINE_PATTERN = re.compile(r"^(.+?):(\d+):(\d+):\s+(.+?)\s+\[(.+?)\]$")
_VERSION_PATTERN = re.compile(r"\d+\.\d+\.\d+")


def make_line_parser(source: str, severity: str = "warning") -> Parser:
    """Build a parser for ``path:line:col: message [rule]`` output.

    Lines that do not match are ignored.
    """

    def parse(stdout: str, stderr: str, cwd: str) -> list[Violation]:
        violations = []
        for raw in stdout.splitlines():
            match = _LINE_PATTERN.match(raw.strip())
            if match is None:
                continue
            path, line, column, message, rule = match.groups()
            violations.append(
                Violation(
                    id=rule,
                    severity=severity,  # type: ignore[arg-type]
                    message=message,
                    source=source,
                    path=path,
                    line=int(line),
                    column=int(column),
                )
            )
        return violations

    return parse


class CommandAdapter:
    """Runs ``command *args *files`` and parses its output.

    Attributes:
        name: Adapter name, also used as the violation source.
        command: Executable name or path.
        args: Arguments placed before the file list.
        file_patterns: fnmatch patterns; empty means every file.
    """

    def __init__(
        self,
        name: str,
        command: str,
        args: Sequence[str] = (),
        file_patterns: Sequence[str] = (),
        parser: Parser | None = None,
        version_args: Sequence[str] = ("--version",),
    ) -> None:
        self.name = name
        self.command = command
        self.args = tuple(args)
        self.file_patterns = tuple(file_patterns)
        self._parser = parser or make_line_parser(name)
        self._version_args = tuple(version_args)
        self._version: str | None = None

    def select_files(self, files: Sequence[str]) -> list[str]:
        """Return the files this tool should check, in input order."""
        if not self.file_patterns:
            return list(files)
        return [f for f in files if any(fnmatch(f, p) for p in self.file_patterns)]

    async def run(self, options: AdapterRunOptions) -> AdapterResult:
        """Run the tool.

        Raises:
            FileNotFoundError: If the executable does not exist.
            OperationTimeoutError: If ``options.timeout_ms`` elapses. The
                subprocess is killed first.
        """
        started = time.monotonic()
        files = self.select_files(options.files)
        version = await self.get_version(options.cwd)
        if not files:
            logger.debug("%s: no matching files", self.name)
            return AdapterResult(tool=self.name, version=version, exit_code=0)

        argv = [resolve_tool(self.command), *self.args, *files]
        exit_code, stdout, stderr = await self._exec(argv, options.cwd, options.timeout_ms)
        violations = self._parser(stdout, stderr, options.cwd)
        duration_ms = (time.monotonic() - started) * 1000
        logger.debug(
            "%s exited %d with %d violation(s) in %.0fms",
            self.name,
            exit_code,
            len(violations),
            duration_ms,
        )
        return AdapterResult(
            tool=self.name,
            version=version,
            exit_code=exit_code,
            violations=violations,
            execution_time_ms=duration_ms,
        )

    async def get_version(self, cwd: str = ".") -> str:
        """Return the tool's semantic version, or "unknown"."""
        if self._version is not None:
            return self._version
        try:
            _, stdout, stderr = await self._exec(
                [resolve_tool(self.command), *self._version_args], cwd, 5_000
            )
        except (OSError, OperationTimeoutError) as exc:
            logger.debug("%s version detection failed: %s", self.name, exc)
            return "unknown"
        match = _VERSION_PATTERN.search(stdout) or _VERSION_PATTERN.search(stderr)
        self._version = match.group(0) if match else "unknown"
        return self._version

    async def _exec(
        self, argv: list[str], cwd: str, timeout_ms: int | None
    ) -> tuple[int, str, str]:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout_ms / 1000 if timeout_ms else None,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("Command %s timed out after %dms", argv[0], timeout_ms)
            raise OperationTimeoutError(
                f"Command '{argv[0]}' timed out after {timeout_ms}ms",
                timeout_ms=timeout_ms or 0,
                operation=self.name,
            ) from None
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise
        return process.returncode or 0, decode_output(stdout), decode_output(stderr)
