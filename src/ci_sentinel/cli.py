"""CLI for CI Sentinel.

Runs the configured checking tools over a file set and exits with the
run's exit code.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from .adapters.command import CommandAdapter
from .config import (
    RESILIENCE_PROFILES,
    ConfigError,
    ResilienceOptions,
    SentinelConfig,
    ToolConfig,
    default_config_path,
    load_config,
    resilience_profile,
)
from .models import OrchestratorResult, RunOptions
from .orchestrator import Orchestrator
from .schemas import render_json
from .validation import OptionsValidationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """CI Sentinel - resilient orchestration of CI workflow checkers."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _load_cli_config(config_path: str | None) -> SentinelConfig:
    """Load --config, or the project config if present, or defaults."""
    if config_path is not None:
        return load_config(Path(config_path))
    candidate = default_config_path(Path.cwd())
    if candidate.exists():
        return load_config(candidate)
    return SentinelConfig()


def _build_orchestrator(tools: dict[str, ToolConfig]) -> Orchestrator:
    orchestrator = Orchestrator()
    for tool in tools.values():
        orchestrator.register(
            tool.name,
            lambda tool=tool: CommandAdapter(
                tool.name,
                tool.command,
                args=tool.args,
                file_patterns=tool.file_patterns,
            ),
            enabled=tool.enabled,
        )
    return orchestrator


@cli.command()
@click.argument("files", nargs=-1, required=True)
@click.option("--tools", "-t", multiple=True, help="Tool to run (repeatable, default: all)")
@click.option("--config", "config_path", type=click.Path(), help="Path to config.toml")
@click.option("--profile", default=None, help="Resilience profile name")
@click.option("--timeout-ms", type=int, default=None, help="Per-tool timeout in milliseconds")
@click.option("--sequential", is_flag=True, help="Run tools one at a time")
@click.option(
    "--resilient/--no-resilient",
    default=None,
    help="Use circuit breaker, retry and timeout protection (default: from config)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def run(
    files: tuple[str, ...],
    tools: tuple[str, ...],
    config_path: str | None,
    profile: str | None,
    timeout_ms: int | None,
    sequential: bool,
    resilient: bool | None,
    output_format: str,
) -> None:
    """Run the configured tools over FILES."""
    try:
        config = _load_cli_config(config_path)
        resilience: ResilienceOptions | None = None
        use_resilience = config.run.resilient if resilient is None else resilient
        if use_resilience:
            base = resilience_profile(profile) if profile else config.resilience
            resilience = ResilienceOptions.from_env(base)
    except (FileNotFoundError, ConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if not config.tools:
        click.echo("Error: no tools configured", err=True)
        sys.exit(2)

    options = RunOptions(
        files=list(files),
        cwd=str(Path.cwd()),
        timeout_ms=timeout_ms if timeout_ms is not None else config.run.timeout_ms,
        tools=list(tools) or None,
        profile=profile or config.run.profile,
        parallel=config.run.parallel and not sequential,
        resilience=resilience,
    )

    orchestrator = _build_orchestrator(config.tools)
    try:
        result = asyncio.run(orchestrator.run(options))
    except OptionsValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if output_format == "json":
        click.echo(render_json(result))
    else:
        _print_text(result)
    sys.exit(result.exit_code)


def _print_text(result: OrchestratorResult) -> None:
    for v in result.violations:
        location = v.path or "-"
        if v.line is not None:
            location += f":{v.line}"
            if v.column is not None:
                location += f":{v.column}"
        click.echo(f"{location}: {v.severity}: {v.message} [{v.source}/{v.id}]")

    click.echo("")
    for tool in result.tools:
        if tool.skipped:
            status = f"skipped ({tool.reason})"
        else:
            status = f"exit {tool.exit_code}"
        click.echo(f"  {tool.name} {tool.version}: {status}")

    s = result.summary
    click.echo(
        f"{s.total} violation(s): {s.errors} error(s), {s.warnings} warning(s), {s.info} info"
    )


@cli.command()
@click.option("--config", "config_path", type=click.Path(), help="Path to config.toml")
def adapters(config_path: str | None) -> None:
    """List configured tools."""
    try:
        config = _load_cli_config(config_path)
    except (FileNotFoundError, ConfigError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if not config.tools:
        click.echo("No tools configured")
        return
    for name in sorted(config.tools):
        tool = config.tools[name]
        state = "enabled" if tool.enabled else "disabled"
        patterns = ", ".join(tool.file_patterns) or "*"
        click.echo(f"{name}: {tool.command} ({state}; files: {patterns})")


@cli.command()
def profiles() -> None:
    """Show resilience profiles."""
    for name, options in RESILIENCE_PROFILES.items():
        strategy = options.build_strategy()
        click.echo(f"{name}:")
        for key in (
            "failure_threshold",
            "failure_window_ms",
            "reset_timeout_ms",
            "max_retries",
            "adapter_timeout_ms",
        ):
            click.echo(f"  {key}: {getattr(options, key)}")
        click.echo(f"  backoff: {strategy.get_name()} (jitter {strategy.jitter})")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
