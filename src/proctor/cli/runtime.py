"""Shared runtime bootstrap helpers for CLI entrypoints."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from proctor.cli.console import error
from proctor.config import ProctorConfig
from proctor.service import Service


@dataclass(slots=True)
class CliRuntime:
    """Settings resolved once per CLI invocation."""

    config: ProctorConfig
    config_path: Path | None = None


def get_runtime(ctx: typer.Context) -> CliRuntime:
    """Get the runtime stored by the app callback, or defaults."""
    if isinstance(ctx.obj, CliRuntime):
        return ctx.obj
    return CliRuntime(config=ProctorConfig())


def open_service(ctx: typer.Context, name: str, directory: Path | None) -> Service:
    """Build a Service for a command, creating the default run directory.

    An explicit directory must already exist; the default one is created on
    first use.
    """
    runtime = get_runtime(ctx)
    if directory is None:
        directory = runtime.config.run_dir
        directory.mkdir(parents=True, exist_ok=True)
    elif not directory.expanduser().is_dir():
        error(f"Directory not found: {directory}")
        raise typer.Exit(1)

    try:
        return Service(name, directory, runtime.config)
    except ValueError as e:
        error(str(e))
        raise typer.Exit(1) from None
