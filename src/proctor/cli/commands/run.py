"""Run a command as a single-instance service."""

import logging
import subprocess
import time
from pathlib import Path
from typing import Annotated

import typer

from proctor.cli.console import dim, error, info

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the run command."""

    @app.command("run")
    def run(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Service name")],
        command: Annotated[
            list[str],
            typer.Argument(help="Command to run repeatedly (after --)"),
        ],
        directory: Annotated[
            Path | None,
            typer.Option(
                "--dir",
                "-d",
                help="Directory holding the service files (default: configured run_dir)",
            ),
        ] = None,
        interval: Annotated[
            float,
            typer.Option(
                "--interval",
                "-i",
                min=0,
                help="Seconds to wait between successful runs",
            ),
        ] = 0.0,
    ) -> None:
        """Run COMMAND until it fails or the service is stopped."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        last_returncode: list[int] = []

        def step() -> bool:
            result = subprocess.run(command)
            last_returncode.append(result.returncode)
            if result.returncode != 0:
                logger.info(
                    "command_failed",
                    extra={"service.name": svc.name, "command.exit_code": result.returncode},
                )
                return False
            if interval:
                time.sleep(interval)
            return True

        if not svc.service(step):
            if svc.is_stopped():
                error(f"{svc.name} is stopped; run 'proctor start {svc.name}' first")
            elif holder := svc.running_pid():
                error(f"{svc.name} is already running (PID {holder})")
            else:
                error(f"{svc.name} did not run")
            raise typer.Exit(1)

        result = svc.last_result
        if result is not None:
            info(f"{svc.name}: {result.message} after {result.iterations} run(s)")
        if last_returncode and last_returncode[-1] != 0:
            dim(f"Last exit status: {last_returncode[-1]}")
