"""Service control commands."""

from pathlib import Path
from typing import Annotated

import typer

from proctor.cli.console import console, dim, error, success, warning

NameArg = Annotated[str, typer.Argument(help="Service name")]
DirOption = Annotated[
    Path | None,
    typer.Option(
        "--dir",
        "-d",
        help="Directory holding the service files (default: configured run_dir)",
    ),
]


def register(app: typer.Typer) -> None:
    """Register service control commands."""

    @app.command("status")
    def status(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Show service status."""
        from proctor.cli.console import create_table, format_uptime
        from proctor.cli.runtime import open_service
        from proctor.service import ServiceState

        svc = open_service(ctx, name, directory)
        status = svc.status()

        table = create_table(
            f"Service {svc.name}",
            [
                ("Property", "cyan"),
                ("Value", ""),
            ],
        )

        state_colors = {
            ServiceState.RUNNING: "green",
            ServiceState.PAUSED: "cyan",
            ServiceState.STOPPING: "yellow",
            ServiceState.STOPPED: "yellow",
        }
        state_color = state_colors.get(status.state, "white")
        table.add_row("State", f"[{state_color}]{status.state.value}[/{state_color}]")

        if status.pid:
            table.add_row("PID", str(status.pid))

        if status.uptime_seconds is not None:
            table.add_row("Uptime", format_uptime(status.uptime_seconds))

        if status.memory_mb is not None:
            table.add_row("Memory", f"{status.memory_mb:.1f} MB")

        if status.cpu_percent is not None:
            table.add_row("CPU", f"{status.cpu_percent:.1f}%")

        table.add_row("Stopped flag", "set" if status.stopped else "clear")
        table.add_row("Paused flag", "set" if status.paused else "clear")
        table.add_row("Directory", str(svc.directory))

        console.print(table)

    @app.command("stop")
    def stop(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Set the stopped flag; the running process exits at its next check."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        svc.stop()
        success(f"Stop flag set for {svc.name}")
        dim(f"Run 'proctor start {svc.name}' before starting it again")

    @app.command("start")
    def start(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Clear the stopped flag so the service may run again."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        svc.start()
        success(f"Stop flag cleared for {svc.name}")

    @app.command("pause")
    def pause(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Set the paused flag; the running process idles until resumed."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        svc.pause()
        success(f"Paused {svc.name}")

    @app.command("resume")
    def resume(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Clear the paused flag."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        svc.resume()
        success(f"Resumed {svc.name}")

    @app.command("zap")
    def zap(
        ctx: typer.Context,
        name: NameArg,
        directory: DirOption = None,
        timeout: Annotated[
            float | None,
            typer.Option(
                "--timeout",
                "-t",
                help="Seconds to wait for the process to exit (default: stop_timeout)",
            ),
        ] = None,
    ) -> None:
        """Ask the running process to stop and wait for it to exit."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        holder = svc.running_pid()
        if not holder:
            dim(f"{svc.name} is not running")
            return

        pid = svc.request_remote_stop(timeout)
        if pid:
            error(f"{svc.name} pid {pid} is being stubborn")
            raise typer.Exit(1)
        success(f"{svc.name} (PID {holder}) stopped")

    @app.command("unlock")
    def unlock(ctx: typer.Context, name: NameArg, directory: DirOption = None) -> None:
        """Remove a lock file abandoned by a crashed process."""
        from proctor.cli.runtime import open_service

        svc = open_service(ctx, name, directory)
        if svc.clear_stale_lock():
            success(f"Removed stale lock file {svc.identity.lock_path}")
        elif svc.identity.lock_path.exists():
            warning("Lock file is recent; another process may be using it")
            raise typer.Exit(1)
        else:
            dim("No lock file to remove")
