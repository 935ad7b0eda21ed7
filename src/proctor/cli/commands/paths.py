"""Path inspection command."""

from pathlib import Path
from typing import Annotated

import typer

from proctor.cli.console import console, create_table, error


def register(app: typer.Typer) -> None:
    """Register the paths command."""

    @app.command("paths")
    def paths(
        ctx: typer.Context,
        name: Annotated[
            str | None,
            typer.Argument(help="Service name, to also show its files"),
        ] = None,
        directory: Annotated[
            Path | None,
            typer.Option("--dir", "-d", help="Directory holding the service files"),
        ] = None,
    ) -> None:
        """Show configured paths."""
        from proctor.cli.runtime import get_runtime
        from proctor.config.paths import get_all_paths
        from proctor.service import ServiceIdentity

        runtime = get_runtime(ctx)

        table = create_table("Paths", [("Name", "cyan"), ("Path", "")])
        for key, path in get_all_paths().items():
            table.add_row(key, str(path))
        table.add_row("run_dir", str(runtime.config.run_dir))
        if runtime.config_path:
            table.add_row("loaded_config", str(runtime.config_path))

        if name:
            try:
                identity = ServiceIdentity(name, directory or runtime.config.run_dir)
            except ValueError as e:
                error(str(e))
                raise typer.Exit(1) from None
            for key, path in identity.paths().items():
                table.add_row(f"{name}.{key}", str(path))

        console.print(table)
