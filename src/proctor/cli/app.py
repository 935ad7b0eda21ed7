"""Main CLI application."""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from proctor.cli.commands import paths, run, service

app = typer.Typer(
    name="proctor",
    help="proctor - single-instance services coordinated through the filesystem",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging",
        ),
    ] = False,
) -> None:
    """Load configuration and logging before running a command."""
    from proctor.cli.console import error
    from proctor.cli.runtime import CliRuntime
    from proctor.config import ConfigError, find_config_path, load_config
    from proctor.logging import configure_logging

    try:
        config_path = find_config_path(config)
        proctor_config = load_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        error(escape(str(e)))
        raise typer.Exit(1) from None

    level = "DEBUG" if verbose else proctor_config.log_level
    configure_logging(level=level, use_rich=True)

    ctx.obj = CliRuntime(config=proctor_config, config_path=config_path)


# Register command groups
service.register(app)
run.register(app)
paths.register(app)


if __name__ == "__main__":
    app()
