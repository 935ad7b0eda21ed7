"""Centralized logging configuration for proctor.

This module provides a single point of truth for logging setup.
Entry points (CLI, applications embedding a service) should call
configure_logging() early. The library itself only creates module loggers.

Logging Levels:
- DEBUG: Lock critical sections, session install/restore, state transitions
- INFO: Lock acquired/released, stop requests, service completion
- WARNING: Cleanup failures, contention on release, stubborn processes
- ERROR: Failures that affect operation
"""

import logging
import os

ENV_VAR = "PROCTOR_LOG_LEVEL"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ComponentFormatter(logging.Formatter):
    """Formatter that extracts component name from logger path.

    Converts full module paths to short component names:
    - proctor.service.pid -> service
    - proctor.cli.commands.run -> cli
    - proctor.config.loader -> config
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = record.name.split(".")
        if len(parts) >= 2 and parts[0] == "proctor":
            record.component = parts[1]
        else:
            record.component = parts[0]
        return super().format(record)


def resolve_level(level: str | None = None) -> str:
    """Resolve a log level from the argument or PROCTOR_LOG_LEVEL, else INFO."""
    if level is None:
        level = os.environ.get(ENV_VAR, "INFO")
    level = level.upper()
    if level not in LEVELS:
        level = "INFO"
    return level


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
) -> None:
    """Configure logging for proctor.

    Call this once at application startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses PROCTOR_LOG_LEVEL env var or INFO.
        use_rich: Use Rich handler for colorful output (CLI mode).
    """
    log_level = getattr(logging, resolve_level(level))

    console_handler: logging.Handler
    if use_rich:
        from rich.logging import RichHandler

        console_handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        console_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(
        level=log_level,
        handlers=[console_handler],
        force=True,
    )
