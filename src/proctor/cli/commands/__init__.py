"""CLI command modules."""

from proctor.cli.commands import paths, run, service

__all__ = [
    "paths",
    "run",
    "service",
]
