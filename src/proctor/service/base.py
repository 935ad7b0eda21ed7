"""Service identity and status types."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ServiceState(Enum):
    """Observed state of a named service."""

    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ServiceIdentity:
    """A named service in a directory.

    Identical (name, directory) pairs refer to the same logical service in
    every process, so all paths are derived from these two values.
    """

    name: str
    directory: Path

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Service name must not be empty")
        if os.sep in self.name or (os.altsep and os.altsep in self.name):
            raise ValueError(f"Service name must not contain a path separator: {self.name!r}")
        if self.name in (".", ".."):
            raise ValueError(f"Invalid service name: {self.name!r}")
        object.__setattr__(self, "directory", Path(self.directory).expanduser())

    def _child(self, suffix: str) -> Path:
        return self.directory / f"{self.name}.{suffix}"

    @property
    def pid_path(self) -> Path:
        return self._child("pid")

    @property
    def lock_path(self) -> Path:
        return self._child("lock")

    @property
    def stop_path(self) -> Path:
        return self._child("stopped")

    @property
    def pause_path(self) -> Path:
        return self._child("paused")

    @property
    def term_path(self) -> Path:
        return self._child("term")

    def paths(self) -> dict[str, Path]:
        """All derived paths, for display."""
        return {
            "pid": self.pid_path,
            "lock": self.lock_path,
            "stopped": self.stop_path,
            "paused": self.pause_path,
            "term": self.term_path,
        }


@dataclass
class ServiceStatus:
    """Service status information."""

    state: ServiceState
    pid: int | None = None
    uptime_seconds: float | None = None
    memory_mb: float | None = None
    cpu_percent: float | None = None
    paused: bool = False
    stopped: bool = False
