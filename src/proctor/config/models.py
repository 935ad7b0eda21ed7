"""Configuration models using Pydantic."""

import signal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from proctor.config.paths import get_run_path

# Signals trapped by default while a service holds its run lock
DEFAULT_TRAPS: list[str] = ["TERM", "INT", "PIPE", "HUP"]

# The OS refuses handlers for these
UNTRAPPABLE = frozenset({"KILL", "STOP"})


class ConfigError(Exception):
    """Raised when a configuration file cannot be parsed or validated."""


def normalize_signal_name(name: str) -> str:
    """Normalize a signal name to its short, upper-case form.

    Accepts "term", "SIGTERM" or "TERM" and returns "TERM".
    """
    name = name.strip().upper()
    if name.startswith("SIG"):
        name = name[3:]
    return name


class ProctorConfig(BaseModel):
    """Configuration shared by the library and the CLI.

    use_signals is tri-state: None picks signal trapping when the platform
    and calling thread support it, and falls back to polling a term flag.
    """

    run_dir: Path = Field(default_factory=get_run_path)
    poll_interval: float = Field(default=0.2, gt=0)
    stop_timeout: float = Field(default=15.0, ge=0)
    traps: list[str] = Field(default_factory=lambda: list(DEFAULT_TRAPS))
    use_signals: bool | None = None
    stale_lock_seconds: float = Field(default=10.0, ge=0)
    log_level: str | None = None

    @field_validator("run_dir")
    @classmethod
    def _expand_run_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("traps")
    @classmethod
    def _validate_traps(cls, value: list[str]) -> list[str]:
        traps: list[str] = []
        for name in value:
            short = normalize_signal_name(name)
            # Names valid on another platform are tolerated and skipped when
            # the session is installed
            if not short.isalnum():
                raise ValueError(f"Invalid signal name: {name!r}")
            if short in UNTRAPPABLE:
                raise ValueError(f"Signal cannot be trapped: {name!r}")
            if short not in traps:
                traps.append(short)
        return traps

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Invalid log level: {value!r}")
        return level

    def trap_signals(self) -> list[signal.Signals]:
        """Resolve configured trap names to signals available on this platform."""
        resolved: list[signal.Signals] = []
        for name in self.traps:
            sig = getattr(signal, f"SIG{name}", None)
            if isinstance(sig, signal.Signals):
                resolved.append(sig)
        return resolved
