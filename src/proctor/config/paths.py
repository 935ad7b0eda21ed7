"""Centralized path management for proctor.

Service state (PID records, touch files) lives under a run directory, which
defaults to a subdirectory of a single base directory. The base directory can
be overridden with the PROCTOR_HOME environment variable.

Default locations:
- Linux/macOS: ~/.proctor
- Windows: %USERPROFILE%\\.proctor
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "PROCTOR_HOME"


@lru_cache(maxsize=1)
def get_proctor_home() -> Path:
    """Get the base directory for all proctor data.

    Resolution order:
    1. PROCTOR_HOME environment variable (if set)
    2. Platform default (~/.proctor)

    Returns:
        Path to the proctor home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".proctor"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_proctor_home() / "config.toml"


def get_run_path() -> Path:
    """Get the default run directory path (PID records, touch files)."""
    return get_proctor_home() / "run"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_proctor_home() / "logs"


def get_all_paths() -> dict[str, Path]:
    """Get all standard paths for debugging/display.

    Returns:
        Dict of path names to paths.
    """
    return {
        "home": get_proctor_home(),
        "config": get_config_path(),
        "run": get_run_path(),
        "logs": get_logs_path(),
    }
