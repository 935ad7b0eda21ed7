"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from proctor.config.models import ConfigError, ProctorConfig
from proctor.config.paths import get_config_path

# Environment variables that override values from the config file
ENV_OVERRIDES: dict[str, str] = {
    "PROCTOR_RUN_DIR": "run_dir",
    "PROCTOR_POLL_INTERVAL": "poll_interval",
}


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("proctor.toml"),  # Current directory
        get_config_path(),  # ~/.proctor/config.toml (or PROCTOR_HOME)
        Path("/etc/proctor/config.toml"),  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides on top of file values."""
    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Resolve the config file to load.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Path to the config file, or None if no default location exists.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> ProctorConfig:
    """Load configuration from a TOML file.

    Unlike an explicit path, a missing default config file is not an error:
    every setting has a usable default.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated ProctorConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file is not found.
        ConfigError: If the config file is invalid.
    """
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _apply_env_overrides(raw_config)

    try:
        return ProctorConfig.model_validate(raw_config)
    except ValidationError as e:
        source = config_path or "environment"
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e
