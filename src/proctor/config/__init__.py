"""Configuration module."""

from proctor.config.loader import find_config_path, load_config
from proctor.config.models import ConfigError, ProctorConfig
from proctor.config.paths import (
    get_all_paths,
    get_config_path,
    get_logs_path,
    get_proctor_home,
    get_run_path,
)

__all__ = [
    "ConfigError",
    "ProctorConfig",
    "find_config_path",
    "get_all_paths",
    "get_config_path",
    "get_logs_path",
    "get_proctor_home",
    "get_run_path",
    "load_config",
]
