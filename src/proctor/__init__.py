"""proctor - single-instance services coordinated through the filesystem."""

from proctor.config import ProctorConfig, load_config
from proctor.service import Service, ServiceState, ServiceStatus, SessionError

__version__ = "0.1.0"

__all__ = [
    "ProctorConfig",
    "Service",
    "ServiceState",
    "ServiceStatus",
    "SessionError",
    "load_config",
]
