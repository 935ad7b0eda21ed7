"""Cooperative single-instance service management.

Provides:
- File-backed flags any process can set (stop, pause, term)
- An atomic run lock with a liveness-checked PID record
- Signal (or term flag) sessions that request a graceful stop
- A lifecycle machine running a callback under the lock

Example:
    from proctor.service import Service

    svc = Service("worker", "/var/run")
    svc.service(do_one_unit_of_work)
"""

from proctor.service.base import ServiceIdentity, ServiceState, ServiceStatus
from proctor.service.flag import FileFlag, Flag, MemoryFlag
from proctor.service.handle import Service
from proctor.service.machine import (
    Effect,
    Inputs,
    LifecycleMachine,
    Outcome,
    RunResult,
    State,
    Transition,
    transition,
)
from proctor.service.pid import LockToken, RunLock
from proctor.service.signals import (
    PollingSession,
    Session,
    SessionError,
    SignalSession,
    active_session,
    create_session,
)

__all__ = [
    "Effect",
    "FileFlag",
    "Flag",
    "Inputs",
    "LifecycleMachine",
    "LockToken",
    "MemoryFlag",
    "Outcome",
    "PollingSession",
    "RunLock",
    "RunResult",
    "Service",
    "ServiceIdentity",
    "ServiceState",
    "ServiceStatus",
    "Session",
    "SessionError",
    "SignalSession",
    "State",
    "Transition",
    "active_session",
    "create_session",
    "transition",
]
