"""Terse call-site helpers over Service.

Example:
    from proctor.dsl import in_, run, running, service, zap

    svc = service("stuff-doer", **in_("/var/run"))

    if not run(do_stuff, svc):
        raise SystemExit(f"existing process running under pid {running(svc)}")

    # Terminate another running process, timing out after 15s
    if zap(svc, 15):
        raise SystemExit(f"pid {running(svc)} is being stubborn")
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

from proctor.config.models import ProctorConfig
from proctor.service.handle import Service


def service(name: str, **kwargs: Any) -> Service:
    """Create a service handle."""
    return Service(name, **kwargs)


def in_(directory: Path | str, **kwargs: Any) -> dict[str, Any]:
    """Select the directory holding the service's PID record and touch files."""
    return {"directory": directory, **kwargs}


def using(config: ProctorConfig, **kwargs: Any) -> dict[str, Any]:
    """Select the configuration used by the service."""
    return {"config": config, **kwargs}


def pid(svc: Service) -> int:
    return svc.read_pid()


def running(svc: Service) -> int:
    return svc.running_pid()


def zap(svc: Service, timeout: float | None = None) -> int:
    """Stop the running process, returning its PID if it outlives timeout."""
    return svc.request_remote_stop(timeout)


def run(callback: Callable[[], Any], svc: Service) -> bool:
    return svc.service(callback)


def stop(svc: Service) -> None:
    svc.stop()


def start(svc: Service) -> None:
    svc.start()


def stopped(svc: Service) -> bool:
    return svc.is_stopped()


def pause(svc: Service) -> None:
    svc.pause()


def resume(svc: Service) -> None:
    svc.resume()


def paused(svc: Service) -> bool:
    return svc.is_paused()
