"""High-level interface to a named, cooperatively managed service."""

import logging
import os
import signal
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from proctor.config.models import ProctorConfig
from proctor.service.base import ServiceIdentity, ServiceState, ServiceStatus
from proctor.service.flag import FileFlag
from proctor.service.machine import LifecycleMachine, RunResult
from proctor.service.pid import (
    RunLock,
    get_process_info,
    is_process_alive,
    send_signal,
)
from proctor.service.signals import create_session

logger = logging.getLogger(__name__)


class Service:
    """A service voluntarily managed by a PID record and touch files.

    Constructing a Service touches nothing on disk. Every method reports
    failure through its return value; only unexpected filesystem errors
    raise.

    Example:
        svc = Service("stuff-doer", "/var/run")

        if not svc.service(do_stuff):
            print(f"already running as pid {svc.running_pid()}")

        # From another process
        svc.pause()
        svc.resume()
        if pid := svc.request_remote_stop(timeout=15):
            print(f"pid {pid} is being stubborn")
    """

    def __init__(
        self,
        name: str,
        directory: Path | str | None = None,
        config: ProctorConfig | None = None,
    ):
        """Initialize the service handle.

        Args:
            name: Service name, used to name the PID record and touch files.
            directory: Directory holding those files. Defaults to the
                configured run directory.
            config: Settings; defaults are used when omitted.
        """
        self._config = config or ProctorConfig()
        self._identity = ServiceIdentity(
            name, Path(directory) if directory is not None else self._config.run_dir
        )
        self._run_lock = RunLock(
            self._identity.pid_path,
            self._identity.lock_path,
            stale_after=self._config.stale_lock_seconds,
        )
        self._stop_flag = FileFlag(self._identity.stop_path)
        self._pause_flag = FileFlag(self._identity.pause_path)
        self._term_flag = FileFlag(self._identity.term_path)
        self._last_result: RunResult | None = None

    @property
    def name(self) -> str:
        return self._identity.name

    @property
    def directory(self) -> Path:
        return self._identity.directory

    @property
    def identity(self) -> ServiceIdentity:
        return self._identity

    @property
    def config(self) -> ProctorConfig:
        return self._config

    @property
    def last_result(self) -> RunResult | None:
        """Result of the most recent service() run in this process."""
        return self._last_result

    # Stop flag

    def stop(self) -> None:
        """Set the "stopped" flag for the service."""
        self._stop_flag.set()

    def start(self) -> None:
        """Clear the "stopped" flag for the service."""
        self._stop_flag.unset()

    def is_stopped(self) -> bool:
        return self._stop_flag.is_set()

    # Pause flag

    def pause(self) -> None:
        """Set the "paused" flag for the service."""
        self._pause_flag.set()

    def resume(self) -> None:
        """Clear the "paused" flag for the service."""
        self._pause_flag.unset()

    def is_paused(self) -> bool:
        return self._pause_flag.is_set()

    def clear_flags(self) -> None:
        """Clear both the "stopped" and "paused" flags."""
        self.start()
        self.resume()

    # Ownership

    def read_pid(self) -> int:
        """PID in the record, without checking it is alive. 0 if none."""
        return self._run_lock.read_pid()

    def running_pid(self) -> int:
        """PID of the live process holding the service, or 0."""
        return self._run_lock.running_pid()

    def is_running(self) -> bool:
        """Check if this process holds the service and has not been told to stop."""
        return (
            self._run_lock.is_held()
            and not self._stop_flag.is_set()
            and not self._term_flag.is_set()
        )

    def clear_stale_lock(self) -> bool:
        """Remove a lock file abandoned by a crashed process.

        Returns:
            True if a lock file older than stale_lock_seconds was removed.
        """
        return self._run_lock.clear_stale_lock(self._config.stale_lock_seconds)

    def service(self, callback: Callable[[], Any]) -> bool:
        """Run callback repeatedly while this process holds the service.

        The callback is called until it returns a falsy value, the "stopped"
        flag is set, or a trapped signal arrives. While the "paused" flag is
        set the loop keeps the lock but does not call the callback.

        Returns:
            True if the callback was called at least once. False if the
            service was already stopped or held by another live process.
        """
        if not callable(callback):
            raise TypeError(f"expected a callable, got {type(callback).__name__}")

        if self.is_stopped():
            logger.info("service_stop_flag_set", extra={"service.name": self.name})
            return False

        holder = self.running_pid()
        if holder:
            logger.info(
                "service_already_running",
                extra={"service.name": self.name, "process.pid": holder},
            )
            return False

        # A term request left for a previous holder must not stop this run
        self._term_flag.discard()
        session = create_session(
            self._term_flag,
            signals=self._config.trap_signals(),
            poll_interval=self._config.poll_interval,
            use_signals=self._config.use_signals,
        )

        machine = LifecycleMachine(
            run_lock=self._run_lock,
            stop_flag=self._stop_flag,
            pause_flag=self._pause_flag,
            session=session,
            poll_interval=self._config.poll_interval,
        )
        self._last_result = machine.run(callback)
        return self._last_result.ran

    def _signals_remote(self) -> bool:
        if self._config.use_signals is not None:
            return self._config.use_signals
        return sys.platform != "win32"

    def request_remote_stop(
        self,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> int:
        """Ask the running process to stop and wait for it to exit.

        Returns immediately after setting the "stopped" flag if the running
        process is this one.

        Args:
            timeout: Seconds to wait. Defaults to the configured stop_timeout.
            poll_interval: Seconds between liveness checks.

        Returns:
            The PID of the process if it is still alive after the timeout,
            0 if it exited or nothing was running.
        """
        if timeout is None:
            timeout = self._config.stop_timeout
        if poll_interval is None:
            poll_interval = self._config.poll_interval

        pid = self.running_pid()
        if not pid:
            return 0

        if pid == os.getpid():
            self.stop()
            return 0

        # Holders running a polling session (off the main thread) only see
        # the term flag, so it is set even when a signal is sent
        self._term_flag.set()
        if self._signals_remote() and not send_signal(pid, signal.SIGTERM):
            logger.warning(
                "remote_stop_signal_failed",
                extra={"service.name": self.name, "process.pid": pid},
            )
            return pid if is_process_alive(pid) else 0

        logger.info(
            "remote_stop_requested",
            extra={"service.name": self.name, "process.pid": pid},
        )

        deadline = time.monotonic() + timeout
        while is_process_alive(pid):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    "remote_stop_timed_out",
                    extra={"service.name": self.name, "process.pid": pid},
                )
                return pid
            time.sleep(min(poll_interval, remaining))

        # A signal-session holder exits without consuming the term flag
        self._term_flag.discard()
        logger.info(
            "remote_stop_complete",
            extra={"service.name": self.name, "process.pid": pid},
        )
        return 0

    def status(self) -> ServiceStatus:
        """Get current service status."""
        pid = self.running_pid()
        stopped = self.is_stopped()
        paused = self.is_paused()

        if not pid:
            return ServiceStatus(
                state=ServiceState.STOPPED, paused=paused, stopped=stopped
            )

        if stopped:
            state = ServiceState.STOPPING
        elif paused:
            state = ServiceState.PAUSED
        else:
            state = ServiceState.RUNNING

        started_at = self._run_lock.started_at()
        uptime = time.time() - started_at if started_at else None

        resource_info = get_process_info(pid)
        memory_mb = resource_info.get("memory_mb") if resource_info else None
        cpu_percent = resource_info.get("cpu_percent") if resource_info else None

        return ServiceStatus(
            state=state,
            pid=pid,
            uptime_seconds=uptime,
            memory_mb=memory_mb,
            cpu_percent=cpu_percent,
            paused=paused,
            stopped=stopped,
        )

    def __repr__(self) -> str:
        return f"Service({self.name!r}, {str(self.directory)!r})"
