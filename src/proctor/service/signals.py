"""Stop-request sessions backed by OS signals or a polled term flag.

A session is process-wide state: while one is active it owns the handlers of
the trapped signals (or the term flag polling thread). Only one session may be
active per process; starting a second one raises SessionError.
"""

import logging
import signal
import sys
import threading
from collections.abc import Callable, Iterable
from types import FrameType
from typing import Any

from proctor.config.models import DEFAULT_TRAPS
from proctor.service.flag import Flag

logger = logging.getLogger(__name__)

SignalHandler = Callable[[int, FrameType | None], Any] | int | None

# Handlers that are restored on session end but never chained to: calling
# them would kill the process or raise KeyboardInterrupt mid-callback.
_UNCHAINABLE = (signal.SIG_DFL, signal.SIG_IGN, signal.default_int_handler)

_active_session: "Session | None" = None
_registry_lock = threading.Lock()


class SessionError(RuntimeError):
    """Raised when a session is started while another is already active."""


def active_session() -> "Session | None":
    """Get the session currently active in this process, if any."""
    return _active_session


def default_signals() -> list[signal.Signals]:
    """Default trap set, restricted to signals available on this platform."""
    resolved: list[signal.Signals] = []
    for name in DEFAULT_TRAPS:
        sig = getattr(signal, f"SIG{name}", None)
        if isinstance(sig, signal.Signals):
            resolved.append(sig)
    return resolved


def signals_supported() -> bool:
    """Check if signal handlers can be installed from the calling thread."""
    return (
        sys.platform != "win32"
        and threading.current_thread() is threading.main_thread()
    )


class Session:
    """Base class for stop-request sessions.

    Subclasses implement _install() and _uninstall(). The stop_requested bit
    is set by request_stop() and cleared when the session ends.
    """

    def __init__(self) -> None:
        self._active = False
        self._stop_requested = False
        self._reason: str | None = None

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def reason(self) -> str | None:
        return self._reason

    def request_stop(self, reason: str) -> None:
        self._reason = reason
        self._stop_requested = True

    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Install the session.

        Raises:
            SessionError: If any session is already active in this process.
        """
        global _active_session
        with _registry_lock:
            if _active_session is not None:
                raise SessionError(
                    f"A {type(_active_session).__name__} is already active"
                )
            _active_session = self

        try:
            self._install()
        except BaseException:
            with _registry_lock:
                _active_session = None
            raise

        self._active = True
        logger.debug("session_started", extra={"session.type": type(self).__name__})

    def stop(self) -> None:
        """Restore process state captured at start. Safe to call twice."""
        global _active_session
        if not self._active:
            return
        try:
            self._uninstall()
        finally:
            self._active = False
            self._stop_requested = False
            self._reason = None
            with _registry_lock:
                if _active_session is self:
                    _active_session = None
        logger.debug("session_stopped", extra={"session.type": type(self).__name__})

    def _install(self) -> None:
        raise NotImplementedError

    def _uninstall(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "Session":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


class SignalSession(Session):
    """Traps graceful-shutdown signals and chains to previous handlers.

    Example:
        with SignalSession() as session:
            while not session.stop_requested:
                do_work()
    """

    def __init__(self, signals: Iterable[signal.Signals] | None = None):
        super().__init__()
        self._signals = list(signals) if signals is not None else default_signals()
        self._previous: dict[signal.Signals, SignalHandler] = {}

    @property
    def signals(self) -> list[signal.Signals]:
        return list(self._signals)

    def _install(self) -> None:
        try:
            for sig in self._signals:
                previous = signal.getsignal(sig)
                signal.signal(sig, self._handle)
                self._previous[sig] = previous
        except BaseException:
            self._uninstall()
            raise

    def _uninstall(self) -> None:
        for sig, previous in self._previous.items():
            # getsignal() returns None for handlers not installed from Python
            signal.signal(sig, signal.SIG_DFL if previous is None else previous)
        self._previous = {}

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        sig = signal.Signals(signum)
        self.request_stop(f"Received {sig.name}")

        previous = self._previous.get(sig)
        if callable(previous) and previous not in _UNCHAINABLE:
            previous(signum, frame)


class PollingSession(Session):
    """Watches a term flag from a background thread.

    Used where signals cannot be delivered to the service. Each time the flag
    is found set, a stop is requested and the flag is cleared.
    """

    def __init__(self, flag: Flag, interval: float = 0.2):
        super().__init__()
        self._flag = flag
        self._interval = interval
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def _install(self) -> None:
        self._stopping = threading.Event()
        self._thread = threading.Thread(
            target=self._poll, name="proctor-term-poll", daemon=True
        )
        self._thread.start()

    def _uninstall(self) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _poll(self) -> None:
        while not self._stopping.wait(self._interval):
            self.check()

    def check(self) -> bool:
        """Consume the term flag if set. Returns True if a stop was requested."""
        try:
            if not self._flag.is_set():
                return False
            self.request_stop("Received term request")
            self._flag.unset()
        except OSError as e:
            logger.warning("term_flag_check_failed", extra={"error.message": str(e)})
            return self._stop_requested
        return True


def create_session(
    term_flag: Flag,
    signals: Iterable[signal.Signals] | None = None,
    poll_interval: float = 0.2,
    use_signals: bool | None = None,
) -> Session:
    """Build the session variant suited to the platform and calling thread."""
    if use_signals is None:
        use_signals = signals_supported()
    if use_signals:
        return SignalSession(signals)
    return PollingSession(term_flag, poll_interval)
