"""PID record and run lock management.

The run lock is a two-file protocol:

- ``<name>.pid`` holds the decimal PID of the current holder followed by a
  newline, and is truncated (not removed) when the holder releases it.
- ``<name>.lock`` is a soft file lock (exclusive creation) that exists only
  while a process is inside the acquire or release write window. Losing the
  race means contention, never blocking. A lock file outliving the grace
  period was left by a process that died inside the window and is broken.

The durable claim is "the PID record names a live process". A record left
behind by a crashed holder names a dead PID and is overwritten by the next
successful acquire.
"""

import logging
import os
import re
import signal
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psutil
from filelock import SoftFileLock, Timeout

logger = logging.getLogger(__name__)

_PID_LINE = re.compile(r"^(\d+)$")

# Largest value accepted as a pid_t
MAX_PID = 2**31 - 1

# Bounded wait for the lock file while releasing; teardown must complete
RELEASE_ATTEMPTS = 50
RELEASE_RETRY_DELAY = 0.01

DEFAULT_STALE_LOCK_SECONDS = 10.0


def is_process_alive(pid: int) -> bool:
    """Check if a process with given PID is alive.

    Args:
        pid: Process ID to check.

    Returns:
        True if process exists, including processes owned by other users.
    """
    if pid <= 0 or pid > MAX_PID:
        return False
    if sys.platform == "win32":
        return psutil.pid_exists(pid)
    try:
        os.kill(pid, 0)  # Signal 0 checks existence without sending signal
        return True
    except PermissionError:
        return True
    except (OSError, OverflowError):
        return False


def send_signal(pid: int, sig: signal.Signals) -> bool:
    """Send signal to process.

    Args:
        pid: Process ID to signal.
        sig: Signal to send.

    Returns:
        True if signal was sent successfully.
    """
    try:
        os.kill(pid, sig)
        return True
    except (OSError, OverflowError):
        return False


def get_process_info(pid: int) -> dict[str, float] | None:
    """Get process resource information.

    Args:
        pid: Process ID to query.

    Returns:
        Dict with memory_mb and cpu_percent, or None if unavailable.
    """
    try:
        proc = psutil.Process(pid)
        mem_info = proc.memory_info()
        return {
            "memory_mb": mem_info.rss / (1024 * 1024),
            "cpu_percent": proc.cpu_percent(interval=0.1),
        }
    except psutil.Error:
        return None


def read_pid(pid_path: Path) -> int:
    """Read the PID stored in a PID record.

    Does not check whether the process is alive.

    Returns:
        The recorded PID, or 0 if the file is missing, empty, malformed or
        names a value no process can have.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    try:
        with pid_path.open() as f:
            line = f.readline()
    except FileNotFoundError:
        return 0

    match = _PID_LINE.match(line.strip())
    if not match:
        return 0
    pid = int(match.group(1))
    if pid > MAX_PID:
        return 0
    return pid


def write_pid(pid_path: Path, pid: int) -> None:
    """Replace the contents of a PID record with a single PID line.

    The file is kept if it exists. The whole line goes out in one write so a
    reader sees either an empty record or the complete PID.
    """
    fd = os.open(pid_path, os.O_WRONLY | os.O_CREAT, 0o644)
    try:
        os.ftruncate(fd, 0)
        os.write(fd, f"{pid}\n".encode())
        os.fsync(fd)
    finally:
        os.close(fd)


def truncate_pid(pid_path: Path) -> None:
    """Empty a PID record without removing it. Missing files are ignored."""
    try:
        fd = os.open(pid_path, os.O_WRONLY)
    except FileNotFoundError:
        return
    try:
        os.ftruncate(fd, 0)
    finally:
        os.close(fd)


class LockToken:
    """Ownership of a run lock, released exactly once.

    Use as a context manager so every exit path releases the lock. A token
    inherited by a forked child is inert: only the acquiring process can
    release it.
    """

    def __init__(self, run_lock: "RunLock", pid: int):
        self._run_lock = run_lock
        self._pid = pid
        self._released = False

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if os.getpid() != self._pid:
            logger.debug("lock_token_not_owned", extra={"process.pid": os.getpid()})
            return
        self._run_lock._release(self._pid)

    def __enter__(self) -> "LockToken":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class RunLock:
    """Single-owner run lock for a named service.

    Example:
        run_lock = RunLock(Path("/var/run/worker.pid"))
        token = run_lock.acquire()
        if token is None:
            print(f"already running as {run_lock.running_pid()}")
        else:
            with token:
                do_work()
    """

    def __init__(
        self,
        pid_path: Path,
        lock_path: Path | None = None,
        stale_after: float = DEFAULT_STALE_LOCK_SECONDS,
    ):
        """Initialize the run lock.

        Args:
            pid_path: Path of the PID record.
            lock_path: Path of the lock file. Defaults to pid_path with a
                ".lock" suffix.
            stale_after: Age in seconds after which a leftover lock file is
                broken on the next acquire or release.
        """
        self._pid_path = Path(pid_path)
        self._lock_path = (
            Path(lock_path) if lock_path is not None else self._pid_path.with_suffix(".lock")
        )
        self._lock = SoftFileLock(self._lock_path, timeout=0)
        self._stale_after = stale_after

    @property
    def pid_path(self) -> Path:
        return self._pid_path

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def read_pid(self) -> int:
        """Return the recorded PID without checking liveness."""
        return read_pid(self._pid_path)

    def running_pid(self) -> int:
        """Return the recorded PID if that process is alive, else 0."""
        pid = self.read_pid()
        if not pid:
            return 0
        if is_process_alive(pid):
            return pid
        return 0

    def is_held(self) -> bool:
        """Check if the current process holds the lock."""
        return self.running_pid() == os.getpid()

    def started_at(self) -> float | None:
        """Modification time of the PID record while a live holder exists."""
        if not self.running_pid():
            return None
        try:
            return self._pid_path.stat().st_mtime
        except FileNotFoundError:
            return None

    def lock_age(self) -> float | None:
        """Seconds since the lock file was created, or None if absent."""
        try:
            return time.time() - self._lock_path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _try_lock(self) -> bool:
        try:
            self._lock.acquire(timeout=0)
        except Timeout:
            return False
        try:
            self._lock_path.write_text(f"{os.getpid()}\n")
        except OSError:
            self._lock.release()
            raise
        return True

    @contextmanager
    def _critical_section(self) -> Iterator[bool]:
        """Hold the lock file for the duration of a block, if it can be taken.

        Yields:
            True if the lock file is held inside the block.
        """
        held = self._try_lock()
        if not held and self.clear_stale_lock(self._stale_after):
            held = self._try_lock()
        try:
            yield held
        finally:
            if held:
                self._lock.release()

    def acquire(self) -> LockToken | None:
        """Attempt to take the run lock without blocking.

        Returns:
            A LockToken on success, None if another live process holds the
            lock or is inside its own acquire/release window.

        Raises:
            OSError: On any filesystem failure other than contention.
        """
        pid = os.getpid()
        with self._critical_section() as held:
            if not held:
                logger.debug(
                    "run_lock_busy", extra={"file.path": str(self.lock_path)}
                )
                return None

            holder = self.running_pid()
            if holder:
                logger.debug("run_lock_held", extra={"process.pid": holder})
                return None

            stale = self.read_pid()
            if stale:
                logger.info(
                    "stale_pid_record_replaced",
                    extra={"process.pid": stale, "file.path": str(self._pid_path)},
                )
            write_pid(self._pid_path, pid)

        logger.info(
            "run_lock_acquired",
            extra={"process.pid": pid, "file.path": str(self._pid_path)},
        )
        return LockToken(self, pid)

    def _release(self, pid: int) -> None:
        for _ in range(RELEASE_ATTEMPTS):
            with self._critical_section() as held:
                if held:
                    self._clear(pid)
                    return
            time.sleep(RELEASE_RETRY_DELAY)

        logger.warning(
            "run_lock_release_contended", extra={"file.path": str(self.lock_path)}
        )
        self._clear(pid)

    def _clear(self, pid: int) -> None:
        try:
            if self.read_pid() == pid:
                truncate_pid(self._pid_path)
        except OSError as e:
            logger.warning(
                "pid_record_cleanup_failed",
                extra={"file.path": str(self._pid_path), "error.message": str(e)},
            )
            return
        logger.info(
            "run_lock_released",
            extra={"process.pid": pid, "file.path": str(self._pid_path)},
        )

    def clear_stale_lock(self, max_age: float) -> bool:
        """Remove a lock file left behind inside a crashed write window.

        Args:
            max_age: Minimum age in seconds before the lock file is removed.

        Returns:
            True if a stale lock file was removed.
        """
        age = self.lock_age()
        if age is None or age < max_age:
            return False
        try:
            self._lock_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(
                "lock_file_cleanup_failed",
                extra={"file.path": str(self._lock_path), "error.message": str(e)},
            )
            return False
        logger.warning(
            "stale_lock_file_removed",
            extra={"file.path": str(self._lock_path), "lock.age": age},
        )
        return True
