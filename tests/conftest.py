"""Shared test fixtures and helpers."""

import os
import signal
import subprocess
import sys
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from proctor.config.models import ProctorConfig
from proctor.config.paths import ENV_VAR, get_proctor_home
from proctor.service import Service, active_session

SRC_PATH = Path(__file__).resolve().parents[1] / "src"

TRAPPED = [
    getattr(signal, name)
    for name in ("SIGTERM", "SIGINT", "SIGPIPE", "SIGHUP")
    if hasattr(signal, name)
]


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Iterator[Path]:
    """Point PROCTOR_HOME at a temporary directory for every test."""
    home = tmp_path / "home"
    monkeypatch.setenv(ENV_VAR, str(home))
    monkeypatch.delenv("PROCTOR_RUN_DIR", raising=False)
    monkeypatch.delenv("PROCTOR_POLL_INTERVAL", raising=False)
    monkeypatch.delenv("PROCTOR_LOG_LEVEL", raising=False)
    get_proctor_home.cache_clear()
    yield home
    get_proctor_home.cache_clear()


@pytest.fixture(autouse=True)
def restore_signal_handlers() -> Iterator[None]:
    """Leave the process signal table and session registry as found."""
    saved = {sig: signal.getsignal(sig) for sig in TRAPPED}
    yield
    session = active_session()
    if session is not None:
        session.stop()
    for sig, handler in saved.items():
        signal.signal(sig, signal.SIG_DFL if handler is None else handler)


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def run_dir(tmp_path: Path) -> Path:
    """Directory for PID records and touch files."""
    path = tmp_path / "run"
    path.mkdir()
    return path


@pytest.fixture
def fast_config(run_dir: Path) -> ProctorConfig:
    """Configuration with a short poll interval."""
    return ProctorConfig(run_dir=run_dir, poll_interval=0.02, stop_timeout=2.0)


@pytest.fixture
def svc(run_dir: Path, fast_config: ProctorConfig) -> Service:
    """A service named 'worker' in the temporary run directory."""
    return Service("worker", run_dir, fast_config)


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})


# =============================================================================
# Child Process Helpers
# =============================================================================


class Child:
    """A Python child process reaped in the background.

    Reaping matters: an exited but unreaped child is a zombie, and zombies
    still answer kill(pid, 0).
    """

    def __init__(self, code: str):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(
            filter(None, [str(SRC_PATH), env.get("PYTHONPATH")])
        )
        self.proc = subprocess.Popen(
            [sys.executable, "-c", code],
            stdout=subprocess.PIPE,
            text=True,
            env=env,
        )
        self._reaper = threading.Thread(target=self.proc.wait, daemon=True)
        self._reaper.start()

    @property
    def pid(self) -> int:
        return self.proc.pid

    def wait_ready(self, timeout: float = 10.0) -> str:
        """Block until the child prints its first line."""
        assert self.proc.stdout is not None
        line = self.proc.stdout.readline()
        assert line, "child exited before becoming ready"
        return line.strip()

    def kill(self) -> None:
        if self.proc.poll() is None:
            self.proc.kill()
        self._reaper.join(timeout=5)
        if self.proc.stdout is not None:
            self.proc.stdout.close()


@pytest.fixture
def spawn() -> Iterator[Callable[[str], Child]]:
    """Spawn Python child processes, killing any left running."""
    children: list[Child] = []

    def _spawn(code: str) -> Child:
        child = Child(code)
        children.append(child)
        return child

    yield _spawn

    for child in children:
        child.kill()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate until it returns True or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
