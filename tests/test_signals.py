"""Tests for signal and polling sessions."""

import os
import signal
import threading

import pytest

from proctor.service.flag import MemoryFlag
from proctor.service.signals import (
    PollingSession,
    SessionError,
    SignalSession,
    active_session,
    create_session,
    default_signals,
)
from tests.conftest import wait_for


def _deliver(sig: signal.Signals) -> None:
    os.kill(os.getpid(), sig)


class TestSignalSession:
    """Tests for SignalSession install, chaining and restore."""

    def test_default_signals(self):
        names = {sig.name for sig in default_signals()}
        assert {"SIGTERM", "SIGINT", "SIGHUP", "SIGPIPE"} <= names

    def test_start_installs_handlers(self):
        session = SignalSession([signal.SIGHUP])
        session.start()
        try:
            assert session.is_active() is True
            assert signal.getsignal(signal.SIGHUP) == session._handle
            assert active_session() is session
        finally:
            session.stop()

        assert session.is_active() is False
        assert active_session() is None

    def test_signal_requests_stop(self):
        with SignalSession([signal.SIGHUP]) as session:
            assert session.stop_requested is False
            _deliver(signal.SIGHUP)
            assert wait_for(lambda: session.stop_requested)
            assert session.reason == "Received SIGHUP"

    def test_stop_clears_request(self):
        session = SignalSession([signal.SIGHUP])
        session.start()
        _deliver(signal.SIGHUP)
        assert wait_for(lambda: session.stop_requested)

        session.stop()

        assert session.stop_requested is False
        assert session.reason is None

    def test_chains_and_restores_previous_handler(self):
        """A pre-installed handler is called while trapped and restored after."""
        calls: list[int] = []

        def previous(signum, frame):
            calls.append(signum)

        signal.signal(signal.SIGHUP, previous)

        session = SignalSession([signal.SIGHUP])
        session.start()
        _deliver(signal.SIGHUP)
        assert wait_for(lambda: len(calls) == 1)
        assert session.stop_requested is True

        session.stop()
        assert signal.getsignal(signal.SIGHUP) is previous

        _deliver(signal.SIGHUP)
        assert wait_for(lambda: len(calls) == 2)
        # The session's handler is gone, so its bit stays clear
        assert session.stop_requested is False

    def test_restores_default_disposition(self):
        signal.signal(signal.SIGHUP, signal.SIG_DFL)
        with SignalSession([signal.SIGHUP]):
            pass
        assert signal.getsignal(signal.SIGHUP) == signal.SIG_DFL

    def test_does_not_chain_default_int_handler(self):
        """SIGINT stops cooperatively instead of raising KeyboardInterrupt."""
        signal.signal(signal.SIGINT, signal.default_int_handler)

        with SignalSession([signal.SIGINT]) as session:
            _deliver(signal.SIGINT)
            assert wait_for(lambda: session.stop_requested)

        assert signal.getsignal(signal.SIGINT) is signal.default_int_handler

    def test_does_not_chain_ignored_signal(self):
        signal.signal(signal.SIGHUP, signal.SIG_IGN)

        with SignalSession([signal.SIGHUP]) as session:
            _deliver(signal.SIGHUP)
            assert wait_for(lambda: session.stop_requested)

        assert signal.getsignal(signal.SIGHUP) == signal.SIG_IGN

    def test_second_session_is_rejected(self):
        first = SignalSession([signal.SIGHUP])
        first.start()
        try:
            with pytest.raises(SessionError):
                SignalSession([signal.SIGHUP]).start()
            # The rejected attempt leaves the first session in charge
            assert active_session() is first
            assert signal.getsignal(signal.SIGHUP) == first._handle
        finally:
            first.stop()

    def test_new_session_after_stop(self):
        with SignalSession([signal.SIGHUP]):
            pass
        with SignalSession([signal.SIGHUP]) as second:
            assert second.is_active()

    def test_stop_without_start_is_noop(self):
        SignalSession([signal.SIGHUP]).stop()
        assert active_session() is None

    def test_start_off_main_thread_fails_cleanly(self):
        errors: list[BaseException] = []

        def target():
            try:
                SignalSession([signal.SIGHUP]).start()
            except BaseException as e:
                errors.append(e)

        thread = threading.Thread(target=target)
        thread.start()
        thread.join()

        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
        assert active_session() is None


class TestPollingSession:
    """Tests for the term flag polling variant."""

    def test_check_consumes_flag(self):
        flag = MemoryFlag()
        session = PollingSession(flag, interval=0.01)

        assert session.check() is False
        flag.set()
        assert session.check() is True
        assert session.stop_requested is True
        assert session.reason == "Received term request"
        assert flag.is_set() is False

    def test_thread_detects_flag(self):
        flag = MemoryFlag()
        with PollingSession(flag, interval=0.01) as session:
            flag.set()
            assert wait_for(lambda: session.stop_requested)
            assert wait_for(lambda: not flag.is_set())

    def test_stop_joins_thread(self):
        session = PollingSession(MemoryFlag(), interval=0.01)
        session.start()
        thread = session._thread
        assert thread is not None and thread.is_alive()

        session.stop()

        assert not thread.is_alive()
        assert session.is_active() is False

    def test_conflicts_with_signal_session(self):
        with SignalSession([signal.SIGHUP]):
            with pytest.raises(SessionError):
                PollingSession(MemoryFlag()).start()


class TestCreateSession:
    """Tests for session variant selection."""

    def test_forced_signals(self):
        session = create_session(MemoryFlag(), use_signals=True)
        assert isinstance(session, SignalSession)

    def test_forced_polling(self):
        session = create_session(MemoryFlag(), poll_interval=0.5, use_signals=False)
        assert isinstance(session, PollingSession)

    def test_auto_on_main_thread(self, monkeypatch):
        monkeypatch.setattr("proctor.service.signals.sys.platform", "linux")
        assert isinstance(create_session(MemoryFlag()), SignalSession)

    def test_auto_on_windows(self, monkeypatch):
        monkeypatch.setattr("proctor.service.signals.sys.platform", "win32")
        assert isinstance(create_session(MemoryFlag()), PollingSession)

    def test_auto_off_main_thread(self):
        sessions = []
        thread = threading.Thread(
            target=lambda: sessions.append(create_session(MemoryFlag()))
        )
        thread.start()
        thread.join()
        assert isinstance(sessions[0], PollingSession)
