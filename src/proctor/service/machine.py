"""Lifecycle state machine for a cooperatively managed service.

The machine is split in two:

- transition() is a pure function from (state, inputs) to the next state,
  the effects to perform on entering it, and an outcome when terminating.
- LifecycleMachine gathers inputs from flags, the run lock and the session,
  applies effects, and guarantees teardown on every path to TERM.

Transitions evaluated from STATUS, in precedence order:

1. stop flag, stop request or finished callback -> STOP
2. pause flag -> PAUSE (sleep one poll interval) -> STATUS
3. no lock -> LOCK (acquire) -> STATUS with session started, or TERM
4. otherwise -> RUN (call the callback once) -> STATUS
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from proctor.service.flag import Flag
from proctor.service.pid import LockToken, RunLock
from proctor.service.signals import Session

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.2


class State(Enum):
    """Lifecycle machine states."""

    READY = "ready"
    STATUS = "status"
    LOCK = "lock"
    RUN = "run"
    PAUSE = "pause"
    STOP = "stop"
    TERM = "term"


class Effect(Enum):
    """Side effects requested by a transition, performed by the driver."""

    ACQUIRE_LOCK = "acquire_lock"
    START_SESSION = "start_session"
    CALL = "call"
    SLEEP = "sleep"
    END_SESSION = "end_session"
    RELEASE_LOCK = "release_lock"


class Outcome(Enum):
    """Why the machine reached TERM."""

    COMPLETE = "complete"
    STOPPED = "stopped"
    CONTENTION = "contention"


@dataclass(frozen=True)
class Inputs:
    """Snapshot of everything the transition function may consult."""

    stop_flag: bool = False
    stop_requested: bool = False
    paused: bool = False
    locked: bool = False
    finished: bool = False


@dataclass(frozen=True)
class Transition:
    next_state: State
    effects: tuple[Effect, ...] = ()
    outcome: Outcome | None = None


@dataclass
class RunResult:
    """Result of driving the machine to TERM."""

    outcome: Outcome
    message: str
    ran: bool = False
    iterations: int = 0


def transition(state: State, inputs: Inputs) -> Transition:
    """Compute the next state. Pure: performs no I/O."""
    if state is State.READY:
        return Transition(State.STATUS)

    if state is State.STATUS:
        if inputs.stop_flag or inputs.stop_requested or inputs.finished:
            return Transition(State.STOP)
        if inputs.paused:
            return Transition(State.PAUSE, (Effect.SLEEP,))
        if not inputs.locked:
            return Transition(State.LOCK, (Effect.ACQUIRE_LOCK,))
        return Transition(State.RUN, (Effect.CALL,))

    if state is State.LOCK:
        if inputs.locked:
            return Transition(State.STATUS, (Effect.START_SESSION,))
        return Transition(State.TERM, outcome=Outcome.CONTENTION)

    if state in (State.RUN, State.PAUSE):
        return Transition(State.STATUS)

    if state is State.STOP:
        outcome = Outcome.COMPLETE if inputs.finished else Outcome.STOPPED
        return Transition(
            State.TERM, (Effect.END_SESSION, Effect.RELEASE_LOCK), outcome
        )

    raise ValueError(f"No transition out of {state.value}")


class LifecycleMachine:
    """Drives a callback under a run lock until it finishes or is stopped.

    Example:
        machine = LifecycleMachine(
            run_lock=RunLock(pid_path),
            stop_flag=FileFlag(stop_path),
            pause_flag=FileFlag(pause_path),
            session=SignalSession(),
        )
        result = machine.run(do_work)
    """

    def __init__(
        self,
        run_lock: RunLock,
        stop_flag: Flag,
        pause_flag: Flag,
        session: Session,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._run_lock = run_lock
        self._stop_flag = stop_flag
        self._pause_flag = pause_flag
        self._session = session
        self._poll_interval = poll_interval
        self._sleep = sleep

        self._state = State.READY
        self._token: LockToken | None = None
        self._finished = False
        self._torn_down = False

    @property
    def state(self) -> State:
        return self._state

    def _inputs(self) -> Inputs:
        if self._state is State.STATUS:
            return Inputs(
                stop_flag=self._stop_flag.is_set(),
                stop_requested=self._session.stop_requested,
                paused=self._pause_flag.is_set(),
                locked=self._token is not None,
                finished=self._finished,
            )
        return Inputs(locked=self._token is not None, finished=self._finished)

    def run(self, callback: Callable[[], Any]) -> RunResult:
        """Run the machine to TERM.

        Exceptions raised by the callback or by unexpected I/O propagate after
        teardown.
        """
        if self._state is not State.READY:
            raise RuntimeError("LifecycleMachine instances are single-use")

        ran = False
        iterations = 0
        outcome: Outcome | None = None
        message = ""

        try:
            while self._state is not State.TERM:
                if self._state is State.STOP:
                    # Capture the reason before END_SESSION clears it
                    message = self._stop_message()

                step = transition(self._state, self._inputs())
                logger.debug(
                    "lifecycle_transition",
                    extra={
                        "state.from": self._state.value,
                        "state.to": step.next_state.value,
                    },
                )
                self._state = step.next_state

                for effect in step.effects:
                    if effect is Effect.CALL:
                        ran = True
                        iterations += 1
                    self._apply(effect, callback)

                if step.outcome is not None:
                    outcome = step.outcome
        finally:
            self._teardown()

        if outcome is None:
            raise RuntimeError("Lifecycle reached TERM without an outcome")
        if outcome is Outcome.CONTENTION:
            pid = self._run_lock.read_pid()
            message = f"Another process is already running with pid {pid}"
        logger.info(
            "lifecycle_finished",
            extra={
                "lifecycle.outcome": outcome.value,
                "lifecycle.iterations": iterations,
                "lifecycle.message": message,
            },
        )
        return RunResult(
            outcome=outcome, message=message, ran=ran, iterations=iterations
        )

    def _apply(self, effect: Effect, callback: Callable[[], Any]) -> None:
        if effect is Effect.ACQUIRE_LOCK:
            self._token = self._run_lock.acquire()
        elif effect is Effect.START_SESSION:
            self._session.start()
        elif effect is Effect.CALL:
            self._finished = not callback()
        elif effect is Effect.SLEEP:
            self._sleep(self._poll_interval)
        elif effect is Effect.END_SESSION:
            self._session.stop()
        elif effect is Effect.RELEASE_LOCK:
            self._release_lock()

    def _stop_message(self) -> str:
        if self._finished:
            return "Work complete"
        if self._session.stop_requested and self._session.reason:
            return self._session.reason
        return "Stop flag set"

    def _release_lock(self) -> None:
        if self._token is not None:
            self._token.release()
            self._token = None

    def _teardown(self) -> None:
        """End the session, then release the lock. Runs once per machine."""
        if self._torn_down:
            return
        self._torn_down = True
        try:
            self._session.stop()
        finally:
            self._release_lock()
        self._state = State.TERM
