from __future__ import annotations

import logging
from enum import Enum

from pyfocus.domain.models import SessionRecord

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETING = "completing"
    BREAK_RUNNING = "break_running"
    BREAK_COMPLETING = "break_completing"


_TRANSITIONS: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.IDLE: frozenset({SessionPhase.RUNNING, SessionPhase.BREAK_RUNNING}),
    SessionPhase.RUNNING: frozenset(
        {SessionPhase.PAUSED, SessionPhase.COMPLETING, SessionPhase.IDLE}
    ),
    SessionPhase.PAUSED: frozenset(
        {SessionPhase.RUNNING, SessionPhase.BREAK_RUNNING, SessionPhase.IDLE}
    ),
    SessionPhase.COMPLETING: frozenset({SessionPhase.IDLE, SessionPhase.BREAK_RUNNING}),
    SessionPhase.BREAK_RUNNING: frozenset(
        {SessionPhase.PAUSED, SessionPhase.BREAK_COMPLETING, SessionPhase.IDLE}
    ),
    SessionPhase.BREAK_COMPLETING: frozenset({SessionPhase.IDLE, SessionPhase.RUNNING}),
}

_BUSY = frozenset({SessionPhase.COMPLETING, SessionPhase.BREAK_COMPLETING})


class InvalidTransitionError(RuntimeError):
    def __init__(self, current: SessionPhase, target: SessionPhase) -> None:
        super().__init__(f"Cannot move from {current.value} to {target.value}.")
        self.current = current
        self.target = target


def phase_for(record: SessionRecord | None) -> SessionPhase:
    if record is None or not record.is_active:
        return SessionPhase.IDLE
    if record.is_paused:
        return SessionPhase.PAUSED
    return SessionPhase.BREAK_RUNNING if record.is_break else SessionPhase.RUNNING


class SessionMachine:
    """
    Per-process view of where the session is.

    The persisted record stays the source of truth: `sync()` realigns the phase
    after every fresh read. The two completion phases are never overwritten by
    a sync, which makes them this process's re-entrancy guard.
    """

    def __init__(self) -> None:
        self._phase = SessionPhase.IDLE

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def completing(self) -> bool:
        return self._phase is SessionPhase.COMPLETING

    @property
    def completing_break(self) -> bool:
        return self._phase is SessionPhase.BREAK_COMPLETING

    @property
    def busy(self) -> bool:
        return self._phase in _BUSY

    def can(self, target: SessionPhase) -> bool:
        return target in _TRANSITIONS[self._phase]

    def transition(self, target: SessionPhase) -> None:
        if not self.can(target):
            raise InvalidTransitionError(self._phase, target)
        logger.debug("Session phase %s -> %s", self._phase.value, target.value)
        self._phase = target

    def sync(self, record: SessionRecord | None) -> None:
        if self.busy:
            return
        self._phase = phase_for(record)

    def reset(self) -> None:
        """Leave any completion phase after a failure."""
        self._phase = SessionPhase.IDLE
