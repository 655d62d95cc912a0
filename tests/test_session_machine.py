from __future__ import annotations

import pytest

from pyfocus.domain.models import SessionRecord
from pyfocus.services.focus.session_machine import (
    InvalidTransitionError,
    SessionMachine,
    SessionPhase,
    phase_for,
)


def _walk(machine: SessionMachine, *phases: SessionPhase) -> None:
    for phase in phases:
        machine.transition(phase)


def test_focus_cycle_with_chained_break_and_focus():
    m = SessionMachine()
    _walk(
        m,
        SessionPhase.RUNNING,
        SessionPhase.PAUSED,
        SessionPhase.RUNNING,
        SessionPhase.COMPLETING,
        SessionPhase.BREAK_RUNNING,
        SessionPhase.BREAK_COMPLETING,
        SessionPhase.RUNNING,
    )
    assert m.phase is SessionPhase.RUNNING


@pytest.mark.parametrize(
    "path, bad",
    [
        ((), SessionPhase.PAUSED),
        ((), SessionPhase.COMPLETING),
        ((SessionPhase.RUNNING,), SessionPhase.BREAK_COMPLETING),
        ((SessionPhase.RUNNING, SessionPhase.COMPLETING), SessionPhase.PAUSED),
        ((SessionPhase.RUNNING, SessionPhase.PAUSED), SessionPhase.COMPLETING),
        ((SessionPhase.BREAK_RUNNING,), SessionPhase.COMPLETING),
    ],
)
def test_illegal_transitions_raise(path, bad):
    m = SessionMachine()
    _walk(m, *path)
    assert m.can(bad) is False
    with pytest.raises(InvalidTransitionError):
        m.transition(bad)


def test_sync_is_ignored_while_completing():
    m = SessionMachine()
    _walk(m, SessionPhase.RUNNING, SessionPhase.COMPLETING)
    assert m.busy and m.completing

    m.sync(None)
    assert m.phase is SessionPhase.COMPLETING

    m.reset()
    m.sync(None)
    assert m.phase is SessionPhase.IDLE


def test_phase_for_records():
    assert phase_for(None) is SessionPhase.IDLE
    assert phase_for(SessionRecord(session_id="a", is_active=False)) is SessionPhase.IDLE
    assert phase_for(SessionRecord(session_id="a", is_paused=True, is_break=True)) is SessionPhase.PAUSED
    assert phase_for(SessionRecord(session_id="a", is_break=True)) is SessionPhase.BREAK_RUNNING
    assert phase_for(SessionRecord(session_id="a")) is SessionPhase.RUNNING
