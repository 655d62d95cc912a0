from __future__ import annotations

from typing import Any

from pyfocus.services.focus.recovery import RecoveryState
from pyfocus.services.ui.ports.messages import IMessageService, Question


def _mmss(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def describe_recovery(state: RecoveryState) -> str:
    record = state.record
    what = "break" if record.is_break else "focus session"
    if record.is_open_ended:
        timing = f"{_mmss(state.elapsed_seconds)} focused so far"
    else:
        timing = f"{_mmss(state.remaining_seconds)} remaining"
    if record.is_paused:
        timing += " (paused)"
    lines = [f"An unfinished {what} was found: {timing}."]
    if record.task_title:
        lines.append(f"Task: {record.task_title}")
    lines.append("Resume it, or discard it without credit?")
    return "\n".join(lines)


class QtRecoveryPrompt:
    """IRecoveryPrompt that asks through the message service port."""

    def __init__(self, messages: IMessageService, parent: Any | None = None) -> None:
        self._messages = messages
        self._parent = parent

    def ask_resume(self, state: RecoveryState) -> bool:
        return self._messages.ask(
            self._parent,
            "Resume Session?",
            describe_recovery(state),
            Question.RESUME_DISCARD,
        )
