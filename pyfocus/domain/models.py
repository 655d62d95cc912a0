from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from secrets import token_hex
from typing import Any, ClassVar


class SessionStatus(Enum):
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


def session_type_from_minutes(minutes: int | None, *, open_ended: bool = False) -> str:
    if open_ended:
        return "open-ended"
    m = minutes or 0
    if m <= 25:
        return "pomodoro"
    if m <= 50:
        return "deep-work"
    if m <= 90:
        return "flow"
    return "custom"


def sanitize_boredom_level(value: object) -> int | None:
    """Return an int in 1..5, or None for anything else (bools, NaN, junk strings)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num) or num < 1 or num > 5:
        return None
    return int(round(num))


def new_session_id(now_ms: int) -> str:
    return f"session_{now_ms}_{token_hex(4)}"


def iso_from_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).astimezone().isoformat(timespec="seconds")


def date_bucket(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).astimezone().date().isoformat()


def _opt_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return int(value)
    raise TypeError(f"Expected a number, got {type(value).__name__}")


def _int(value: object, default: int = 0) -> int:
    parsed = _opt_int(value)
    return default if parsed is None else parsed


def _opt_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass
class SessionRecord:
    """
    The single persisted record describing the open focus or break interval.

    Timing is always derived from the timestamps; `remaining_seconds` and
    `elapsed_seconds` are snapshots refreshed on each transition only. While
    paused, the `*_ms` snapshots keep the exact figure that resume rebuilds the
    timestamps from; the whole-second ones are for display.
    """

    session_id: str
    is_active: bool = True
    is_paused: bool = False
    is_break: bool = False
    is_open_ended: bool = False
    selected_minutes: int | None = None
    start_timestamp: int = 0
    end_timestamp: int | None = None
    remaining_seconds: int = 0
    paused_remaining_seconds: int | None = None
    paused_remaining_ms: int | None = None
    elapsed_seconds: int = 0
    paused_elapsed_seconds: int | None = None
    paused_elapsed_ms: int | None = None
    session_started_at: int = 0
    task_id: str | None = None
    task_title: str = ""
    boredom_level: int | None = None

    _KEYS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("session_id", "sessionId"),
        ("is_active", "isActive"),
        ("is_paused", "isPaused"),
        ("is_break", "isBreak"),
        ("is_open_ended", "isOpenEnded"),
        ("selected_minutes", "selectedMinutes"),
        ("start_timestamp", "startTimestamp"),
        ("end_timestamp", "endTimestamp"),
        ("remaining_seconds", "remainingSeconds"),
        ("paused_remaining_seconds", "pausedRemainingSeconds"),
        ("paused_remaining_ms", "pausedRemainingMs"),
        ("elapsed_seconds", "elapsedSeconds"),
        ("paused_elapsed_seconds", "pausedElapsedSeconds"),
        ("paused_elapsed_ms", "pausedElapsedMs"),
        ("session_started_at", "sessionStartedAt"),
        ("task_id", "taskId"),
        ("task_title", "taskTitle"),
        ("boredom_level", "boredomLevel"),
    )

    # ---- derived timing ----

    @property
    def planned_seconds(self) -> int:
        if self.is_open_ended:
            return 0
        return max(0, (self.selected_minutes or 0) * 60)

    @property
    def is_schedulable(self) -> bool:
        """True when a completion deadline exists and time is running."""
        return (
            self.is_active
            and not self.is_paused
            and not self.is_open_ended
            and self.end_timestamp is not None
        )

    def remaining_at(self, now_ms: int) -> int:
        if self.is_open_ended:
            return 0
        if self.is_paused:
            snap = self.paused_remaining_seconds
            return max(0, snap if snap is not None else self.remaining_seconds)
        if self.end_timestamp is None:
            return max(0, self.remaining_seconds)
        return max(0, math.ceil((self.end_timestamp - now_ms) / 1000))

    def elapsed_at(self, now_ms: int) -> int:
        if self.is_open_ended:
            if self.is_paused:
                snap = self.paused_elapsed_seconds
                return max(0, snap if snap is not None else self.elapsed_seconds)
            return max(0, (now_ms - self.start_timestamp) // 1000)
        return max(0, self.planned_seconds - self.remaining_at(now_ms))

    def remaining_ms_at(self, now_ms: int) -> int:
        if self.is_open_ended:
            return 0
        if self.is_paused and self.paused_remaining_ms is not None:
            return max(0, self.paused_remaining_ms)
        if self.is_paused or self.end_timestamp is None:
            return self.remaining_at(now_ms) * 1000
        return max(0, self.end_timestamp - now_ms)

    def elapsed_ms_at(self, now_ms: int) -> int:
        if not self.is_open_ended:
            return max(0, self.planned_seconds * 1000 - self.remaining_ms_at(now_ms))
        if self.is_paused:
            if self.paused_elapsed_ms is not None:
                return max(0, self.paused_elapsed_ms)
            return self.elapsed_at(now_ms) * 1000
        return max(0, now_ms - self.start_timestamp)

    def is_due(self, now_ms: int, tolerance_ms: int = 0) -> bool:
        if not self.is_schedulable:
            return False
        assert self.end_timestamp is not None
        return now_ms + max(0, tolerance_ms) >= self.end_timestamp

    def age_hours(self, now_ms: int) -> float:
        origin = self.session_started_at or self.start_timestamp
        return max(0, now_ms - origin) / 3_600_000

    # ---- persistence ----

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in self._KEYS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionRecord:
        """Parse a persisted record. Raises TypeError/ValueError on malformed data."""
        if not isinstance(data, Mapping):
            raise TypeError("Session record must be a mapping")
        start = _int(data.get("startTimestamp"))
        is_open_ended = bool(data.get("isOpenEnded", False))
        selected = _opt_int(data.get("selectedMinutes"))
        if not is_open_ended and (selected is None or selected < 1):
            raise ValueError("Fixed-duration record without selectedMinutes")
        return cls(
            session_id=str(data.get("sessionId") or f"restored_{start}"),
            is_active=bool(data.get("isActive", False)),
            is_paused=bool(data.get("isPaused", False)),
            is_break=bool(data.get("isBreak", False)),
            is_open_ended=is_open_ended,
            selected_minutes=None if is_open_ended else selected,
            start_timestamp=start,
            end_timestamp=None if is_open_ended else _opt_int(data.get("endTimestamp")),
            remaining_seconds=_int(data.get("remainingSeconds")),
            paused_remaining_seconds=_opt_int(data.get("pausedRemainingSeconds")),
            paused_remaining_ms=_opt_int(data.get("pausedRemainingMs")),
            elapsed_seconds=_int(data.get("elapsedSeconds")),
            paused_elapsed_seconds=_opt_int(data.get("pausedElapsedSeconds")),
            paused_elapsed_ms=_opt_int(data.get("pausedElapsedMs")),
            session_started_at=_int(data.get("sessionStartedAt"), start),
            task_id=_opt_str(data.get("taskId")),
            task_title=str(data.get("taskTitle") or ""),
            boredom_level=sanitize_boredom_level(data.get("boredomLevel")),
        )


@dataclass(frozen=True)
class CompletedSessionEntry:
    id: str
    type: str
    planned_duration_minutes: int
    actual_duration_minutes: int
    boredom_level: int | None
    linked_task_id: str | None
    linked_task_title: str
    start_time: str
    end_time: str
    date: str
    status: SessionStatus

    @classmethod
    def from_record(
        cls,
        record: SessionRecord,
        *,
        actual_minutes: int,
        status: SessionStatus,
        ended_at_ms: int,
    ) -> CompletedSessionEntry:
        started = record.session_started_at or record.start_timestamp
        return cls(
            id=new_session_id(ended_at_ms),
            type=session_type_from_minutes(
                record.selected_minutes, open_ended=record.is_open_ended
            ),
            planned_duration_minutes=0 if record.is_open_ended else (record.selected_minutes or 0),
            actual_duration_minutes=max(0, int(actual_minutes)),
            boredom_level=record.boredom_level,
            linked_task_id=record.task_id,
            linked_task_title=record.task_title,
            start_time=iso_from_ms(started),
            end_time=iso_from_ms(ended_at_ms),
            date=date_bucket(ended_at_ms),
            status=status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "plannedDurationMinutes": self.planned_duration_minutes,
            "actualDurationMinutes": self.actual_duration_minutes,
            "boredomLevel": self.boredom_level,
            "linkedTaskId": self.linked_task_id,
            "linkedTaskTitle": self.linked_task_title,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "date": self.date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CompletedSessionEntry:
        return cls(
            id=str(data["id"]),
            type=str(data.get("type") or "custom"),
            planned_duration_minutes=_int(data.get("plannedDurationMinutes")),
            actual_duration_minutes=_int(data.get("actualDurationMinutes")),
            boredom_level=sanitize_boredom_level(data.get("boredomLevel")),
            linked_task_id=_opt_str(data.get("linkedTaskId")),
            linked_task_title=str(data.get("linkedTaskTitle") or ""),
            start_time=str(data.get("startTime") or ""),
            end_time=str(data.get("endTime") or ""),
            date=str(data.get("date") or ""),
            status=SessionStatus(data.get("status", SessionStatus.COMPLETED.value)),
        )


@dataclass(frozen=True)
class CompletionSummary:
    """Handed to the credit collaborator once per authoritative completion."""

    session_id: str
    entry_id: str
    minutes: int
    task_id: str | None
    task_title: str
    boredom_level: int | None


@dataclass(frozen=True)
class CompletionResult:
    record: SessionRecord
    entry: CompletedSessionEntry | None
    chained: SessionRecord | None = None

    @property
    def was_break(self) -> bool:
        return self.record.is_break


@dataclass(frozen=True)
class StopPreview:
    elapsed_minutes: int
    remaining_minutes: int
    is_break: bool
    is_open_ended: bool

    @property
    def ended_early(self) -> bool:
        return not self.is_open_ended and not self.is_break and self.remaining_minutes > 0
