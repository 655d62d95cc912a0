from __future__ import annotations

import logging
import math
from collections.abc import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from pyfocus.domain.interfaces import (
    IClock,
    ICreditAwarder,
    INotifier,
    IOverlayBroadcaster,
    IUsageStats,
)
from pyfocus.domain.models import (
    CompletedSessionEntry,
    CompletionResult,
    CompletionSummary,
    SessionRecord,
    SessionStatus,
    StopPreview,
    date_bucket,
    new_session_id,
    sanitize_boredom_level,
)
from pyfocus.services.focus.session_machine import (
    InvalidTransitionError,
    SessionMachine,
    SessionPhase,
)
from pyfocus.services.focus.session_repository import SessionRepository
from pyfocus.services.focus.timer_settings import TimerSettings

logger = logging.getLogger(__name__)


class SessionAlreadyActiveError(RuntimeError):
    """Raised when starting while a focus or break interval is still open."""


class SessionService(QObject):
    """
    Owns every write to the session record.

    Surfaces call start/pause/resume/stop; only the completion scheduler calls
    `complete_due()`. Each operation starts from a fresh read of the store so
    that whatever another process wrote last is respected.
    """

    session_started = pyqtSignal(object)  # SessionRecord
    session_changed = pyqtSignal(object)  # SessionRecord (paused/resumed)
    session_stopped = pyqtSignal(object)  # SessionRecord that was stopped
    session_completed = pyqtSignal(object)  # CompletionResult (focus)
    break_completed = pyqtSignal(object)  # CompletionResult (break)
    bookkeeping_failed = pyqtSignal(str)

    def __init__(
        self,
        *,
        repository: SessionRepository,
        timer_settings: TimerSettings,
        clock: IClock,
        notifier: INotifier,
        credits: ICreditAwarder,
        overlay: IOverlayBroadcaster,
        usage: IUsageStats,
        machine: SessionMachine | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._repo = repository
        self._settings = timer_settings
        self._clock = clock
        self._notifier = notifier
        self._credits = credits
        self._overlay = overlay
        self._usage = usage
        self._machine = machine or SessionMachine()

    @property
    def machine(self) -> SessionMachine:
        return self._machine

    @property
    def repository(self) -> SessionRepository:
        return self._repo

    def current(self) -> SessionRecord | None:
        record = self._repo.load()
        self._machine.sync(record)
        return record

    # ---------- starting ----------

    def start(
        self,
        minutes: int | None,
        *,
        task_id: str | None = None,
        task_title: str = "",
        boredom_level: object = None,
    ) -> SessionRecord:
        """Start a focus session; `minutes=None` starts an open-ended one."""
        if minutes is not None and int(minutes) < 1:
            raise ValueError("A focus session needs at least one minute.")
        self._ensure_idle()
        record = self._build_record(
            minutes,
            is_break=False,
            task_id=task_id,
            task_title=task_title,
            boredom_level=sanitize_boredom_level(boredom_level),
        )
        return self._begin(record, SessionPhase.RUNNING)

    def start_break(
        self, minutes: int | None = None, *, cycle_count: int | None = None
    ) -> SessionRecord:
        self._ensure_idle()
        return self._begin(self._break_record(minutes, cycle_count), SessionPhase.BREAK_RUNNING)

    def break_minutes_for(self, cycle_count: int) -> int:
        interval = self._settings.get_long_break_interval()
        if cycle_count > 0 and interval > 0 and cycle_count % interval == 0:
            return self._settings.get_long_break_minutes()
        return self._settings.get_short_break_minutes()

    # ---------- pause / resume ----------

    def pause(self) -> bool:
        record = self.current()
        if record is None or not self._machine.can(SessionPhase.PAUSED):
            return False
        now = self._clock.now_ms()
        if record.is_due(now):
            # Time is already up; leave it to the scheduler.
            return False
        if record.is_open_ended:
            elapsed_ms = record.elapsed_ms_at(now)
            record.paused_elapsed_ms = elapsed_ms
            record.paused_elapsed_seconds = elapsed_ms // 1000
            record.elapsed_seconds = elapsed_ms // 1000
        else:
            remaining_ms = record.remaining_ms_at(now)
            record.paused_remaining_ms = remaining_ms
            record.paused_remaining_seconds = math.ceil(remaining_ms / 1000)
            record.remaining_seconds = record.paused_remaining_seconds
            record.end_timestamp = None
        record.is_paused = True
        self._repo.save(record)
        self._machine.transition(SessionPhase.PAUSED)
        logger.info("Paused session %s", record.session_id)
        self.session_changed.emit(record)
        return True

    def resume(self) -> bool:
        record = self.current()
        if record is None or not record.is_paused:
            return False
        target = SessionPhase.BREAK_RUNNING if record.is_break else SessionPhase.RUNNING
        if not self._machine.can(target):
            return False
        now = self._clock.now_ms()
        if record.is_open_ended:
            elapsed_ms = record.elapsed_ms_at(now)
            record.start_timestamp = now - elapsed_ms
            record.elapsed_seconds = elapsed_ms // 1000
            record.paused_elapsed_seconds = None
            record.paused_elapsed_ms = None
        else:
            remaining_ms = record.remaining_ms_at(now)
            record.start_timestamp = now
            record.end_timestamp = now + remaining_ms
            record.remaining_seconds = math.ceil(remaining_ms / 1000)
            record.paused_remaining_seconds = None
            record.paused_remaining_ms = None
        record.is_paused = False
        self._repo.save(record)
        self._machine.transition(target)
        logger.info("Resumed session %s", record.session_id)
        self.session_changed.emit(record)
        return True

    # ---------- stopping ----------

    def preview_stop(self) -> StopPreview | None:
        record = self.current()
        if record is None or not record.is_active:
            return None
        now = self._clock.now_ms()
        remaining = 0 if record.is_open_ended else math.ceil(record.remaining_at(now) / 60)
        return StopPreview(
            elapsed_minutes=record.elapsed_at(now) // 60,
            remaining_minutes=remaining,
            is_break=record.is_break,
            is_open_ended=record.is_open_ended,
        )

    def stop(
        self, add_time: bool = True, count_as_completed: bool = False
    ) -> CompletedSessionEntry | None:
        """
        End the open interval early. Never chains into another interval.

        A focus entry is only written when at least one full minute elapsed and
        the caller asked for time or a counted session. Returns that entry.
        """
        if self._machine.busy:
            logger.debug("Stop ignored while a completion is in progress")
            return None
        record = self.current()
        if record is None:
            return None
        if not record.is_active:
            self._repo.clear()
            self._machine.sync(None)
            return None

        now = self._clock.now_ms()
        elapsed_min = record.elapsed_at(now) // 60
        entry: CompletedSessionEntry | None = None
        if not record.is_break:
            should_count = bool(count_as_completed)
            should_save = (add_time and elapsed_min >= 1) or should_count
            if should_save and elapsed_min >= 1:
                entry = CompletedSessionEntry.from_record(
                    record,
                    actual_minutes=elapsed_min,
                    status=SessionStatus.COMPLETED if should_count else SessionStatus.INTERRUPTED,
                    ended_at_ms=now,
                )

        self._finalize(record, entry)
        if entry is not None:
            self._safe(
                "daily usage",
                self._usage.add_daily_usage,
                entry.date,
                focus_minutes=elapsed_min if add_time else 0,
                focus_sessions=1 if entry.status is SessionStatus.COMPLETED else 0,
            )
        self._machine.transition(SessionPhase.IDLE)
        self._safe(
            "overlay broadcast",
            self._overlay.broadcast,
            "break-stopped" if record.is_break else "stopped",
            active=False,
            session_id=record.session_id,
        )
        logger.info(
            "Stopped %s %s after %d min (entry=%s)",
            "break" if record.is_break else "session",
            record.session_id,
            elapsed_min,
            entry.status.value if entry else "none",
        )
        self.session_stopped.emit(record)
        return entry

    def skip_break(self) -> SessionRecord | None:
        """End the running break without credit and start focus with the last duration."""
        if self._machine.busy:
            return None
        record = self.current()
        if record is None or not record.is_active or not record.is_break:
            return None
        self._finalize(record, None)
        self._machine.transition(SessionPhase.IDLE)
        logger.info("Skipped break %s", record.session_id)
        self.session_stopped.emit(record)
        minutes = self._repo.last_focus_minutes(self._settings.get_default_focus_minutes())
        return self.start(minutes)

    # ---------- authoritative completion ----------

    def complete_due(self, *, tolerance_ms: int = 0) -> CompletionResult | None:
        """
        Finish the running fixed-duration interval if its deadline has passed.

        Safe to call any number of times: a re-entrant call, or one that finds
        no due record, does nothing.
        """
        if self._machine.busy:
            logger.debug("complete_due ignored: completion already in progress")
            return None
        record = self.current()
        now = self._clock.now_ms()
        if record is None or not record.is_due(now, tolerance_ms):
            return None

        self._machine.transition(
            SessionPhase.BREAK_COMPLETING if record.is_break else SessionPhase.COMPLETING
        )
        try:
            if record.is_break:
                result = self._complete_break(record)
                self.break_completed.emit(result)
            else:
                result = self._complete_focus(record, now)
                self.session_completed.emit(result)
            return result
        finally:
            if self._machine.busy:
                self._machine.reset()
                self._machine.sync(self._repo.load())

    def _complete_focus(self, record: SessionRecord, now: int) -> CompletionResult:
        minutes = record.selected_minutes or 0
        entry: CompletedSessionEntry | None = CompletedSessionEntry.from_record(
            record, actual_minutes=minutes, status=SessionStatus.COMPLETED, ended_at_ms=now
        )
        if not self._finalize(record, entry):
            entry = None
        logger.info("Completed focus session %s (%d min)", record.session_id, minutes)

        self._safe(
            "daily usage",
            self._usage.add_daily_usage,
            date_bucket(now),
            focus_minutes=minutes,
            focus_sessions=1,
        )
        self._safe("cycle count", self._repo.increment_cycle_count)
        self._safe(
            "completion credit",
            self._credits.award_completion_credit,
            CompletionSummary(
                session_id=record.session_id,
                entry_id=entry.id if entry else "",
                minutes=minutes,
                task_id=record.task_id,
                task_title=record.task_title,
                boredom_level=record.boredom_level,
            ),
        )
        if record.task_title:
            message = f'Great job! You completed your focus session for "{record.task_title}"'
        else:
            message = f"Great job! You completed your {minutes} minute focus session!"
        self._notify(
            "focus-complete",
            "Focus Session Complete!",
            message,
            dedupe_key=f"focus-complete-{record.session_id}",
            require_interaction=True,
        )
        self._safe(
            "overlay broadcast",
            self._overlay.broadcast,
            "completed",
            active=False,
            session_id=record.session_id,
        )

        chained: SessionRecord | None = None
        self._settings.refresh()
        if self._settings.get_auto_start_breaks():
            chained = self._chain(
                self._break_record(None, self._repo.cycle_count()), SessionPhase.BREAK_RUNNING
            )
        if chained is None:
            self._machine.transition(SessionPhase.IDLE)
        return CompletionResult(record=record, entry=entry, chained=chained)

    def _complete_break(self, record: SessionRecord) -> CompletionResult:
        self._finalize(record, None)
        logger.info("Completed break %s", record.session_id)
        self._notify(
            "break-complete",
            "Break Over",
            "Break's over! Ready for another focus session?",
            dedupe_key=f"break-complete-{record.session_id}",
            require_interaction=True,
        )
        self._safe(
            "overlay broadcast",
            self._overlay.broadcast,
            "break-completed",
            active=False,
            session_id=record.session_id,
        )

        chained: SessionRecord | None = None
        self._settings.refresh()
        if self._settings.get_auto_start_next_session():
            minutes = self._repo.last_focus_minutes(self._settings.get_default_focus_minutes())
            chained = self._chain(
                self._build_record(minutes, is_break=False), SessionPhase.RUNNING
            )
        if chained is None:
            self._machine.transition(SessionPhase.IDLE)
        return CompletionResult(record=record, entry=None, chained=chained)

    # ---------- internals ----------

    def _ensure_idle(self) -> None:
        if self._machine.busy:
            raise SessionAlreadyActiveError("A session is completing.")
        record = self.current()
        if record is not None and record.is_active:
            raise SessionAlreadyActiveError(
                "Cannot start a new session while another is active."
            )

    def _build_record(
        self,
        minutes: int | None,
        *,
        is_break: bool,
        task_id: str | None = None,
        task_title: str = "",
        boredom_level: int | None = None,
    ) -> SessionRecord:
        now = self._clock.now_ms()
        open_ended = minutes is None
        seconds = 0 if open_ended else int(minutes) * 60
        return SessionRecord(
            session_id=new_session_id(now),
            is_active=True,
            is_paused=False,
            is_break=is_break,
            is_open_ended=open_ended,
            selected_minutes=None if open_ended else int(minutes),
            start_timestamp=now,
            end_timestamp=None if open_ended else now + seconds * 1000,
            remaining_seconds=seconds,
            elapsed_seconds=0,
            session_started_at=now,
            task_id=task_id,
            task_title=(task_title or "").strip(),
            boredom_level=boredom_level,
        )

    def _break_record(self, minutes: int | None, cycle_count: int | None) -> SessionRecord:
        if minutes is None:
            cycle = self._repo.cycle_count() if cycle_count is None else cycle_count
            minutes = self.break_minutes_for(cycle)
        if int(minutes) < 1:
            raise ValueError("A break needs at least one minute.")
        return self._build_record(minutes, is_break=True)

    def _begin(self, record: SessionRecord, target: SessionPhase) -> SessionRecord:
        if not self._machine.can(target):
            raise InvalidTransitionError(self._machine.phase, target)
        self._repo.save(record)
        self._machine.transition(target)
        if not record.is_break and record.selected_minutes is not None:
            self._repo.set_last_focus_minutes(record.selected_minutes)

        kind = "break" if record.is_break else "session"
        logger.info(
            "Started %s %s (%s)",
            kind,
            record.session_id,
            "open-ended" if record.is_open_ended else f"{record.selected_minutes} min",
        )
        self._safe(
            "overlay broadcast",
            self._overlay.broadcast,
            "break-started" if record.is_break else "started",
            active=not record.is_break,
            session_id=record.session_id,
        )
        if record.is_break:
            title, message = "Break Time", f"Take a {record.selected_minutes} minute break."
        elif record.is_open_ended:
            title, message = "Focus Started", "Open-ended focus session started."
        else:
            title = "Focus Started"
            message = f"{record.selected_minutes} minute focus session started."
        self._notify(
            f"{kind}-start", title, message, dedupe_key=f"{kind}-start-{record.session_id}"
        )
        self.session_started.emit(record)
        return record

    def _chain(self, record: SessionRecord, target: SessionPhase) -> SessionRecord | None:
        try:
            return self._begin(record, target)
        except OSError:
            logger.exception("Could not chain into the next interval")
            self.bookkeeping_failed.emit("Could not start the next interval.")
            return None

    def _finalize(self, record: SessionRecord, entry: CompletedSessionEntry | None) -> bool:
        """Remove the record together with its entry. The record goes away regardless."""
        if entry is None:
            self._repo.clear()
            return False
        if self._safe("completed entry", self._repo.finalize, entry):
            return True
        logger.warning("Removing session %s without its entry", record.session_id)
        self._repo.clear()
        return False

    def _notify(
        self,
        kind: str,
        title: str,
        message: str,
        *,
        dedupe_key: str,
        require_interaction: bool = False,
    ) -> None:
        if not self._settings.get_notifications_enabled():
            return
        self._safe(
            "notification",
            self._notifier.notify,
            kind,
            title,
            message,
            dedupe_key=dedupe_key,
            require_interaction=require_interaction,
        )

    def _safe(self, step: str, fn: Callable[..., object], *args, **kwargs) -> bool:
        try:
            fn(*args, **kwargs)
            return True
        except Exception as exc:
            logger.exception("Bookkeeping step failed: %s", step)
            self.bookkeeping_failed.emit(f"Failed to update {step}: {exc}")
            return False
