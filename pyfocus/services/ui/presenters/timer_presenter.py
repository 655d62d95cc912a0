from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from pyfocus.domain.interfaces import IClock, IKeyValueStore, INotifier
from pyfocus.domain.models import CompletedSessionEntry, SessionRecord, StopPreview
from pyfocus.services.focus.session_repository import parse_record
from pyfocus.services.focus.session_service import SessionService
from pyfocus.services.focus.timer_settings import TimerSettings
from pyfocus.utils.constants import FOCUS_OVERLAY_KEY, SESSION_KEY

logger = logging.getLogger(__name__)

WARNING_THRESHOLDS = (300, 60)
MILESTONE_SECONDS = 30 * 60


class TimerPresenter(QObject):
    """
    Per-surface view model for the running session.

    The 1 s tick only redraws; it never completes a session. Every value shown
    is recomputed from the record's timestamps, so a surface opened halfway
    through a session shows the same time as one that was open all along.
    """

    tick = pyqtSignal(int, int)  # seconds shown (remaining, or elapsed if open-ended), total
    state_changed = pyqtSignal(bool, bool, bool)  # is_active, is_paused, is_break
    session_ended = pyqtSignal()
    deadline_reached = pyqtSignal()
    focus_mode_changed = pyqtSignal(bool)
    action_failed = pyqtSignal(str)

    def __init__(
        self,
        *,
        service: SessionService,
        store: IKeyValueStore,
        clock: IClock,
        notifier: INotifier,
        timer_settings: TimerSettings,
        tick_ms: int = 1000,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._service = service
        self._store = store
        self._clock = clock
        self._notifier = notifier
        self._settings = timer_settings
        self._record: SessionRecord | None = None
        self._attached = False

        self._announced: set[int] = set()
        self._milestone = 0
        self._deadline_emitted = False

        self._timer = QTimer(self)
        self._timer.setInterval(tick_ms)
        self._timer.timeout.connect(self._on_tick)

    @property
    def record(self) -> SessionRecord | None:
        return self._record

    @property
    def is_ticking(self) -> bool:
        return self._timer.isActive()

    # ---------- lifecycle ----------

    def attach(self) -> None:
        if not self._attached:
            changed = getattr(self._store, "changed", None)
            if changed is not None:
                changed.connect(self._on_store_changed)
            self._attached = True
        self.refresh()

    def detach(self) -> None:
        if self._attached:
            changed = getattr(self._store, "changed", None)
            if changed is not None:
                try:
                    changed.disconnect(self._on_store_changed)
                except TypeError:
                    pass
            self._attached = False
        self._timer.stop()

    def refresh(self) -> None:
        self._apply(self._service.current())

    # ---------- user actions ----------

    def start(
        self,
        minutes: int | None,
        *,
        task_id: str | None = None,
        task_title: str = "",
        boredom_level: int | None = None,
    ) -> bool:
        try:
            self._service.start(
                minutes, task_id=task_id, task_title=task_title, boredom_level=boredom_level
            )
        except (RuntimeError, ValueError, OSError) as exc:
            self.action_failed.emit(str(exc))
            return False
        self.refresh()
        return True

    def start_break(self, minutes: int | None = None) -> bool:
        try:
            self._service.start_break(minutes)
        except (RuntimeError, ValueError, OSError) as exc:
            self.action_failed.emit(str(exc))
            return False
        self.refresh()
        return True

    def pause(self) -> bool:
        try:
            ok = self._service.pause()
        except OSError as exc:
            self.action_failed.emit(f"Failed to pause the session: {exc}")
            return False
        self.refresh()
        return ok

    def resume(self) -> bool:
        try:
            ok = self._service.resume()
        except OSError as exc:
            self.action_failed.emit(f"Failed to resume the session: {exc}")
            return False
        self.refresh()
        return ok

    def toggle_pause(self) -> bool:
        record = self._service.current()
        if record is None or not record.is_active:
            return False
        return self.resume() if record.is_paused else self.pause()

    def stop_preview(self) -> StopPreview | None:
        return self._service.preview_stop()

    def stop(
        self, add_time: bool = True, count_as_completed: bool = False
    ) -> CompletedSessionEntry | None:
        try:
            entry = self._service.stop(add_time=add_time, count_as_completed=count_as_completed)
        except OSError as exc:
            self.action_failed.emit(f"Failed to stop the session: {exc}")
            return None
        self.refresh()
        return entry

    def skip_break(self) -> bool:
        try:
            record = self._service.skip_break()
        except (RuntimeError, ValueError, OSError) as exc:
            self.action_failed.emit(str(exc))
            return False
        self.refresh()
        return record is not None

    # ---------- reconciliation ----------

    def _on_store_changed(self, changes: dict) -> None:
        overlay = changes.get(FOCUS_OVERLAY_KEY)
        if overlay is not None:
            value = overlay.new_value
            self.focus_mode_changed.emit(bool(isinstance(value, dict) and value.get("active")))
        change = changes.get(SESSION_KEY)
        if change is not None:
            self._apply(parse_record(change.new_value))

    def _apply(self, record: SessionRecord | None) -> None:
        if record is None or not record.is_active:
            self._timer.stop()
            had_session = self._record is not None
            self._record = None
            self.state_changed.emit(False, False, False)
            if had_session:
                self.session_ended.emit()
            return

        if self._record is None or self._record.session_id != record.session_id:
            self._reset_alerts(record)
        self._record = record
        self.state_changed.emit(True, record.is_paused, record.is_break)
        if record.is_paused:
            self._timer.stop()
        elif not self._timer.isActive():
            self._timer.start()
        self._on_tick()

    def _reset_alerts(self, record: SessionRecord) -> None:
        now = self._clock.now_ms()
        self._deadline_emitted = False
        self._announced = set()
        if not record.is_open_ended:
            remaining = record.remaining_at(now)
            self._announced = {t for t in WARNING_THRESHOLDS if remaining <= t}
        self._milestone = record.elapsed_at(now) // MILESTONE_SECONDS

    def _on_tick(self) -> None:
        record = self._record
        if record is None:
            self._timer.stop()
            return
        now = self._clock.now_ms()
        if record.is_open_ended:
            seconds = record.elapsed_at(now)
            self.tick.emit(seconds, 0)
            if not record.is_paused and not record.is_break:
                self._check_milestone(record, seconds)
            return

        seconds = record.remaining_at(now)
        self.tick.emit(seconds, record.planned_seconds)
        if record.is_paused:
            return
        if not record.is_break:
            self._check_warnings(record, seconds)
        if seconds <= 0 and not self._deadline_emitted:
            self._deadline_emitted = True
            self._timer.stop()
            self.deadline_reached.emit()

    def _check_warnings(self, record: SessionRecord, remaining: int) -> None:
        for threshold in WARNING_THRESHOLDS:
            if remaining > threshold or threshold in self._announced or remaining <= 0:
                continue
            self._announced.add(threshold)
            minutes = threshold // 60
            self._alert(
                "warning",
                "Focus Timer",
                f"{minutes} minute{'s' if minutes != 1 else ''} remaining in your focus session.",
                f"warn-{threshold}-{record.session_id}",
            )

    def _check_milestone(self, record: SessionRecord, elapsed: int) -> None:
        milestone = elapsed // MILESTONE_SECONDS
        if milestone <= self._milestone:
            return
        self._milestone = milestone
        minutes = milestone * MILESTONE_SECONDS // 60
        self._alert(
            "milestone",
            "Focus Milestone",
            f"You've been focusing for {minutes} minutes. Keep going!",
            f"milestone-{milestone}-{record.session_id}",
        )

    def _alert(self, kind: str, title: str, message: str, dedupe_key: str) -> None:
        if not self._settings.get_notifications_enabled():
            return
        try:
            self._notifier.notify(kind, title, message, dedupe_key=dedupe_key)
        except Exception:
            logger.exception("Notification %s failed", dedupe_key)
