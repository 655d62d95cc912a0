from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from pyfocus.domain.interfaces import IClock
from pyfocus.domain.models import CompletionResult, SessionRecord
from pyfocus.services.focus.session_repository import SessionRepository, parse_record
from pyfocus.services.focus.session_service import SessionService
from pyfocus.services.focus.wake_timer import DurableWakeTimer
from pyfocus.utils.constants import FOCUS_COMPLETE_ALARM, SESSION_KEY

logger = logging.getLogger(__name__)


class CompletionScheduler(QObject):
    """
    The only component that decides a session's time is up.

    Keeps the durable wake alarm aligned with the session record and, when it
    fires, re-reads the record before asking the service to complete it.
    """

    session_completed = pyqtSignal(object)  # CompletionResult

    def __init__(
        self,
        *,
        repository: SessionRepository,
        service: SessionService,
        wake_timer: DurableWakeTimer,
        clock: IClock,
        safety_margin_ms: int = 500,
        early_fire_tolerance_ms: int = 250,
        keepalive_ms: int = 0,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._repo = repository
        self._service = service
        self._wake = wake_timer
        self._clock = clock
        self._margin = max(0, int(safety_margin_ms))
        self._tolerance = max(0, int(early_fire_tolerance_ms))
        self._running = False

        self._keepalive = QTimer(self)
        self._keepalive.setInterval(max(0, int(keepalive_ms)))
        self._keepalive.timeout.connect(self.check_due)

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        store = self._repo.store
        changed = getattr(store, "changed", None)
        if changed is not None:
            changed.connect(self._on_store_changed)
        self._wake.fired.connect(self._on_wake)
        self._wake.restore()
        self.check_due()
        if self._keepalive.interval() > 0:
            self._keepalive.start()
        logger.info("Completion scheduler started")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._keepalive.stop()
        changed = getattr(self._repo.store, "changed", None)
        if changed is not None:
            try:
                changed.disconnect(self._on_store_changed)
            except TypeError:
                pass
        try:
            self._wake.fired.disconnect(self._on_wake)
        except TypeError:
            pass
        self._wake.stop_all()
        logger.info("Completion scheduler stopped")

    # ---------- alarm management ----------

    def sync(self, record: SessionRecord | None) -> None:
        """Arm for a running fixed-duration record, disarm for anything else."""
        if record is None or not record.is_schedulable:
            self.disarm()
            return
        self.arm(record)

    def arm(self, record: SessionRecord) -> int:
        assert record.end_timestamp is not None
        when = max(self._clock.now_ms() + self._margin, record.end_timestamp)
        if self._wake.get(FOCUS_COMPLETE_ALARM) != when or not self._wake.is_armed_locally(
            FOCUS_COMPLETE_ALARM
        ):
            self._wake.create(FOCUS_COMPLETE_ALARM, when)
        return when

    def disarm(self) -> None:
        self._wake.clear(FOCUS_COMPLETE_ALARM)

    def check_due(self) -> CompletionResult | None:
        """Fresh read, then arm, disarm or complete."""
        record = self._repo.load()
        if record is None or not record.is_schedulable:
            self.disarm()
            return None
        if not record.is_due(self._clock.now_ms(), self._tolerance):
            self.arm(record)
            return None
        self.disarm()
        result = self._service.complete_due(tolerance_ms=self._tolerance)
        if result is not None:
            self.session_completed.emit(result)
            if result.chained is not None:
                self.sync(result.chained)
        return result

    # ---------- slots ----------

    def _on_wake(self, name: str) -> None:
        if name != FOCUS_COMPLETE_ALARM:
            return
        self.check_due()

    def _on_store_changed(self, changes: dict) -> None:
        change = changes.get(SESSION_KEY)
        if change is None:
            return
        self.sync(parse_record(change.new_value))
