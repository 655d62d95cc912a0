from __future__ import annotations

import logging
from typing import Any

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from pyfocus.domain.interfaces import IClock, IKeyValueStore
from pyfocus.utils.constants import ALARMS_KEY

logger = logging.getLogger(__name__)

_MAX_QTIMER_MS = 2**31 - 1


class DurableWakeTimer(QObject):
    """
    Named alarms stored as data so they outlive the process that set them.

    A QTimer only wakes this process; the persisted instant lets the next
    process that calls `restore()` pick the alarm back up.
    """

    fired = pyqtSignal(str)  # alarm name

    def __init__(
        self, store: IKeyValueStore, clock: IClock, parent: QObject | None = None
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._clock = clock
        self._timers: dict[str, QTimer] = {}

    def create(self, name: str, when_ms: int) -> None:
        when_ms = int(when_ms)

        def apply(data: dict[str, Any]) -> None:
            alarms = data.get(ALARMS_KEY)
            alarms = dict(alarms) if isinstance(alarms, dict) else {}
            alarms[name] = when_ms
            data[ALARMS_KEY] = alarms

        self._store.mutate(apply)
        self._arm_local(name, when_ms)
        logger.debug("Alarm %s set for %d", name, when_ms)

    def clear(self, name: str) -> bool:
        """Forget the alarm. Returns True when one was pending."""
        self._stop_local(name)
        if name not in self.pending():
            return False

        def apply(data: dict[str, Any]) -> None:
            alarms = data.get(ALARMS_KEY)
            if isinstance(alarms, dict):
                alarms.pop(name, None)
                if alarms:
                    data[ALARMS_KEY] = alarms
                else:
                    data.pop(ALARMS_KEY, None)

        self._store.mutate(apply)
        logger.debug("Alarm %s cleared", name)
        return True

    def get(self, name: str) -> int | None:
        return self.pending().get(name)

    def pending(self) -> dict[str, int]:
        raw = self._store.get(ALARMS_KEY, {})
        if not isinstance(raw, dict):
            return {}
        out: dict[str, int] = {}
        for name, when in raw.items():
            if isinstance(when, (int, float)) and not isinstance(when, bool):
                out[str(name)] = int(when)
        return out

    def is_armed_locally(self, name: str) -> bool:
        timer = self._timers.get(name)
        return timer is not None and timer.isActive()

    def restore(self) -> None:
        """Re-arm every persisted alarm in this process (overdue ones fire promptly)."""
        for name, when in self.pending().items():
            self._arm_local(name, when)

    def stop_all(self) -> None:
        """Stop local timers only; persisted alarms remain for the next host."""
        for name in list(self._timers):
            self._stop_local(name)

    # ---------- internals ----------

    def _arm_local(self, name: str, when_ms: int) -> None:
        timer = self._timers.get(name)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda n=name: self._on_timeout(n))
            self._timers[name] = timer
        delay = max(0, min(_MAX_QTIMER_MS, when_ms - self._clock.now_ms()))
        timer.start(delay)

    def _stop_local(self, name: str) -> None:
        timer = self._timers.get(name)
        if timer is not None:
            timer.stop()

    def _on_timeout(self, name: str) -> None:
        when = self.get(name)
        if when is None:
            logger.debug("Alarm %s fired after being cleared; ignoring", name)
            return
        if self._clock.now_ms() < when:
            # Long delays are clamped, or the clock moved; wait again.
            self._arm_local(name, when)
            return
        self.clear(name)
        self.fired.emit(name)
