from __future__ import annotations

from PyQt6.QtCore import QPoint, QSettings

from pyfocus.utils.constants import DEFAULT_FOCUS_MINUTES


class TimerSettings:
    """Persistence wrapper for focus/break preferences shared across processes."""

    KEY_AUTO_START_BREAKS = "focus/auto_start_breaks"
    KEY_AUTO_START_NEXT = "focus/auto_start_next_session"
    KEY_DEFAULT_FOCUS_MIN = "focus/default_focus_minutes"
    KEY_SHORT_BREAK_MIN = "focus/short_break_minutes"
    KEY_LONG_BREAK_MIN = "focus/long_break_minutes"
    KEY_LONG_BREAK_INTERVAL = "focus/long_break_interval"
    KEY_NOTIFICATIONS = "focus/notifications_enabled"
    KEY_WINDOW_POS = "focus/popup_window_pos"

    def __init__(self, qsettings: QSettings) -> None:
        self._s = qsettings

    def refresh(self) -> None:
        """Reload values another process may have written."""
        self._s.sync()

    # ---- chaining policy ----

    def get_auto_start_breaks(self) -> bool:
        return self._get_bool(self.KEY_AUTO_START_BREAKS, False)

    def set_auto_start_breaks(self, enabled: bool) -> None:
        self._set(self.KEY_AUTO_START_BREAKS, bool(enabled))

    def get_auto_start_next_session(self) -> bool:
        return self._get_bool(self.KEY_AUTO_START_NEXT, False)

    def set_auto_start_next_session(self, enabled: bool) -> None:
        self._set(self.KEY_AUTO_START_NEXT, bool(enabled))

    # ---- durations ----

    def get_default_focus_minutes(self) -> int:
        return self._get_int(self.KEY_DEFAULT_FOCUS_MIN, DEFAULT_FOCUS_MINUTES, minimum=1)

    def set_default_focus_minutes(self, minutes: int) -> None:
        self._set(self.KEY_DEFAULT_FOCUS_MIN, max(1, int(minutes)))

    def get_short_break_minutes(self) -> int:
        return self._get_int(self.KEY_SHORT_BREAK_MIN, 5, minimum=1)

    def set_short_break_minutes(self, minutes: int) -> None:
        self._set(self.KEY_SHORT_BREAK_MIN, max(1, int(minutes)))

    def get_long_break_minutes(self) -> int:
        return self._get_int(self.KEY_LONG_BREAK_MIN, 15, minimum=1)

    def set_long_break_minutes(self, minutes: int) -> None:
        self._set(self.KEY_LONG_BREAK_MIN, max(1, int(minutes)))

    def get_long_break_interval(self) -> int:
        """Every Nth completed focus session earns a long break; 0 disables long breaks."""
        return self._get_int(self.KEY_LONG_BREAK_INTERVAL, 4, minimum=0)

    def set_long_break_interval(self, count: int) -> None:
        self._set(self.KEY_LONG_BREAK_INTERVAL, max(0, int(count)))

    # ---- alerts / window ----

    def get_notifications_enabled(self) -> bool:
        return self._get_bool(self.KEY_NOTIFICATIONS, True)

    def set_notifications_enabled(self, enabled: bool) -> None:
        self._set(self.KEY_NOTIFICATIONS, bool(enabled))

    def get_popup_window_pos(self) -> QPoint | None:
        value = self._s.value(self.KEY_WINDOW_POS)
        return value if isinstance(value, QPoint) else None

    def set_popup_window_pos(self, pos: QPoint) -> None:
        self._set(self.KEY_WINDOW_POS, pos)

    # ---- helpers ----

    def _set(self, key: str, value: object) -> None:
        self._s.setValue(key, value)
        self._s.sync()

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self._s.value(key, default)
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in {"1", "true", "yes", "on"}

    def _get_int(self, key: str, default: int, *, minimum: int) -> int:
        value = self._s.value(key, default)
        try:
            return max(minimum, int(value))
        except (TypeError, ValueError):
            return default
