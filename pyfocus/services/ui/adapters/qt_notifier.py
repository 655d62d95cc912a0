from __future__ import annotations

import logging
from collections import OrderedDict

from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import QApplication, QStyle, QSystemTrayIcon

logger = logging.getLogger(__name__)


class QtTrayNotifier:
    """
    INotifier backed by a tray icon balloon.

    Remembers the most recent dedupe keys so every surface and the scheduler
    can call `notify()` for the same event while the user sees it once.
    Without a system tray the message is only logged.
    """

    TIMEOUT_MS = 8000
    STICKY_TIMEOUT_MS = 60_000

    def __init__(self, tray: QSystemTrayIcon | None = None, *, max_keys: int = 64) -> None:
        self._tray = tray
        self._max_keys = max(1, int(max_keys))
        self._seen: OrderedDict[str, str] = OrderedDict()

    @property
    def tray(self) -> QSystemTrayIcon | None:
        return self._tray

    def ensure_tray(self) -> QSystemTrayIcon | None:
        if self._tray is None and QSystemTrayIcon.isSystemTrayAvailable():
            app = QApplication.instance()
            icon = QIcon()
            if isinstance(app, QApplication):
                icon = app.style().standardIcon(QStyle.StandardPixmap.SP_BrowserReload)
            self._tray = QSystemTrayIcon(icon)
            self._tray.show()
        return self._tray

    def seen(self, dedupe_key: str) -> bool:
        return dedupe_key in self._seen

    def notify(
        self,
        kind: str,
        title: str,
        message: str,
        *,
        dedupe_key: str,
        require_interaction: bool = False,
    ) -> bool:
        if dedupe_key in self._seen:
            logger.debug("Dropping duplicate notification %s", dedupe_key)
            return False
        self._seen[dedupe_key] = kind
        while len(self._seen) > self._max_keys:
            self._seen.popitem(last=False)

        logger.info("Notification [%s] %s: %s", kind, title, message)
        tray = self._tray
        if tray is None or not tray.isVisible():
            return True
        tray.showMessage(
            title,
            message,
            QSystemTrayIcon.MessageIcon.Information,
            self.STICKY_TIMEOUT_MS if require_interaction else self.TIMEOUT_MS,
        )
        return True
