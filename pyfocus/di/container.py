from __future__ import annotations

import logging
from typing import Any

from PyQt6.QtCore import QLockFile, QSettings

from pyfocus.domain.interfaces import (
    IClock,
    ICreditAwarder,
    IKeyValueStore,
    INotifier,
    IOverlayBroadcaster,
    IUsageStats,
)
from pyfocus.services.clock import SystemClock
from pyfocus.services.config.app_config import AppConfig, build_app_config
from pyfocus.services.focus.collaborators import (
    StoreCreditLedger,
    StoreOverlayBroadcaster,
    StoreUsageStats,
)
from pyfocus.services.focus.completion_scheduler import CompletionScheduler
from pyfocus.services.focus.recovery import IRecoveryPrompt, RecoveryManager
from pyfocus.services.focus.session_repository import SessionRepository
from pyfocus.services.focus.session_service import SessionService
from pyfocus.services.focus.timer_settings import TimerSettings
from pyfocus.services.focus.wake_timer import DurableWakeTimer
from pyfocus.services.store.json_store import JsonFileStore
from pyfocus.services.ui.adapters import QtMessageService, QtRecoveryPrompt, QtTrayNotifier
from pyfocus.services.ui.floating_timer_window import FloatingTimerWindow
from pyfocus.services.ui.main_window import FocusWindow
from pyfocus.services.ui.ports.messages import IMessageService
from pyfocus.services.ui.presenters.timer_presenter import TimerPresenter
from pyfocus.utils.constants import APP_NAME, APP_ORG

logger = logging.getLogger(__name__)


class Container:
    """
    Lightweight DI container:
      - Wires default services if not provided
      - Owns the single-host scheduler lock for this process
      - Builds presenters and windows on demand (one presenter per surface)
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        qsettings: QSettings | None = None,
        store: IKeyValueStore | None = None,
        clock: IClock | None = None,
        notifier: INotifier | None = None,
        messages: IMessageService | None = None,
        credits: ICreditAwarder | None = None,
        overlay: IOverlayBroadcaster | None = None,
        usage: IUsageStats | None = None,
    ) -> None:
        self.config = config
        self.clock: IClock = clock or SystemClock()
        self.store: Any = store if store is not None else JsonFileStore(config.store_path())
        self.timer_settings = TimerSettings(qsettings or QSettings(APP_ORG, APP_NAME))
        self.repository = SessionRepository(self.store)

        self.notifier: INotifier = notifier or QtTrayNotifier()
        self.messages: IMessageService = messages or QtMessageService()
        self.credits: ICreditAwarder = credits or StoreCreditLedger(self.store, self.clock)
        self.overlay: IOverlayBroadcaster = overlay or StoreOverlayBroadcaster(
            self.store, self.clock
        )
        self.usage: IUsageStats = usage or StoreUsageStats(self.store)

        self.session_service = SessionService(
            repository=self.repository,
            timer_settings=self.timer_settings,
            clock=self.clock,
            notifier=self.notifier,
            credits=self.credits,
            overlay=self.overlay,
            usage=self.usage,
        )
        self.session_service.bookkeeping_failed.connect(
            lambda text: logger.warning("Bookkeeping failed: %s", text)
        )
        self.wake_timer = DurableWakeTimer(self.store, self.clock)
        self.scheduler = CompletionScheduler(
            repository=self.repository,
            service=self.session_service,
            wake_timer=self.wake_timer,
            clock=self.clock,
            safety_margin_ms=config.safety_margin_ms(),
            early_fire_tolerance_ms=config.early_fire_tolerance_ms(),
            keepalive_ms=config.keepalive_ms(),
        )
        self._scheduler_lock: QLockFile | None = None

    # ---------- Class helpers ----------

    @staticmethod
    def default(
        qsettings: QSettings | None = None,
        *,
        config: AppConfig | None = None,
    ) -> Container:
        if qsettings is None:
            qsettings = QSettings(APP_ORG, APP_NAME)
        return Container(config=config or build_app_config(), qsettings=qsettings)

    # ---------- Scheduler hosting ----------

    @property
    def hosts_scheduler(self) -> bool:
        return self._scheduler_lock is not None

    def start_scheduler(self) -> bool:
        """
        Become the completion scheduler host if no other process is.
        Returns False when another process already holds the lock.
        """
        if self._scheduler_lock is not None:
            return True
        path = self.config.scheduler_lock_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        lock = QLockFile(str(path))
        if not lock.tryLock(0):
            logger.info("Another process hosts the completion scheduler (%s)", path)
            return False
        self._scheduler_lock = lock
        self.scheduler.start()
        return True

    def stop_scheduler(self) -> None:
        if self._scheduler_lock is None:
            return
        self.scheduler.stop()
        self._scheduler_lock.unlock()
        self._scheduler_lock = None

    # ---------- UI factories ----------

    def build_presenter(self, parent=None) -> TimerPresenter:
        presenter = TimerPresenter(
            service=self.session_service,
            store=self.store,
            clock=self.clock,
            notifier=self.notifier,
            timer_settings=self.timer_settings,
            parent=parent,
        )
        presenter.deadline_reached.connect(self._on_deadline_reached)
        return presenter

    def build_popup(self) -> FloatingTimerWindow:
        return FloatingTimerWindow()

    def build_main_window(
        self, *, with_popup: bool = True, app_title: str = APP_NAME
    ) -> FocusWindow:
        presenter = self.build_presenter()
        window = FocusWindow(
            presenter=presenter,
            timer_settings=self.timer_settings,
            repository=self.repository,
            messages=self.messages,
            popup=self.build_popup() if with_popup else None,
            app_title=app_title,
        )
        presenter.setParent(window)
        presenter.attach()
        return window

    def build_recovery(
        self, parent=None, *, prompt: IRecoveryPrompt | None = None
    ) -> RecoveryManager:
        return RecoveryManager(
            service=self.session_service,
            prompt=prompt or QtRecoveryPrompt(self.messages, parent),
            clock=self.clock,
            stale_after_hours=self.config.stale_after_hours(),
        )

    # ---------- Internals ----------

    def _on_deadline_reached(self) -> None:
        # Surfaces in other processes rely on the host's wake alarm.
        if self.hosts_scheduler:
            self.scheduler.check_due()
