from __future__ import annotations

import os

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from pathlib import Path

import pytest
from PyQt6.QtCore import QSettings
from PyQt6.QtWidgets import QApplication

from pyfocus.domain.models import CompletionSummary
from pyfocus.services.focus.collaborators import StoreOverlayBroadcaster, StoreUsageStats
from pyfocus.services.focus.session_repository import SessionRepository
from pyfocus.services.focus.session_service import SessionService
from pyfocus.services.focus.timer_settings import TimerSettings
from pyfocus.services.store.json_store import JsonFileStore

T0 = 1_700_000_000_000
MINUTE = 60_000


# --- Fallback QApplication fixture (works with or without pytest-qt) ---
@pytest.fixture(scope="session")
def qapp():
    """Provide a QApplication for tests that need Qt.
    Creates one if not present; reuses existing otherwise.
    """
    app = QApplication.instance()
    created = False
    if app is None:
        app = QApplication([])
        created = True
    try:
        yield app
    finally:
        # Don't forcibly quit a shared app; only close if we created it here.
        if created:
            app.quit()


# --- Fakes ---


class FakeClock:
    def __init__(self, start_ms: int = T0) -> None:
        self.ms = start_ms

    def now_ms(self) -> int:
        return self.ms

    def advance(self, *, minutes: float = 0, seconds: float = 0, ms: int = 0) -> None:
        self.ms += int(minutes * MINUTE + seconds * 1000 + ms)


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def notify(self, kind, title, message, *, dedupe_key, require_interaction=False):
        self.calls.append(
            {
                "kind": kind,
                "title": title,
                "message": message,
                "dedupe_key": dedupe_key,
                "require_interaction": require_interaction,
            }
        )

    def keys(self) -> list[str]:
        return [c["dedupe_key"] for c in self.calls]


class RecordingCredits:
    def __init__(self, *, fail: bool = False) -> None:
        self.summaries: list[CompletionSummary] = []
        self.fail = fail

    def award_completion_credit(self, summary: CompletionSummary) -> None:
        if self.fail:
            raise RuntimeError("credit service down")
        self.summaries.append(summary)


# --- Common fixtures ---


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def qsettings(tmp_path: Path) -> QSettings:
    # Use an INI file so we don't touch system registry / platform stores
    s = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    s.clear()
    return s


@pytest.fixture()
def timer_settings(qsettings: QSettings) -> TimerSettings:
    return TimerSettings(qsettings)


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "focus_store.json"


@pytest.fixture()
def store(qapp, store_path: Path) -> JsonFileStore:
    return JsonFileStore(store_path, watch=False)


@pytest.fixture()
def repository(store: JsonFileStore) -> SessionRepository:
    return SessionRepository(store)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def credits() -> RecordingCredits:
    return RecordingCredits()


@pytest.fixture()
def make_service(repository, timer_settings, clock, notifier, credits, store):
    def factory(**overrides) -> SessionService:
        kwargs = dict(
            repository=repository,
            timer_settings=timer_settings,
            clock=clock,
            notifier=notifier,
            credits=credits,
            overlay=StoreOverlayBroadcaster(store, clock),
            usage=StoreUsageStats(store),
        )
        kwargs.update(overrides)
        return SessionService(**kwargs)

    return factory


@pytest.fixture()
def service(make_service) -> SessionService:
    return make_service()
