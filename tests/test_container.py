from __future__ import annotations

from pathlib import Path

import pytest
from PyQt6.QtCore import QSettings

from pyfocus.di.container import Container
from pyfocus.services.config.app_config import build_app_config
from pyfocus.services.ui.floating_timer_window import FloatingTimerWindow

from conftest import FakeClock, RecordingNotifier


class FakeMessages:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.warnings: list[str] = []

    def info(self, parent, title, text):
        pass

    def warning(self, parent, title, text):
        self.warnings.append(text)

    def error(self, parent, title, text):
        pass

    def ask(self, parent, title, text, kind=None):
        return self.answer


@pytest.fixture()
def config(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(
        "pyfocus.services.config.ini_config_service.user_config_dir",
        lambda appname: str(tmp_path / "usercfg" / appname),
    )
    return build_app_config(project_root=tmp_path / "repo", data_dir=tmp_path / "data")


@pytest.fixture()
def make_container(qapp, config, tmp_path: Path):
    created: list[Container] = []

    def factory(**overrides) -> Container:
        kwargs = dict(
            config=config,
            qsettings=QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat),
            clock=FakeClock(),
            notifier=RecordingNotifier(),
            messages=FakeMessages(),
        )
        kwargs.update(overrides)
        c = Container(**kwargs)
        created.append(c)
        return c

    yield factory
    for c in created:
        c.stop_scheduler()


def test_container_wires_services(make_container, config):
    c = make_container()
    assert c.store.path == config.store_path()
    assert c.session_service.repository is c.repository
    assert c.scheduler is not None
    assert c.hosts_scheduler is False


def test_only_one_container_hosts_the_scheduler(make_container):
    first = make_container()
    second = make_container()

    assert first.start_scheduler() is True
    assert first.start_scheduler() is True  # idempotent
    assert second.start_scheduler() is False
    assert not second.hosts_scheduler

    first.stop_scheduler()
    assert second.start_scheduler() is True


def test_deadline_on_host_surface_completes(make_container):
    clock = FakeClock()
    c = make_container(clock=clock)
    c.start_scheduler()
    presenter = c.build_presenter()
    c.session_service.start(1)
    clock.advance(minutes=2)

    presenter.attach()

    assert c.repository.load() is None
    assert len(c.repository.completed_entries()) == 1
    presenter.detach()


def test_deadline_on_non_host_surface_waits_for_scheduler(make_container):
    clock = FakeClock()
    host = make_container(clock=clock)
    host.start_scheduler()
    surface = make_container(clock=clock)
    presenter = surface.build_presenter()
    surface.session_service.start(1)
    clock.advance(minutes=2)

    presenter.attach()

    assert surface.repository.load() is not None
    assert host.scheduler.check_due() is not None
    assert surface.repository.load() is None
    presenter.detach()


def test_build_main_window_attaches_presenter(qtbot, make_container):
    c = make_container()
    win = c.build_main_window(app_title="Test Timer")
    qtbot.addWidget(win)

    assert win.windowTitle() == "Test Timer"
    assert isinstance(win.popup, FloatingTimerWindow)
    assert win.presenter.parent() is win
    assert win.mode_label.text() == "Ready"

    c.session_service.start(25, task_title="Deep work")
    assert win.mode_label.text() == "Deep work"
    assert win.presenter.is_ticking
    assert not win.start_btn.isEnabled()


def test_build_recovery_uses_config(make_container):
    c = make_container()
    manager = c.build_recovery()
    assert manager.run().action.value == "cold_start"
