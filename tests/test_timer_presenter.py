from __future__ import annotations

import pytest

from pyfocus.services.ui.presenters.timer_presenter import TimerPresenter


@pytest.fixture()
def presenter(service, store, clock, notifier, timer_settings):
    p = TimerPresenter(
        service=service,
        store=store,
        clock=clock,
        notifier=notifier,
        timer_settings=timer_settings,
        tick_ms=1000,
    )
    yield p
    p.detach()


def _keys(notifier, prefix: str) -> list[str]:
    return [k for k in notifier.keys() if k.startswith(prefix)]


def test_attach_reflects_running_session(presenter, service):
    service.start(25)
    states: list[tuple] = []
    ticks: list[tuple] = []
    presenter.state_changed.connect(lambda *a: states.append(a))
    presenter.tick.connect(lambda *a: ticks.append(a))

    presenter.attach()

    assert states[-1] == (True, False, False)
    assert ticks[-1] == (1500, 1500)
    assert presenter.is_ticking


def test_tick_recomputes_from_timestamps(presenter, service, clock):
    service.start(25)
    presenter.attach()
    ticks: list[tuple] = []
    presenter.tick.connect(lambda *a: ticks.append(a))

    clock.advance(minutes=7, seconds=30)
    presenter._on_tick()

    assert ticks == [(1050, 1500)]


def test_open_ended_ticks_elapsed(presenter, service, clock):
    service.start(None)
    presenter.attach()
    ticks: list[tuple] = []
    presenter.tick.connect(lambda *a: ticks.append(a))

    clock.advance(minutes=3)
    presenter._on_tick()

    assert ticks == [(180, 0)]


def test_pause_stops_ticking(presenter, clock):
    presenter.attach()
    presenter.start(25)
    clock.advance(minutes=1)
    assert presenter.toggle_pause() is True
    assert presenter.record.is_paused
    assert not presenter.is_ticking

    assert presenter.toggle_pause() is True
    assert presenter.is_ticking


def test_stop_ends_session(presenter, clock):
    presenter.attach()
    presenter.start(25)
    ended: list[bool] = []
    presenter.session_ended.connect(lambda: ended.append(True))
    clock.advance(minutes=5)

    presenter.stop(add_time=True)

    assert ended == [True]
    assert presenter.record is None
    assert not presenter.is_ticking


def test_deadline_emitted_once_and_never_completes(presenter, service, repository, clock):
    service.start(25)
    presenter.attach()
    hits: list[bool] = []
    presenter.deadline_reached.connect(lambda: hits.append(True))

    clock.advance(minutes=26)
    presenter._on_tick()
    presenter._on_tick()

    assert hits == [True]
    assert not presenter.is_ticking
    assert repository.load() is not None  # completion is left to the scheduler
    assert repository.completed_entries() == []


def test_warnings_fire_once_each(presenter, service, notifier, clock):
    rec = service.start(25)
    presenter.attach()

    clock.advance(minutes=20)
    presenter._on_tick()
    presenter._on_tick()
    clock.advance(minutes=4)
    presenter._on_tick()

    assert _keys(notifier, "warn-") == [
        f"warn-300-{rec.session_id}",
        f"warn-60-{rec.session_id}",
    ]


def test_late_attach_skips_passed_warnings(presenter, service, notifier, clock):
    rec = service.start(25)
    clock.advance(minutes=22)
    presenter.attach()
    assert _keys(notifier, "warn-") == []

    clock.advance(minutes=2, seconds=1)
    presenter._on_tick()
    assert _keys(notifier, "warn-") == [f"warn-60-{rec.session_id}"]


def test_no_warnings_for_breaks(presenter, service, notifier, clock):
    service.start_break(5)
    presenter.attach()
    clock.advance(minutes=4, seconds=30)
    presenter._on_tick()
    assert _keys(notifier, "warn-") == []


def test_open_ended_milestones(presenter, service, notifier, clock):
    rec = service.start(None)
    clock.advance(minutes=45)
    presenter.attach()
    assert _keys(notifier, "milestone-") == []

    clock.advance(minutes=15)
    presenter._on_tick()
    presenter._on_tick()
    assert _keys(notifier, "milestone-") == [f"milestone-2-{rec.session_id}"]


def test_rejected_start_reports_failure(presenter, service):
    service.start(25)
    presenter.attach()
    failures: list[str] = []
    presenter.action_failed.connect(failures.append)

    assert presenter.start(50) is False
    assert failures and "active" in failures[0]


def test_pause_and_resume_write_failures_are_reported(presenter, repository, monkeypatch, clock):
    presenter.attach()
    presenter.start(25)
    clock.advance(minutes=1)
    failures: list[str] = []
    presenter.action_failed.connect(failures.append)

    def disk_full(record):
        raise OSError("disk full")

    with monkeypatch.context() as m:
        m.setattr(repository, "save", disk_full)
        assert presenter.pause() is False
    assert "pause" in failures[-1] and "disk full" in failures[-1]

    assert presenter.pause() is True
    with monkeypatch.context() as m:
        m.setattr(repository, "save", disk_full)
        assert presenter.toggle_pause() is False
    assert "resume" in failures[-1] and "disk full" in failures[-1]
    assert len(failures) == 2


def test_focus_mode_follows_overlay(presenter, service):
    presenter.attach()
    modes: list[bool] = []
    presenter.focus_mode_changed.connect(modes.append)

    service.start(25)
    service.stop(add_time=False)

    assert modes == [True, False]


def test_detach_ignores_store_changes(presenter, service):
    presenter.attach()
    presenter.detach()
    states: list[tuple] = []
    presenter.state_changed.connect(lambda *a: states.append(a))

    service.start(25)

    assert states == []
    assert not presenter.is_ticking


def test_no_tick_after_stop(presenter, service, clock):
    presenter.attach()
    service.start(25)
    ticks: list[tuple] = []
    presenter.tick.connect(lambda *a: ticks.append(a))

    service.stop(add_time=False)
    clock.advance(seconds=5)
    presenter._on_tick()

    assert ticks == []
    assert not presenter.is_ticking
