from __future__ import annotations

import pytest

from pyfocus.domain.models import SessionStatus
from pyfocus.services.focus.collaborators import StoreUsageStats
from pyfocus.services.focus.session_machine import SessionPhase
from pyfocus.services.focus.session_service import SessionAlreadyActiveError
from pyfocus.utils.constants import (
    CYCLE_COUNT_KEY,
    FOCUS_OVERLAY_KEY,
    LAST_FOCUS_DURATION_KEY,
    SESSION_KEY,
)

from conftest import MINUTE, T0, RecordingCredits


# ------------------------------
# start
# ------------------------------
def test_start_writes_fixed_record(service, repository, store):
    rec = service.start(25, task_id="t1", task_title="  Write report ", boredom_level=9)

    saved = repository.load()
    assert saved == rec
    assert saved.start_timestamp == T0
    assert saved.end_timestamp == T0 + 25 * MINUTE
    assert saved.remaining_seconds == 1500
    assert saved.task_title == "Write report"
    assert saved.boredom_level is None
    assert store.get(LAST_FOCUS_DURATION_KEY) == 25
    assert store.get(FOCUS_OVERLAY_KEY)["event"] == "started"
    assert store.get(FOCUS_OVERLAY_KEY)["active"] is True
    assert service.machine.phase is SessionPhase.RUNNING


def test_start_open_ended_has_no_deadline(service, repository, store):
    service.start(None)
    rec = repository.load()
    assert rec.is_open_ended and rec.end_timestamp is None and rec.selected_minutes is None
    assert store.get(LAST_FOCUS_DURATION_KEY) is None


def test_start_rejected_while_active(service):
    service.start(25)
    with pytest.raises(SessionAlreadyActiveError):
        service.start(50)
    with pytest.raises(SessionAlreadyActiveError):
        service.start_break()


def test_start_rejects_zero_minutes(service):
    with pytest.raises(ValueError):
        service.start(0)


def test_corrupt_record_reads_as_no_session(service, store):
    store.set(SESSION_KEY, {"isActive": True, "startTimestamp": T0})
    assert service.current() is None
    service.start(25)
    assert service.current().selected_minutes == 25


# ------------------------------
# pause / resume
# ------------------------------
def test_paused_five_minutes_moves_deadline(service, repository, clock):
    service.start(25)
    clock.advance(minutes=10)
    assert service.pause() is True

    paused = repository.load()
    assert paused.is_paused and paused.end_timestamp is None
    assert paused.paused_remaining_seconds == 900

    clock.advance(minutes=5)
    assert service.resume() is True
    resumed = repository.load()
    assert resumed.end_timestamp == T0 + 30 * MINUTE
    assert resumed.paused_remaining_seconds is None
    assert resumed.remaining_at(clock.now_ms()) == 900


def test_open_ended_pause_excludes_paused_time(service, repository, clock):
    service.start(None)
    clock.advance(minutes=10)
    service.pause()
    clock.advance(minutes=60)
    assert repository.load().elapsed_at(clock.now_ms()) == 600

    service.resume()
    rec = repository.load()
    assert rec.start_timestamp == clock.now_ms() - 600_000
    clock.advance(minutes=1)
    assert rec.elapsed_at(clock.now_ms()) == 660


def test_repeated_short_pauses_keep_running_time_exact(service, repository, clock):
    service.start(25)
    for _ in range(10):
        clock.advance(ms=400)
        service.pause()
        clock.advance(minutes=1)
        service.resume()

    rec = repository.load()
    assert rec.end_timestamp == clock.now_ms() + 1_496_000
    assert rec.remaining_at(clock.now_ms()) == 1496

    clock.advance(ms=400)
    service.pause()
    paused = repository.load()
    assert paused.paused_remaining_ms == 1_495_600
    assert paused.paused_remaining_seconds == 1496


def test_open_ended_short_pauses_lose_no_time(service, repository, clock):
    service.start(None)
    for _ in range(5):
        clock.advance(ms=1700)
        service.pause()
        clock.advance(minutes=1)
        service.resume()

    rec = repository.load()
    assert rec.start_timestamp == clock.now_ms() - 8_500
    assert rec.elapsed_at(clock.now_ms()) == 8


def test_pause_and_resume_not_applicable(service, clock):
    assert service.pause() is False
    assert service.resume() is False
    service.start(25)
    assert service.resume() is False
    clock.advance(minutes=25)
    assert service.pause() is False  # due; completion belongs to the scheduler


# ------------------------------
# stop
# ------------------------------
def test_open_ended_stop_with_time_only_is_interrupted(service, repository, store, clock):
    service.start(None)
    clock.advance(minutes=42)

    entry = service.stop(add_time=True, count_as_completed=False)

    assert entry is not None
    assert entry.status is SessionStatus.INTERRUPTED
    assert entry.actual_duration_minutes == 42
    assert entry.type == "open-ended"
    assert repository.load() is None
    day = StoreUsageStats(store).day(entry.date)
    assert day["focusMinutes"] == 42
    assert day["focusSessions"] == 0


def test_stop_counted_as_completed(service, repository, store, clock):
    service.start(25)
    clock.advance(minutes=10, seconds=30)

    entry = service.stop(add_time=True, count_as_completed=True)

    assert entry.status is SessionStatus.COMPLETED
    assert entry.actual_duration_minutes == 10
    assert entry.planned_duration_minutes == 25
    assert [e.id for e in repository.completed_entries()] == [entry.id]
    day = StoreUsageStats(store).day(entry.date)
    assert (day["focusMinutes"], day["focusSessions"]) == (10, 1)


def test_stop_without_options_discards(service, repository, clock):
    service.start(25)
    clock.advance(minutes=10)
    assert service.stop(add_time=False, count_as_completed=False) is None
    assert repository.load() is None
    assert repository.completed_entries() == []


def test_stop_under_a_minute_writes_nothing(service, repository, clock):
    service.start(25)
    clock.advance(seconds=59)
    assert service.stop(add_time=True, count_as_completed=True) is None
    assert repository.load() is None
    assert repository.completed_entries() == []


def test_stop_break_with_auto_next_leaves_no_session(service, repository, timer_settings, clock, credits):
    timer_settings.set_auto_start_next_session(True)
    service.start_break()
    clock.advance(minutes=2)

    assert service.stop(add_time=True, count_as_completed=True) is None
    assert repository.load() is None
    assert repository.completed_entries() == []
    assert credits.summaries == []
    assert service.machine.phase is SessionPhase.IDLE


def test_preview_stop(service, clock):
    assert service.preview_stop() is None
    service.start(25)
    clock.advance(minutes=10, seconds=20)
    preview = service.preview_stop()
    assert preview.elapsed_minutes == 10
    assert preview.remaining_minutes == 15
    assert preview.ended_early is True


# ------------------------------
# breaks
# ------------------------------
def test_break_length_follows_cycle_count(service, timer_settings):
    assert service.break_minutes_for(0) == 5
    assert service.break_minutes_for(3) == 5
    assert service.break_minutes_for(4) == 15
    assert service.break_minutes_for(8) == 15
    timer_settings.set_long_break_interval(0)
    assert service.break_minutes_for(4) == 5


def test_skip_break_starts_focus_with_last_duration(service, repository, clock):
    repository.set_last_focus_minutes(50)
    brk = service.start_break()
    assert brk.is_break and brk.selected_minutes == 5
    clock.advance(minutes=1)

    rec = service.skip_break()

    assert rec is not None and not rec.is_break
    assert rec.selected_minutes == 50
    assert repository.load().session_id == rec.session_id
    assert repository.completed_entries() == []


def test_skip_break_ignored_for_focus(service):
    service.start(25)
    assert service.skip_break() is None


# ------------------------------
# authoritative completion
# ------------------------------
def test_complete_due_is_idempotent(service, repository, credits, notifier, clock, store):
    rec = service.start(25, task_title="Essay")
    clock.advance(minutes=25)

    first = service.complete_due()
    second = service.complete_due()

    assert first is not None and second is None
    assert repository.load() is None
    entries = repository.completed_entries()
    assert len(entries) == 1
    assert entries[0].status is SessionStatus.COMPLETED
    assert entries[0].actual_duration_minutes == 25
    assert len(credits.summaries) == 1
    assert credits.summaries[0].entry_id == entries[0].id
    assert store.get(CYCLE_COUNT_KEY) == 1
    done = [c for c in notifier.calls if c["kind"] == "focus-complete"]
    assert len(done) == 1
    assert done[0]["dedupe_key"] == f"focus-complete-{rec.session_id}"
    assert done[0]["require_interaction"] is True
    assert '"Essay"' in done[0]["message"]
    assert store.get(FOCUS_OVERLAY_KEY)["active"] is False
    assert service.machine.phase is SessionPhase.IDLE


def test_complete_due_requires_deadline(service, repository, clock):
    service.start(25)
    clock.advance(minutes=24)
    assert service.complete_due() is None
    assert service.complete_due(tolerance_ms=60_000) is not None
    assert repository.load() is None


def test_complete_due_ignores_paused_and_open_ended(service, clock):
    service.start(None)
    clock.advance(minutes=500)
    assert service.complete_due() is None
    service.stop(add_time=False)

    service.start(25)
    clock.advance(minutes=5)
    service.pause()
    clock.advance(minutes=500)
    assert service.complete_due() is None


def test_reentrant_completion_is_noop(make_service, repository, clock):
    inner: list[object] = []

    class ReentrantNotifier:
        def notify(self, kind, title, message, *, dedupe_key, require_interaction=False):
            if kind == "focus-complete":
                inner.append(svc.complete_due())

    svc = make_service(notifier=ReentrantNotifier())
    svc.start(25)
    clock.advance(minutes=26)

    assert svc.complete_due() is not None
    assert inner == [None]
    assert len(repository.completed_entries()) == 1


def test_completion_chains_short_then_long_break(service, repository, timer_settings, store, clock):
    timer_settings.set_auto_start_breaks(True)
    service.start(25)
    clock.advance(minutes=25)
    result = service.complete_due()
    assert result.chained is not None and result.chained.is_break
    assert result.chained.selected_minutes == 5
    assert repository.load().session_id == result.chained.session_id
    assert service.machine.phase is SessionPhase.BREAK_RUNNING

    service.stop()
    store.set(CYCLE_COUNT_KEY, 3)
    service.start(25)
    clock.advance(minutes=25)
    result = service.complete_due()
    assert store.get(CYCLE_COUNT_KEY) == 4
    assert result.chained.selected_minutes == 15


def test_break_completion_chains_focus(service, repository, timer_settings, clock, qtbot):
    timer_settings.set_auto_start_next_session(True)
    repository.set_last_focus_minutes(50)
    service.start_break(5)
    clock.advance(minutes=5)

    with qtbot.waitSignal(service.break_completed, timeout=1000) as blocker:
        result = service.complete_due()

    assert blocker.args[0] is result
    assert result.was_break and result.entry is None
    assert result.chained.selected_minutes == 50 and not result.chained.is_break
    assert repository.load().session_id == result.chained.session_id
    assert repository.completed_entries() == []
    assert service.machine.phase is SessionPhase.RUNNING


def test_bookkeeping_failure_is_isolated(make_service, repository, clock):
    svc = make_service(credits=RecordingCredits(fail=True))
    failures: list[str] = []
    svc.bookkeeping_failed.connect(failures.append)
    svc.start(25)
    clock.advance(minutes=25)

    result = svc.complete_due()

    assert result is not None
    assert repository.load() is None
    assert len(repository.completed_entries()) == 1
    assert any("completion credit" in f for f in failures)


def test_notifications_can_be_disabled(service, notifier, timer_settings, clock):
    timer_settings.set_notifications_enabled(False)
    service.start(25)
    clock.advance(minutes=25)
    service.complete_due()
    assert notifier.calls == []
