from __future__ import annotations

from pathlib import Path

from pyfocus.services.focus.wake_timer import DurableWakeTimer
from pyfocus.services.store.json_store import JsonFileStore
from pyfocus.utils.constants import ALARMS_KEY

T0 = 1_700_000_000_000


def test_create_persists_and_clear_removes(store: JsonFileStore, clock):
    wake = DurableWakeTimer(store, clock)
    wake.create("a", T0 + 60_000)
    wake.create("b", T0 + 120_000)

    assert store.get(ALARMS_KEY) == {"a": T0 + 60_000, "b": T0 + 120_000}
    assert wake.is_armed_locally("a")

    assert wake.clear("a") is True
    assert wake.clear("a") is False
    assert wake.pending() == {"b": T0 + 120_000}
    assert not wake.is_armed_locally("a")

    wake.clear("b")
    assert store.get(ALARMS_KEY) is None


def test_alarm_survives_restart(qtbot, store_path: Path, clock):
    first = DurableWakeTimer(JsonFileStore(store_path, watch=False), clock)
    first.create("focus-session-complete", T0 + 25 * 60_000)
    first.stop_all()
    del first

    clock.advance(minutes=30)
    second = DurableWakeTimer(JsonFileStore(store_path, watch=False), clock)
    with qtbot.waitSignal(second.fired, timeout=2000) as blocker:
        second.restore()
    assert blocker.args == ["focus-session-complete"]
    assert second.pending() == {}


def test_early_timeout_rearms_instead_of_firing(store: JsonFileStore, clock):
    wake = DurableWakeTimer(store, clock)
    fired: list[str] = []
    wake.fired.connect(fired.append)
    wake.create("a", T0 + 10_000)

    wake._on_timeout("a")
    assert fired == []
    assert wake.is_armed_locally("a")

    clock.advance(seconds=10)
    wake._on_timeout("a")
    assert fired == ["a"]
    assert wake.get("a") is None


def test_timeout_after_clear_is_ignored(store: JsonFileStore, clock):
    wake = DurableWakeTimer(store, clock)
    fired: list[str] = []
    wake.fired.connect(fired.append)
    wake.create("a", T0)
    wake.clear("a")

    wake._on_timeout("a")
    assert fired == []
