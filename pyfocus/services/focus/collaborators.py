from __future__ import annotations

from typing import Any

from pyfocus.domain.interfaces import IClock, IKeyValueStore
from pyfocus.domain.models import CompletionSummary, iso_from_ms
from pyfocus.utils.constants import CREDITS_KEY, DAILY_STATS_KEY, FOCUS_OVERLAY_KEY


class StoreUsageStats:
    """Daily focus minutes/sessions kept next to the session record."""

    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    def add_daily_usage(
        self, date: str, *, focus_minutes: int = 0, focus_sessions: int = 0
    ) -> None:
        if focus_minutes <= 0 and focus_sessions <= 0:
            return

        def apply(data: dict[str, Any]) -> None:
            stats = data.get(DAILY_STATS_KEY)
            if not isinstance(stats, dict):
                stats = {}
            day = stats.get(date)
            if not isinstance(day, dict):
                day = {"date": date, "focusMinutes": 0, "focusSessions": 0}
            day["focusMinutes"] = int(day.get("focusMinutes", 0)) + max(0, int(focus_minutes))
            day["focusSessions"] = int(day.get("focusSessions", 0)) + max(0, int(focus_sessions))
            stats[date] = day
            data[DAILY_STATS_KEY] = stats

        self._store.mutate(apply)

    def day(self, date: str) -> dict[str, Any]:
        stats = self._store.get(DAILY_STATS_KEY, {})
        if isinstance(stats, dict) and isinstance(stats.get(date), dict):
            return stats[date]
        return {"date": date, "focusMinutes": 0, "focusSessions": 0}


class StoreCreditLedger:
    """Appends one credit per authoritative focus completion."""

    def __init__(self, store: IKeyValueStore, clock: IClock) -> None:
        self._store = store
        self._clock = clock

    def award_completion_credit(self, summary: CompletionSummary) -> None:
        item = {
            "sessionId": summary.session_id,
            "entryId": summary.entry_id,
            "minutes": summary.minutes,
            "taskId": summary.task_id,
            "taskTitle": summary.task_title,
            "boredomLevel": summary.boredom_level,
            "awardedAt": iso_from_ms(self._clock.now_ms()),
        }

        def apply(data: dict[str, Any]) -> None:
            ledger = data.get(CREDITS_KEY)
            ledger = list(ledger) if isinstance(ledger, list) else []
            ledger.append(item)
            data[CREDITS_KEY] = ledger

        self._store.mutate(apply)

    def credits(self) -> list[dict[str, Any]]:
        ledger = self._store.get(CREDITS_KEY, [])
        return ledger if isinstance(ledger, list) else []


class StoreOverlayBroadcaster:
    """Publishes focus-mode on/off through the store so every surface sees it."""

    def __init__(self, store: IKeyValueStore, clock: IClock) -> None:
        self._store = store
        self._clock = clock

    def broadcast(self, event: str, *, active: bool, session_id: str | None) -> None:
        self._store.set(
            FOCUS_OVERLAY_KEY,
            {
                "event": event,
                "active": bool(active),
                "sessionId": session_id,
                "at": self._clock.now_ms(),
            },
        )
