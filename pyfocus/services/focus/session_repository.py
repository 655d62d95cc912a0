from __future__ import annotations

import logging
from typing import Any

from pyfocus.domain.interfaces import IKeyValueStore
from pyfocus.domain.models import CompletedSessionEntry, SessionRecord
from pyfocus.utils.constants import (
    COMPLETED_SESSIONS_KEY,
    CYCLE_COUNT_KEY,
    LAST_FOCUS_DURATION_KEY,
    SESSION_KEY,
)

logger = logging.getLogger(__name__)


def parse_record(raw: Any) -> SessionRecord | None:
    """Missing or corrupt data reads as "no session"."""
    if raw is None:
        return None
    try:
        return SessionRecord.from_dict(raw)
    except (TypeError, ValueError, KeyError) as exc:
        logger.warning("Ignoring unreadable session record: %s", exc)
        return None


class SessionRepository:
    """Typed access to the session keys of the shared store."""

    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> IKeyValueStore:
        return self._store

    # ---- the single session record ----

    def load(self) -> SessionRecord | None:
        return parse_record(self._store.get(SESSION_KEY))

    def save(self, record: SessionRecord) -> None:
        self._store.set(SESSION_KEY, record.to_dict())

    def clear(self) -> None:
        self._store.remove(SESSION_KEY)

    def finalize(self, entry: CompletedSessionEntry | None) -> None:
        """Remove the record and append `entry` (if any) in a single write."""

        def apply(data: dict[str, Any]) -> None:
            data.pop(SESSION_KEY, None)
            if entry is None:
                return
            existing = data.get(COMPLETED_SESSIONS_KEY)
            entries = list(existing) if isinstance(existing, list) else []
            entries.append(entry.to_dict())
            data[COMPLETED_SESSIONS_KEY] = entries

        self._store.mutate(apply)

    # ---- completed entries ----

    def completed_entries(self) -> list[CompletedSessionEntry]:
        raw = self._store.get(COMPLETED_SESSIONS_KEY, [])
        if not isinstance(raw, list):
            return []
        out: list[CompletedSessionEntry] = []
        for item in raw:
            try:
                out.append(CompletedSessionEntry.from_dict(item))
            except (TypeError, ValueError, KeyError):
                logger.warning("Skipping malformed completed session entry")
        return out

    # ---- small counters ----

    def last_focus_minutes(self, default: int) -> int:
        value = self._store.get(LAST_FOCUS_DURATION_KEY)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            return value
        return default

    def set_last_focus_minutes(self, minutes: int) -> None:
        self._store.set(LAST_FOCUS_DURATION_KEY, int(minutes))

    def cycle_count(self) -> int:
        value = self._store.get(CYCLE_COUNT_KEY, 0)
        return value if isinstance(value, int) and value >= 0 else 0

    def increment_cycle_count(self) -> int:
        result = {"count": 0}

        def apply(data: dict[str, Any]) -> None:
            current = data.get(CYCLE_COUNT_KEY, 0)
            count = (current if isinstance(current, int) and current >= 0 else 0) + 1
            data[CYCLE_COUNT_KEY] = count
            result["count"] = count

        self._store.mutate(apply)
        return result["count"]
