from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from pyfocus.domain.models import CompletionSummary


class IClock(Protocol):
    """Wall-clock source in epoch milliseconds."""

    def now_ms(self) -> int: ...


class IKeyValueStore(Protocol):
    """
    Durable key-value store shared by every process.

    Implementations also expose a Qt `changed` signal carrying
    `dict[str, StoreChange]` for local and external writes.
    """

    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def remove(self, *keys: str) -> None: ...
    def update(self, values: Mapping[str, Any], *, remove: Iterable[str] = ()) -> None: ...
    def mutate(self, fn: Callable[[dict[str, Any]], None]) -> None: ...


class INotifier(Protocol):
    """Desktop/toast notifications. Repeated dedupe keys must not alert twice."""

    def notify(
        self,
        kind: str,
        title: str,
        message: str,
        *,
        dedupe_key: str,
        require_interaction: bool = False,
    ) -> None: ...


class ICreditAwarder(Protocol):
    def award_completion_credit(self, summary: CompletionSummary) -> None: ...


class IOverlayBroadcaster(Protocol):
    """Fire-and-forget "focus mode on/off" signal for every open surface."""

    def broadcast(self, event: str, *, active: bool, session_id: str | None) -> None: ...


class IUsageStats(Protocol):
    def add_daily_usage(
        self, date: str, *, focus_minutes: int = 0, focus_sessions: int = 0
    ) -> None: ...


class IConfigService(Protocol):
    """Read-only deployment configuration (INI sections and keys)."""

    def get(self, section: str, key: str, default: str | None = None) -> str | None: ...
    def get_int(self, section: str, key: str, default: int | None = None) -> int | None: ...
    def get_float(
        self, section: str, key: str, default: float | None = None
    ) -> float | None: ...
    def get_bool(self, section: str, key: str, default: bool | None = None) -> bool | None: ...
    def as_dict(self) -> Mapping[str, Mapping[str, str]]: ...
