"""Domain layer: interfaces and simple models (dataclasses)."""

from .interfaces import (
    IClock,
    IConfigService,
    ICreditAwarder,
    IKeyValueStore,
    INotifier,
    IOverlayBroadcaster,
    IUsageStats,
)
from .models import (
    CompletedSessionEntry,
    CompletionResult,
    CompletionSummary,
    SessionRecord,
    SessionStatus,
    StopPreview,
)

__all__ = [
    "IClock",
    "IConfigService",
    "ICreditAwarder",
    "IKeyValueStore",
    "INotifier",
    "IOverlayBroadcaster",
    "IUsageStats",
    "CompletedSessionEntry",
    "CompletionResult",
    "CompletionSummary",
    "SessionRecord",
    "SessionStatus",
    "StopPreview",
]
