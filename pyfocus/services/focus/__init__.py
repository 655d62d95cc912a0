from .collaborators import StoreCreditLedger, StoreOverlayBroadcaster, StoreUsageStats
from .completion_scheduler import CompletionScheduler
from .recovery import (
    IRecoveryPrompt,
    RecoveryAction,
    RecoveryManager,
    RecoveryOutcome,
    RecoveryState,
)
from .session_machine import InvalidTransitionError, SessionMachine, SessionPhase
from .session_repository import SessionRepository
from .session_service import SessionAlreadyActiveError, SessionService
from .timer_settings import TimerSettings
from .wake_timer import DurableWakeTimer

__all__ = [
    "CompletionScheduler",
    "DurableWakeTimer",
    "IRecoveryPrompt",
    "InvalidTransitionError",
    "RecoveryAction",
    "RecoveryManager",
    "RecoveryOutcome",
    "RecoveryState",
    "SessionAlreadyActiveError",
    "SessionMachine",
    "SessionPhase",
    "SessionRepository",
    "SessionService",
    "StoreCreditLedger",
    "StoreOverlayBroadcaster",
    "StoreUsageStats",
    "TimerSettings",
]
