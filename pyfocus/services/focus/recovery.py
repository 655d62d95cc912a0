from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from pyfocus.domain.interfaces import IClock
from pyfocus.domain.models import CompletionResult, SessionRecord
from pyfocus.services.focus.session_service import SessionService

logger = logging.getLogger(__name__)


class RecoveryAction(Enum):
    COLD_START = "cold_start"
    RESUMED = "resumed"
    DISCARDED = "discarded"
    COMPLETED_OVERDUE = "completed_overdue"
    EXPIRED = "expired"


@dataclass(frozen=True)
class RecoveryState:
    record: SessionRecord
    remaining_seconds: int
    elapsed_seconds: int

    @property
    def is_paused(self) -> bool:
        return self.record.is_paused


@dataclass(frozen=True)
class RecoveryOutcome:
    action: RecoveryAction
    state: RecoveryState | None = None
    completion: CompletionResult | None = None


class IRecoveryPrompt(Protocol):
    def ask_resume(self, state: RecoveryState) -> bool: ...


class RecoveryManager:
    """Reconciles whatever record a previous run left behind, once per process start."""

    def __init__(
        self,
        *,
        service: SessionService,
        prompt: IRecoveryPrompt,
        clock: IClock,
        stale_after_hours: float = 24,
    ) -> None:
        self._service = service
        self._prompt = prompt
        self._clock = clock
        self._stale_after_hours = float(stale_after_hours)
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def inspect(self) -> tuple[RecoveryAction, RecoveryState | None]:
        """What `run()` would do, without prompting or writing."""
        record = self._service.current()
        if record is None or not record.is_active:
            return RecoveryAction.COLD_START, None
        now = self._clock.now_ms()
        state = RecoveryState(
            record=record,
            remaining_seconds=record.remaining_at(now),
            elapsed_seconds=record.elapsed_at(now),
        )
        if record.is_due(now):
            return RecoveryAction.COMPLETED_OVERDUE, state
        if record.age_hours(now) >= self._stale_after_hours:
            return RecoveryAction.EXPIRED, state
        return RecoveryAction.RESUMED, state

    def run(self) -> RecoveryOutcome:
        if self._done:
            return RecoveryOutcome(RecoveryAction.COLD_START)
        self._done = True

        action, state = self.inspect()
        if action is RecoveryAction.COLD_START:
            # Drops an inactive leftover record, if any.
            self._service.stop(add_time=False)
            return RecoveryOutcome(action)
        assert state is not None

        if action is RecoveryAction.COMPLETED_OVERDUE:
            completion = self._service.complete_due()
            logger.info("Recovered overdue session %s", state.record.session_id)
            return RecoveryOutcome(action, state, completion)

        if action is RecoveryAction.EXPIRED:
            logger.info(
                "Expiring stale session %s (%.1f h old)",
                state.record.session_id,
                state.record.age_hours(self._clock.now_ms()),
            )
            self._service.stop(add_time=False, count_as_completed=False)
            return RecoveryOutcome(action, state)

        if self._prompt.ask_resume(state):
            logger.info("Resuming session %s", state.record.session_id)
            return RecoveryOutcome(RecoveryAction.RESUMED, state)

        logger.info("Discarding session %s", state.record.session_id)
        self._service.stop(add_time=False, count_as_completed=False)
        return RecoveryOutcome(RecoveryAction.DISCARDED, state)
