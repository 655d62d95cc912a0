from __future__ import annotations

from .qt_messages import QtMessageService
from .qt_notifier import QtTrayNotifier
from .qt_recovery_prompt import QtRecoveryPrompt

__all__ = [
    "QtMessageService",
    "QtRecoveryPrompt",
    "QtTrayNotifier",
]
