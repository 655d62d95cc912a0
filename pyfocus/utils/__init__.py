"""App constants and utilities."""

from .constants import (
    ALARMS_KEY,
    APP_DIR,
    APP_NAME,
    APP_ORG,
    COMPLETED_SESSIONS_KEY,
    CYCLE_COUNT_KEY,
    DAILY_STATS_KEY,
    FOCUS_COMPLETE_ALARM,
    FOCUS_OVERLAY_KEY,
    LAST_FOCUS_DURATION_KEY,
    SESSION_KEY,
)

__all__ = [
    "APP_ORG",
    "APP_NAME",
    "APP_DIR",
    "SESSION_KEY",
    "COMPLETED_SESSIONS_KEY",
    "DAILY_STATS_KEY",
    "LAST_FOCUS_DURATION_KEY",
    "CYCLE_COUNT_KEY",
    "ALARMS_KEY",
    "FOCUS_OVERLAY_KEY",
    "FOCUS_COMPLETE_ALARM",
]
