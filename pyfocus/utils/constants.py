APP_ORG = "QuickTools"
APP_NAME = "PyFocus Timer"
APP_DIR = "PyFocusTimer"

# Store keys (shared by every process reading the store file)
SESSION_KEY = "focusState"
COMPLETED_SESSIONS_KEY = "productivity_focus_sessions"
DAILY_STATS_KEY = "productivity_daily_stats"
LAST_FOCUS_DURATION_KEY = "lastFocusDuration"
CYCLE_COUNT_KEY = "completedPomodoros"
ALARMS_KEY = "scheduledAlarms"
FOCUS_OVERLAY_KEY = "focusOverlay"
CREDITS_KEY = "motivation_credits"

FOCUS_COMPLETE_ALARM = "focus-session-complete"

STORE_FILE = "focus_store.json"
SCHEDULER_LOCK_FILE = "scheduler.lock"

DEFAULT_FOCUS_MINUTES = 25
FOCUS_PRESETS = (25, 50, 90)
