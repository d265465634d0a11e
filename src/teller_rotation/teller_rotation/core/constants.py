"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Asia/Manila"
DEFAULT_HEADCOUNT = 3
DEFAULT_SCORE_HISTORY_DAYS = 30
DEFAULT_SUGGEST_WINDOW_DAYS = 7
DEFAULT_SUGGEST_LIMIT = 10
DEFAULT_HISTORY_DAYS = 7

DAY_KEY_FORMAT = "%Y-%m-%d"
NO_REASON = "No reason provided"
MAX_REASON_LENGTH = 255
