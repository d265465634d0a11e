import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "teller_rotation_test"),
    "isolation_level": os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED"),
}

TIMEZONE = "Asia/Manila"

DEFAULT_HEADCOUNT = 3
SCORE_HISTORY_DAYS = 30
SUGGEST_WINDOW_DAYS = 7
SUGGEST_LIMIT = 10
HISTORY_DAYS = 7

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
