import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "teller_rotation"),
    "isolation_level": os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED"),
}

TIMEZONE = os.getenv("ROTATION_TIMEZONE", "Asia/Manila")

DEFAULT_HEADCOUNT = int(os.getenv("DEFAULT_HEADCOUNT", "3"))
SCORE_HISTORY_DAYS = int(os.getenv("SCORE_HISTORY_DAYS", "30"))
SUGGEST_WINDOW_DAYS = int(os.getenv("SUGGEST_WINDOW_DAYS", "7"))
SUGGEST_LIMIT = int(os.getenv("SUGGEST_LIMIT", "10"))
HISTORY_DAYS = int(os.getenv("HISTORY_DAYS", "7"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
