import os

from .config import Config

SECRET_KEY = Config.SECRET_KEY
DB_CONFIG = Config.db_config()

DEBUG = True
LOG_LEVEL = "DEBUG"

ATTENDANCE_ISSUE_THRESHOLD = Config.ATTENDANCE_ISSUE_THRESHOLD
CONSECUTIVE_ABSENCE_MIN_DAYS = Config.CONSECUTIVE_ABSENCE_MIN_DAYS

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
