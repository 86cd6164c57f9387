import os

from .config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
DB_CONFIG = Config.db_config()

DEBUG = False
LOG_LEVEL = Config.LOG_LEVEL

ATTENDANCE_ISSUE_THRESHOLD = Config.ATTENDANCE_ISSUE_THRESHOLD
CONSECUTIVE_ABSENCE_MIN_DAYS = Config.CONSECUTIVE_ABSENCE_MIN_DAYS

AUTO_INIT_DB = Config.AUTO_INIT_DB
