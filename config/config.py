import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key"

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "school_db")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Analytics defaults
    ATTENDANCE_ISSUE_THRESHOLD = float(os.environ.get("ATTENDANCE_ISSUE_THRESHOLD", "80"))
    CONSECUTIVE_ABSENCE_MIN_DAYS = int(os.environ.get("CONSECUTIVE_ABSENCE_MIN_DAYS", "3"))

    # Dev helpers
    AUTO_INIT_DB = bool(int(os.environ.get("AUTO_INIT_DB", "0")))

    @classmethod
    def db_config(cls) -> dict:
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
        }
