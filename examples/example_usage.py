"""Example: using the service layer directly (no Flask).

Controllers are a thin layer; attendance rules live in the services.
"""

import importlib
from datetime import date

from config import get_settings_module

from attendance_ledger.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    container.attendance_service.mark_bulk(
        [
            {
                "student_id": 1,
                "class_id": 1,
                "academic_session_id": 1,
                "date": date.today().isoformat(),
                "session_type": "morning",
                "status": "absent",
            },
        ],
        recorded_by=1,
    )
    for run in container.statistics_service.get_consecutive_absences(class_id=1, min_days=2):
        print(run)


if __name__ == "__main__":
    main()
