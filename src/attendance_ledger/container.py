from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.statistics import AttendanceStatisticsService
from .core.constants import DEFAULT_ISSUE_THRESHOLD, DEFAULT_MIN_ABSENCE_DAYS
from .database.connection import DatabaseConnection, TransactionManager
from .notifications.mysql_notification_repository import MySQLGuardianDirectory, MySQLNotificationSink
from .notifications.repository import GuardianDirectory, NotificationSink
from .notifications.service import AttendanceChangeNotifier


@dataclass(frozen=True)
class Container:
    db: Any

    attendance_repo: AttendanceRepository
    guardians_repo: GuardianDirectory
    notifications_repo: NotificationSink

    attendance_service: AttendanceService
    statistics_service: AttendanceStatisticsService
    change_notifier: AttendanceChangeNotifier


def assemble(
    *,
    db: TransactionManager,
    attendance_repo: AttendanceRepository,
    guardians_repo: GuardianDirectory,
    notifications_repo: NotificationSink,
    issue_threshold: float = DEFAULT_ISSUE_THRESHOLD,
    min_absence_days: int = DEFAULT_MIN_ABSENCE_DAYS,
) -> Container:
    return Container(
        db=db,
        attendance_repo=attendance_repo,
        guardians_repo=guardians_repo,
        notifications_repo=notifications_repo,
        attendance_service=AttendanceService(attendance_repo, db),
        statistics_service=AttendanceStatisticsService(
            attendance_repo,
            issue_threshold=issue_threshold,
            min_absence_days=min_absence_days,
        ),
        change_notifier=AttendanceChangeNotifier(attendance_repo, guardians_repo, notifications_repo, db),
    )


def build_container(
    *,
    db_config: dict,
    issue_threshold: float = DEFAULT_ISSUE_THRESHOLD,
    min_absence_days: int = DEFAULT_MIN_ABSENCE_DAYS,
) -> Container:
    conn = DatabaseConnection.from_dict(db_config)
    return assemble(
        db=conn,
        attendance_repo=MySQLAttendanceRepository(conn),
        guardians_repo=MySQLGuardianDirectory(conn),
        notifications_repo=MySQLNotificationSink(conn),
        issue_threshold=issue_threshold,
        min_absence_days=min_absence_days,
    )
