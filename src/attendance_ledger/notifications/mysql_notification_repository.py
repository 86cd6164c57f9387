from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import Transaction, db_cursor, fetchall
from .model import NotificationIntent
from .repository import GuardianDirectory, NotificationSink


class MySQLGuardianDirectory(GuardianDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def guardian_user_ids(self, student_id: int, *, tx: Optional[Transaction] = None) -> Sequence[int]:
        with db_cursor(self._conn_factory, tx) as cur:
            cur.execute(
                """
                SELECT DISTINCT p.user_id
                FROM student_parent_relationships spr
                JOIN parents p ON p.id = spr.parent_id
                WHERE spr.student_id=%s
                ORDER BY p.user_id
                """,
                (int(student_id),),
            )
            return [int(r["user_id"]) for r in fetchall(cur)]


class MySQLNotificationSink(NotificationSink):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def enqueue(self, intents: Sequence[NotificationIntent], *, tx: Optional[Transaction] = None) -> int:
        if not intents:
            return 0
        with db_cursor(self._conn_factory, tx) as cur:
            cur.executemany(
                """
                INSERT INTO notifications(user_id, title, message, notification_type, attendance_id)
                VALUES(%s,%s,%s,%s,%s)
                """,
                [
                    (int(n.user_id), n.title, n.message, n.notification_type.value, n.attendance_id)
                    for n in intents
                ],
            )
            return len(intents)
