from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus, SessionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import Transaction, db_cursor, fetchall, fetchone
from ..database.query import Between, Raw, TableQueryBuilder
from .model import AttendanceInput, AttendanceRecord
from .repository import AttendanceRepository

COLUMNS = (
    "id",
    "student_id",
    "class_id",
    "academic_session_id",
    "date",
    "session_type",
    "status",
    "late_minutes",
    "reason",
    "recorded_by",
    "modified_by",
    "created_at",
    "modified_at",
)

# session_type is an ENUM column, so it sorts in declaration order.
ORDER = ("date", "session_type", "student_id")

# Mutable fields on conflict; recorded_by, created_at and class_id keep their first values.
ON_DUPLICATE = {
    "status": "VALUES(status)",
    "late_minutes": "VALUES(late_minutes)",
    "reason": "VALUES(reason)",
    "modified_by": "VALUES(recorded_by)",
    "modified_at": "CURRENT_TIMESTAMP",
}


def _to_record(r: Mapping[str, Any]) -> AttendanceRecord:
    late = r.get("late_minutes")
    modified_by = r.get("modified_by")
    return AttendanceRecord(
        attendance_id=int(r["id"]),
        student_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        academic_session_id=int(r["academic_session_id"]),
        date=r["date"],
        session_type=SessionType(r["session_type"]),
        status=AttendanceStatus(r["status"]),
        recorded_by=int(r["recorded_by"]),
        late_minutes=int(late) if late is not None else None,
        reason=r.get("reason"),
        modified_by=int(modified_by) if modified_by is not None else None,
        created_at=r.get("created_at"),
        modified_at=r.get("modified_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._q = TableQueryBuilder("attendance", COLUMNS)

    def _select(self, filters: Mapping[str, Any], *, tx: Optional[Transaction]) -> list[AttendanceRecord]:
        query = self._q.select(COLUMNS, filters, order_by=ORDER)
        with db_cursor(self._conn_factory, tx) as cur:
            cur.execute(query.sql, query.params)
            return [_to_record(r) for r in fetchall(cur)]

    def _select_one(self, cur, filters: Mapping[str, Any], *, for_update: bool = False) -> Optional[AttendanceRecord]:
        query = self._q.select(COLUMNS, filters, for_update=for_update)
        cur.execute(query.sql, query.params)
        r = fetchone(cur)
        return _to_record(r) if r else None

    def upsert(self, item: AttendanceInput, *, tx: Optional[Transaction] = None) -> AttendanceRecord:
        query = self._q.upsert(
            {
                "student_id": item.student_id,
                "class_id": item.class_id,
                "academic_session_id": item.academic_session_id,
                "date": item.date,
                "session_type": item.session_type.value,
                "status": item.status.value,
                "late_minutes": item.late_minutes,
                "reason": item.reason,
                "recorded_by": item.recorded_by,
            },
            ON_DUPLICATE,
        )
        key = item.natural_key
        with db_cursor(self._conn_factory, tx) as cur:
            cur.execute(query.sql, query.params)
            record = self._select_one(
                cur,
                {
                    "student_id": key.student_id,
                    "academic_session_id": key.academic_session_id,
                    "date": key.date,
                    "session_type": key.session_type.value,
                },
            )
        if record is None:
            raise RuntimeError(f"upserted attendance row not readable for {key}")
        return record

    def update_status(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        reason: Optional[str],
        modified_by: int,
        tx: Optional[Transaction] = None,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, tx) as cur:
            if self._select_one(cur, {"id": int(attendance_id)}, for_update=True) is None:
                return None
            query = self._q.update(
                {
                    "status": status.value,
                    "reason": reason,
                    "modified_by": int(modified_by),
                    "modified_at": Raw("CURRENT_TIMESTAMP"),
                },
                {"id": int(attendance_id)},
            )
            cur.execute(query.sql, query.params)
            return self._select_one(cur, {"id": int(attendance_id)})

    def find_by_id(self, attendance_id: int, *, tx: Optional[Transaction] = None) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, tx) as cur:
            return self._select_one(cur, {"id": int(attendance_id)})

    def find_by_class_and_date(self, class_id: int, on: date, *, tx: Optional[Transaction] = None) -> Sequence[AttendanceRecord]:
        return self._select({"class_id": int(class_id), "date": on}, tx=tx)

    def find_by_class_and_range(
        self, class_id: int, start: date, end: date, *, tx: Optional[Transaction] = None
    ) -> Sequence[AttendanceRecord]:
        return self._select({"class_id": int(class_id), "date": Between(start, end)}, tx=tx)

    def find_by_class_and_session(
        self, class_id: int, academic_session_id: int, *, tx: Optional[Transaction] = None
    ) -> Sequence[AttendanceRecord]:
        return self._select({"class_id": int(class_id), "academic_session_id": int(academic_session_id)}, tx=tx)

    def find_by_class(self, class_id: int, *, tx: Optional[Transaction] = None) -> Sequence[AttendanceRecord]:
        return self._select({"class_id": int(class_id)}, tx=tx)

    def find_by_student_and_range(
        self, student_id: int, start: date, end: date, *, tx: Optional[Transaction] = None
    ) -> Sequence[AttendanceRecord]:
        return self._select({"student_id": int(student_id), "date": Between(start, end)}, tx=tx)

    def find_by_student_and_session(
        self, student_id: int, academic_session_id: int, *, tx: Optional[Transaction] = None
    ) -> Sequence[AttendanceRecord]:
        return self._select({"student_id": int(student_id), "academic_session_id": int(academic_session_id)}, tx=tx)

    def find_by_range(self, start: date, end: date, *, tx: Optional[Transaction] = None) -> Sequence[AttendanceRecord]:
        return self._select({"date": Between(start, end)}, tx=tx)

    def find_by_session(self, academic_session_id: int, *, tx: Optional[Transaction] = None) -> Sequence[AttendanceRecord]:
        return self._select({"academic_session_id": int(academic_session_id)}, tx=tx)
