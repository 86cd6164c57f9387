from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceInput, AttendanceRecord


class AttendanceRepository(Protocol):
    """Attendance record store.

    Keeps one record per natural key. Every method takes an
    optional ``tx`` so several calls can share one unit of work; without it
    the call runs in its own transaction. Lists are ordered by date, then
    session type, then student id.
    """

    def upsert(self, item: AttendanceInput, *, tx: Any = None) -> AttendanceRecord:
        """Insert, or replace status/late_minutes/reason/modified_* in place.

        Must be a single atomic statement against the natural-key constraint.
        """

        raise NotImplementedError

    def update_status(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        reason: Optional[str],
        modified_by: int,
        tx: Any = None,
    ) -> Optional[AttendanceRecord]:
        """Returns None when no record has ``attendance_id``."""

        raise NotImplementedError

    def find_by_id(self, attendance_id: int, *, tx: Any = None) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_by_class_and_date(self, class_id: int, on: date, *, tx: Any = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_class_and_range(
        self, class_id: int, start: date, end: date, *, tx: Any = None
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_class_and_session(
        self, class_id: int, academic_session_id: int, *, tx: Any = None
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_class(self, class_id: int, *, tx: Any = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_student_and_range(
        self, student_id: int, start: date, end: date, *, tx: Any = None
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_student_and_session(
        self, student_id: int, academic_session_id: int, *, tx: Any = None
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_range(self, start: date, end: date, *, tx: Any = None) -> Sequence[AttendanceRecord]:
        """School-wide records dated within ``start..end``."""

        raise NotImplementedError

    def find_by_session(self, academic_session_id: int, *, tx: Any = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
