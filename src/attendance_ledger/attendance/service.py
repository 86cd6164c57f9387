from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

from ..common.validators import (
    optional_minutes,
    optional_text,
    require_date,
    require_date_range,
    require_enum,
    require_id,
)
from ..core.enums import AttendanceStatus, SessionType
from ..core.exceptions import BatchError, DomainError, InvalidArgument, NotFound, ValidationError
from ..database.connection import TransactionManager
from .model import AttendanceInput, AttendanceRecord, BatchItemResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

Submission = Union[AttendanceInput, Mapping[str, Any]]


def validate_submission(item: Submission, *, recorded_by: Optional[int] = None) -> AttendanceInput:
    """Coerce raw submission data into an ``AttendanceInput``.

    ``recorded_by`` (the acting user) overrides any value in the payload.
    Raises ``InvalidEnum`` / ``ConstraintViolation`` before anything is written.
    """

    if isinstance(item, AttendanceInput):
        raw: Mapping[str, Any] = {
            "student_id": item.student_id,
            "class_id": item.class_id,
            "academic_session_id": item.academic_session_id,
            "date": item.date,
            "session_type": item.session_type,
            "status": item.status,
            "recorded_by": item.recorded_by,
            "late_minutes": item.late_minutes,
            "reason": item.reason,
        }
    else:
        raw = item

    return AttendanceInput(
        student_id=require_id(raw.get("student_id"), "student_id"),
        class_id=require_id(raw.get("class_id"), "class_id"),
        academic_session_id=require_id(raw.get("academic_session_id"), "academic_session_id"),
        date=require_date(raw.get("date"), "date"),
        session_type=require_enum(raw.get("session_type"), SessionType, "session_type"),
        status=require_enum(raw.get("status"), AttendanceStatus, "status"),
        recorded_by=require_id(recorded_by if recorded_by is not None else raw.get("recorded_by"), "recorded_by"),
        late_minutes=optional_minutes(raw.get("late_minutes")),
        reason=optional_text(raw.get("reason")),
    )


class AttendanceService:
    """Ingestion (single and bulk upsert) plus plain record lookups."""

    def __init__(self, attendance: AttendanceRepository, db: TransactionManager):
        self._attendance = attendance
        self._db = db

    def mark(self, item: Submission, *, recorded_by: Optional[int] = None) -> AttendanceRecord:
        validated = validate_submission(item, recorded_by=recorded_by)
        return self._attendance.upsert(validated)

    def mark_bulk(self, items: Sequence[Submission], *, recorded_by: Optional[int] = None) -> list[AttendanceRecord]:
        """All-or-nothing: one transaction, any failure persists nothing.

        Raises ``BatchError`` carrying the index of the first failing record.
        """

        if not items:
            raise InvalidArgument("attendance records are required")

        validated: list[AttendanceInput] = []
        for index, item in enumerate(items):
            try:
                validated.append(validate_submission(item, recorded_by=recorded_by))
            except ValidationError as exc:
                raise BatchError(index, exc) from exc

        results: list[AttendanceRecord] = []
        index = 0
        try:
            with self._db.transaction() as tx:
                for index, entry in enumerate(validated):
                    results.append(self._attendance.upsert(entry, tx=tx))
        except Exception as exc:
            logger.warning("bulk attendance rolled back at record %d of %d: %s", index, len(validated), exc)
            raise BatchError(index, exc) from exc

        logger.info("bulk attendance committed %d records", len(results))
        return results

    def mark_each(self, items: Sequence[Submission], *, recorded_by: Optional[int] = None) -> list[BatchItemResult]:
        """Best-effort: each record in its own transaction, failures reported per record."""

        if not items:
            raise InvalidArgument("attendance records are required")

        out: list[BatchItemResult] = []
        for index, item in enumerate(items):
            try:
                record = self.mark(item, recorded_by=recorded_by)
            except DomainError as exc:
                out.append(BatchItemResult(index=index, ok=False, error=exc.code, reason=str(exc)))
                continue
            except Exception as exc:
                # Store failure for this record only; its transaction was rolled back.
                logger.exception("attendance record %d failed to persist", index)
                out.append(BatchItemResult(index=index, ok=False, error="store_error", reason=str(exc)))
                continue
            out.append(BatchItemResult(index=index, ok=True, record=record))

        failed = sum(1 for r in out if not r.ok)
        if failed:
            logger.info("best-effort attendance batch: %d ok, %d failed", len(out) - failed, failed)
        return out

    def get(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.find_by_id(require_id(attendance_id, "attendance_id"))
        if record is None:
            raise NotFound(f"attendance record {attendance_id} not found")
        return record

    def find_by_class_and_date(self, class_id: int, on: date) -> Sequence[AttendanceRecord]:
        return self._attendance.find_by_class_and_date(require_id(class_id, "class_id"), on)

    def find_by_student_and_range(self, student_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        require_date_range(start, end)
        return self._attendance.find_by_student_and_range(require_id(student_id, "student_id"), start, end)

    def find_by_class_and_session(self, class_id: int, academic_session_id: int) -> Sequence[AttendanceRecord]:
        return self._attendance.find_by_class_and_session(
            require_id(class_id, "class_id"),
            require_id(academic_session_id, "academic_session_id"),
        )
