from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import NamedTuple, Optional

from ..core.enums import AttendanceStatus, SessionType


class NaturalKey(NamedTuple):
    """Business identity of an attendance fact."""

    student_id: int
    academic_session_id: int
    date: date
    session_type: SessionType


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance for one session of one day."""

    attendance_id: int
    student_id: int
    class_id: int
    academic_session_id: int
    date: date
    session_type: SessionType
    status: AttendanceStatus
    recorded_by: int
    late_minutes: Optional[int] = None
    reason: Optional[str] = None
    modified_by: Optional[int] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(self.student_id, self.academic_session_id, self.date, self.session_type)

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.session_type.rank, self.student_id)


@dataclass(frozen=True)
class AttendanceInput:
    """A validated submission, ready for upsert."""

    student_id: int
    class_id: int
    academic_session_id: int
    date: date
    session_type: SessionType
    status: AttendanceStatus
    recorded_by: int
    late_minutes: Optional[int] = None
    reason: Optional[str] = None

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(self.student_id, self.academic_session_id, self.date, self.session_type)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one record in a best-effort batch."""

    index: int
    ok: bool
    record: Optional[AttendanceRecord] = None
    error: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class AbsenceRun:
    student_id: int
    start_date: date
    end_date: date
    consecutive_days: int
    run_length: int


@dataclass(frozen=True)
class ClassDateSnapshot:
    class_id: int
    date: date
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    half_day: int = 0
    on_leave: int = 0


@dataclass(frozen=True)
class DayDigest:
    date: date
    daily_status: str
    was_late: bool
    max_late_minutes: Optional[int]
    reasons: Optional[str]


@dataclass(frozen=True)
class ClassStats:
    class_id: int
    start_date: date
    end_date: date
    total_days: int
    avg_attendance_percentage: Optional[float]
    avg_late_percentage: Optional[float]
    total_present: int
    total_absent: int
    total_late: int
    total_leave: int


@dataclass(frozen=True)
class StudentIssue:
    student_id: int
    total_days: int
    present_days: int
    late_days: int
    attendance_percentage: float


@dataclass(frozen=True)
class AttendanceSummary:
    """Per (student, academic session) counts, recomputed from records."""

    student_id: int
    academic_session_id: int
    total_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    leave_days: int = 0
    present_percentage: Optional[float] = None
    absent_percentage: Optional[float] = None


@dataclass(frozen=True)
class MonthlyBreakdown:
    year: int
    month: int
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    leave_days: int
    present_percentage: Optional[float]


@dataclass(frozen=True)
class StudentAttendanceReport:
    summary: AttendanceSummary
    recent: list[AttendanceRecord] = field(default_factory=list)
    monthly: list[MonthlyBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklySummary:
    """One seven-day window; the last window is cut short at the range end."""

    week_number: int
    week_start: date
    week_end: date
    total_records: int
    present: int
    absent: int
    late: int
    on_leave: int
    attendance_rate: Optional[float]


@dataclass(frozen=True)
class ClassSessionSummary:
    class_id: int
    academic_session_id: int
    total_students: int
    present_days: int
    absent_days: int
    late_days: int
    leave_days: int
    avg_attendance_percentage: Optional[float]


@dataclass(frozen=True)
class DailyTrendPoint:
    date: date
    total_marked: int
    present: int
    absent: int
    late: int
    attendance_rate: Optional[float]
