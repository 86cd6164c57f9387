from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from itertools import groupby
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import month_bounds
from ..common.validators import require_date_range, require_id
from ..core.constants import DEFAULT_ISSUE_THRESHOLD, DEFAULT_MIN_ABSENCE_DAYS, DEFAULT_RECENT_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import InvalidArgument
from .model import (
    AbsenceRun,
    AttendanceRecord,
    AttendanceSummary,
    ClassDateSnapshot,
    ClassSessionSummary,
    ClassStats,
    DailyTrendPoint,
    DayDigest,
    MonthlyBreakdown,
    StudentAttendanceReport,
    StudentIssue,
    WeeklySummary,
)
from .repository import AttendanceRepository
from .runs import detect_absence_runs

S = AttendanceStatus


def percentage(part: int, total: int, *, digits: int = 2) -> Optional[float]:
    """``part / total * 100`` rounded, or None when there is nothing to divide by."""
    if total <= 0:
        return None
    return round(part * 100.0 / total, digits)


def _by_date(records: Iterable[AttendanceRecord]):
    ordered = sorted(records, key=lambda r: r.sort_key)
    for day, rows in groupby(ordered, key=lambda r: r.date):
        yield day, list(rows)


def class_date_snapshot(class_id: int, on: date, records: Iterable[AttendanceRecord]) -> ClassDateSnapshot:
    counts = Counter(r.status for r in records)
    return ClassDateSnapshot(
        class_id=class_id,
        date=on,
        total=sum(counts.values()),
        present=counts[S.PRESENT],
        absent=counts[S.ABSENT],
        late=counts[S.LATE],
        half_day=counts[S.HALF_DAY],
        on_leave=counts[S.ON_LEAVE],
    )


def monthly_digest(records: Iterable[AttendanceRecord]) -> list[DayDigest]:
    out: list[DayDigest] = []
    for day, rows in _by_date(records):
        rows.sort(key=lambda r: r.session_type.rank)
        late_minutes = [r.late_minutes for r in rows if r.late_minutes is not None]
        reasons = sorted({r.reason for r in rows if r.reason})
        out.append(
            DayDigest(
                date=day,
                daily_status=", ".join(f"{r.session_type.value}: {r.status.value}" for r in rows),
                was_late=any(r.status == S.LATE for r in rows),
                max_late_minutes=max(late_minutes) if late_minutes else None,
                reasons="; ".join(reasons) if reasons else None,
            )
        )
    return out


def class_range_stats(class_id: int, start: date, end: date, records: Iterable[AttendanceRecord]) -> ClassStats:
    """Day-weighted averages: each day's percentage counts once, whatever its volume."""

    present_pcts: list[float] = []
    late_pcts: list[float] = []
    totals: Counter = Counter()

    for _, rows in _by_date(records):
        counts = Counter(r.status for r in rows)
        totals.update(counts)
        day_total = len(rows)
        if day_total == 0:
            continue
        present_pcts.append(counts[S.PRESENT] * 100.0 / day_total)
        late_pcts.append(counts[S.LATE] * 100.0 / day_total)

    days = len(present_pcts)
    return ClassStats(
        class_id=class_id,
        start_date=start,
        end_date=end,
        total_days=days,
        avg_attendance_percentage=round(sum(present_pcts) / days, 2) if days else None,
        avg_late_percentage=round(sum(late_pcts) / days, 2) if days else None,
        total_present=totals[S.PRESENT],
        total_absent=totals[S.ABSENT],
        total_late=totals[S.LATE],
        total_leave=totals[S.ON_LEAVE],
    )


def attendance_issues(records: Iterable[AttendanceRecord], threshold: float) -> list[StudentIssue]:
    per_student: dict[int, Counter] = {}
    for r in records:
        per_student.setdefault(r.student_id, Counter())[r.status] += 1

    issues: list[tuple[float, StudentIssue]] = []
    for student_id, counts in per_student.items():
        total = sum(counts.values())
        if total == 0:
            continue
        exact = counts[S.PRESENT] * 100.0 / total
        if exact >= threshold:
            continue
        issues.append(
            (
                exact,
                StudentIssue(
                    student_id=student_id,
                    total_days=total,
                    present_days=counts[S.PRESENT],
                    late_days=counts[S.LATE],
                    attendance_percentage=round(exact, 2),
                ),
            )
        )

    issues.sort(key=lambda pair: (pair[0], pair[1].student_id))
    return [issue for _, issue in issues]


def student_summary(student_id: int, academic_session_id: int, records: Sequence[AttendanceRecord]) -> AttendanceSummary:
    counts = Counter(r.status for r in records)
    total = len(records)
    return AttendanceSummary(
        student_id=student_id,
        academic_session_id=academic_session_id,
        total_days=total,
        present_days=counts[S.PRESENT],
        absent_days=counts[S.ABSENT],
        late_days=counts[S.LATE],
        half_days=counts[S.HALF_DAY],
        leave_days=counts[S.ON_LEAVE],
        present_percentage=percentage(counts[S.PRESENT], total, digits=1),
        absent_percentage=percentage(counts[S.ABSENT], total, digits=1),
    )


def monthly_breakdown(records: Iterable[AttendanceRecord]) -> list[MonthlyBreakdown]:
    ordered = sorted(records, key=lambda r: r.sort_key)
    out: list[MonthlyBreakdown] = []
    for (year, month), rows in groupby(ordered, key=lambda r: (r.date.year, r.date.month)):
        counts = Counter(r.status for r in rows)
        total = sum(counts.values())
        out.append(
            MonthlyBreakdown(
                year=year,
                month=month,
                total_days=total,
                present_days=counts[S.PRESENT],
                absent_days=counts[S.ABSENT],
                late_days=counts[S.LATE],
                leave_days=counts[S.ON_LEAVE],
                present_percentage=percentage(counts[S.PRESENT], total, digits=1),
            )
        )
    return out


def weekly_summary(start: date, end: date, records: Iterable[AttendanceRecord]) -> list[WeeklySummary]:
    """Seven-day windows anchored at ``start``; weeks without records still appear, with no rate."""

    buckets: dict[int, Counter] = {}
    for r in records:
        if start <= r.date <= end:
            buckets.setdefault((r.date - start).days // 7, Counter())[r.status] += 1

    out: list[WeeklySummary] = []
    week_start, index = start, 0
    while week_start <= end:
        counts = buckets.get(index, Counter())
        total = sum(counts.values())
        out.append(
            WeeklySummary(
                week_number=index + 1,
                week_start=week_start,
                week_end=min(week_start + timedelta(days=6), end),
                total_records=total,
                present=counts[S.PRESENT],
                absent=counts[S.ABSENT],
                late=counts[S.LATE],
                on_leave=counts[S.ON_LEAVE],
                attendance_rate=percentage(counts[S.PRESENT], total),
            )
        )
        week_start += timedelta(days=7)
        index += 1
    return out


def daily_trend(start: date, end: date, records: Iterable[AttendanceRecord]) -> list[DailyTrendPoint]:
    per_day: dict[date, Counter] = {}
    for r in records:
        per_day.setdefault(r.date, Counter())[r.status] += 1

    out: list[DailyTrendPoint] = []
    day = start
    while day <= end:
        counts = per_day.get(day, Counter())
        total = sum(counts.values())
        out.append(
            DailyTrendPoint(
                date=day,
                total_marked=total,
                present=counts[S.PRESENT],
                absent=counts[S.ABSENT],
                late=counts[S.LATE],
                attendance_rate=percentage(counts[S.PRESENT], total),
            )
        )
        day += timedelta(days=1)
    return out


def class_session_summaries(academic_session_id: int, records: Iterable[AttendanceRecord]) -> list[ClassSessionSummary]:
    """Per-class totals, with the class average taken over its students' own percentages."""

    per_class: dict[int, dict[int, Counter]] = {}
    for r in records:
        per_class.setdefault(r.class_id, {}).setdefault(r.student_id, Counter())[r.status] += 1

    out: list[ClassSessionSummary] = []
    for class_id in sorted(per_class):
        students = per_class[class_id]
        totals: Counter = Counter()
        student_pcts: list[float] = []
        for counts in students.values():
            totals.update(counts)
            total = sum(counts.values())
            if total:
                student_pcts.append(counts[S.PRESENT] * 100.0 / total)
        out.append(
            ClassSessionSummary(
                class_id=class_id,
                academic_session_id=academic_session_id,
                total_students=len(students),
                present_days=totals[S.PRESENT],
                absent_days=totals[S.ABSENT],
                late_days=totals[S.LATE],
                leave_days=totals[S.ON_LEAVE],
                avg_attendance_percentage=round(sum(student_pcts) / len(student_pcts), 2) if student_pcts else None,
            )
        )
    return out


class AttendanceStatisticsService:
    """Read-only analytics, recomputed from the record store on every call."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        issue_threshold: float = DEFAULT_ISSUE_THRESHOLD,
        min_absence_days: int = DEFAULT_MIN_ABSENCE_DAYS,
    ):
        self._attendance = attendance
        self._issue_threshold = issue_threshold
        self._min_absence_days = int(min_absence_days)

    def get_class_date_snapshot(self, class_id: int, on: date) -> ClassDateSnapshot:
        class_id = require_id(class_id, "class_id")
        return class_date_snapshot(class_id, on, self._attendance.find_by_class_and_date(class_id, on))

    def get_consecutive_absences(self, class_id: int, min_days: Optional[int] = None) -> list[AbsenceRun]:
        min_days = self._min_absence_days if min_days is None else min_days
        records = self._attendance.find_by_class(require_id(class_id, "class_id"))
        return detect_absence_runs(records, min_days)

    def get_class_attendance_stats(self, class_id: int, start: date, end: date) -> ClassStats:
        class_id = require_id(class_id, "class_id")
        require_date_range(start, end)
        return class_range_stats(class_id, start, end, self._attendance.find_by_class_and_range(class_id, start, end))

    def get_student_monthly_attendance(self, student_id: int, year: int, month: int) -> list[DayDigest]:
        if not 1 <= int(month) <= 12:
            raise InvalidArgument(f"month must be between 1 and 12 (got {month})")
        if not 1 <= int(year) <= 9999:
            raise InvalidArgument(f"year out of range (got {year})")
        start, end = month_bounds(int(year), int(month))
        records = self._attendance.find_by_student_and_range(require_id(student_id, "student_id"), start, end)
        return monthly_digest(records)

    def get_attendance_issues(
        self, class_id: int, academic_session_id: int, threshold: Optional[float] = None
    ) -> list[StudentIssue]:
        threshold = self._issue_threshold if threshold is None else threshold
        if not 0 <= threshold <= 100:
            raise InvalidArgument(f"threshold must be between 0 and 100 (got {threshold})")
        records = self._attendance.find_by_class_and_session(
            require_id(class_id, "class_id"),
            require_id(academic_session_id, "academic_session_id"),
        )
        return attendance_issues(records, threshold)

    def get_student_report(
        self, student_id: int, academic_session_id: int, *, recent_limit: int = DEFAULT_RECENT_LIMIT
    ) -> StudentAttendanceReport:
        """Summary, most recent records and per-month counts for one academic session.

        All three parts come from a single read, so they agree with each other.
        """

        student_id = require_id(student_id, "student_id")
        academic_session_id = require_id(academic_session_id, "academic_session_id")
        records = list(self._attendance.find_by_student_and_session(student_id, academic_session_id))

        recent = sorted(records, key=lambda r: r.session_type.rank)
        recent.sort(key=lambda r: r.date, reverse=True)

        return StudentAttendanceReport(
            summary=student_summary(student_id, academic_session_id, records),
            recent=recent[: max(int(recent_limit), 0)],
            monthly=monthly_breakdown(records),
        )

    def get_weekly_summary(
        self, start: date, end: date, academic_session_id: Optional[int] = None
    ) -> list[WeeklySummary]:
        require_date_range(start, end)
        records = self._attendance.find_by_range(start, end)
        if academic_session_id is not None:
            academic_session_id = require_id(academic_session_id, "academic_session_id")
            records = [r for r in records if r.academic_session_id == academic_session_id]
        return weekly_summary(start, end, records)

    def get_daily_trend(self, start: date, end: date) -> list[DailyTrendPoint]:
        require_date_range(start, end)
        return daily_trend(start, end, self._attendance.find_by_range(start, end))

    def get_daily_summary(self, on: date) -> DailyTrendPoint:
        (point,) = self.get_daily_trend(on, on)
        return point

    def get_class_session_summary(self, academic_session_id: int) -> list[ClassSessionSummary]:
        academic_session_id = require_id(academic_session_id, "academic_session_id")
        return class_session_summaries(academic_session_id, self._attendance.find_by_session(academic_session_id))
