from __future__ import annotations

import math
from datetime import date, timedelta

import pytest

from attendance_ledger.attendance.statistics import (
    attendance_issues,
    class_date_snapshot,
    class_range_stats,
    class_session_summaries,
    daily_trend,
    monthly_digest,
    percentage,
    weekly_summary,
)
from attendance_ledger.core.enums import AttendanceStatus, SessionType
from attendance_ledger.core.exceptions import InvalidArgument

S = AttendanceStatus
D1 = date(2024, 3, 4)
D2 = date(2024, 3, 5)


def test_percentage_guards_zero_total():
    assert percentage(0, 0) is None
    assert percentage(1, 3) == 33.33


def test_class_date_snapshot_counts_statuses(make):
    records = [
        make(attendance_id=1, student_id=1, status=S.PRESENT),
        make(attendance_id=2, student_id=2, status=S.ABSENT),
        make(attendance_id=3, student_id=3, status=S.LATE),
        make(attendance_id=4, student_id=4, status=S.ON_LEAVE),
        make(attendance_id=5, student_id=5, status=S.PRESENT),
    ]

    snap = class_date_snapshot(10, date(2024, 1, 1), records)

    assert (snap.total, snap.present, snap.absent, snap.late, snap.on_leave, snap.half_day) == (5, 2, 1, 1, 1, 0)


def test_range_stats_are_day_weighted(make):
    records = [
        make(attendance_id=1, student_id=1, on=D1, status=S.PRESENT),
        make(attendance_id=2, student_id=2, on=D1, status=S.PRESENT),
        make(attendance_id=3, student_id=3, on=D1, status=S.LATE),
        make(attendance_id=4, student_id=4, on=D1, status=S.ABSENT),
        make(attendance_id=5, student_id=1, on=D2, status=S.PRESENT),
    ]

    stats = class_range_stats(10, D1, D2, records)

    assert stats.total_days == 2
    # (50 + 100) / 2, not 3 / 5 records
    assert stats.avg_attendance_percentage == 75.0
    assert stats.avg_late_percentage == 12.5
    assert (stats.total_present, stats.total_absent, stats.total_late, stats.total_leave) == (3, 1, 1, 0)


def test_range_stats_without_records_have_no_percentages():
    stats = class_range_stats(10, D1, D2, [])

    assert stats.total_days == 0
    assert stats.avg_attendance_percentage is None
    assert stats.avg_late_percentage is None


def test_range_stats_never_produce_nan(make):
    records = [make(attendance_id=i, student_id=i, on=D1, status=S.ABSENT) for i in range(1, 4)]

    stats = class_range_stats(10, D1, D2, records)

    assert stats.total_days == 1
    assert stats.avg_attendance_percentage == 0.0
    assert math.isfinite(stats.avg_late_percentage)


def test_monthly_digest_summarizes_each_day(make):
    records = [
        make(attendance_id=1, on=D1, session_type=SessionType.AFTERNOON, status=S.LATE, late_minutes=10, reason="bus"),
        make(attendance_id=2, on=D1, session_type=SessionType.MORNING, status=S.LATE, late_minutes=25, reason="bus"),
        make(attendance_id=3, on=D1, session_type=SessionType.EVENING, status=S.ABSENT, reason="clinic"),
        make(attendance_id=4, on=D2, status=S.PRESENT),
    ]

    first, second = monthly_digest(records)

    assert first.date == D1
    assert first.daily_status == "morning: late, afternoon: late, evening: absent"
    assert first.was_late is True
    assert first.max_late_minutes == 25
    assert first.reasons == "bus; clinic"
    assert second.daily_status == "morning: present"
    assert second.was_late is False
    assert second.max_late_minutes is None
    assert second.reasons is None


def test_attendance_issues_filters_and_orders_worst_first(make):
    records = []
    n = 0
    for student_id, statuses in {
        1: [S.PRESENT] * 4 + [S.ABSENT],  # 80%: not below threshold
        2: [S.PRESENT, S.PRESENT, S.LATE, S.ABSENT],  # 50%
        3: [S.PRESENT, S.ABSENT, S.ABSENT],  # 33.33%
    }.items():
        for status in statuses:
            n += 1
            records.append(make(attendance_id=n, student_id=student_id, status=status))

    issues = attendance_issues(records, 80)

    assert [(i.student_id, i.attendance_percentage) for i in issues] == [(3, 33.33), (2, 50.0)]
    assert issues[1].late_days == 1
    assert issues[1].total_days == 4


def test_service_uses_default_threshold(container, payload):
    svc = container.attendance_service
    svc.mark(payload(student_id=1, date="2024-01-01", status="absent"))
    svc.mark(payload(student_id=1, date="2024-01-02", status="present"))
    svc.mark(payload(student_id=2, date="2024-01-01", status="present"))

    issues = container.statistics_service.get_attendance_issues(10, 100)

    assert [i.student_id for i in issues] == [1]


@pytest.mark.parametrize("threshold", [-1, 100.5])
def test_service_rejects_out_of_range_threshold(container, threshold):
    with pytest.raises(InvalidArgument):
        container.statistics_service.get_attendance_issues(10, 100, threshold)


def test_service_rejects_inverted_range(container):
    with pytest.raises(InvalidArgument):
        container.statistics_service.get_class_attendance_stats(10, D2, D1)


def test_service_rejects_invalid_month(container):
    with pytest.raises(InvalidArgument):
        container.statistics_service.get_student_monthly_attendance(1, 2024, 13)


def test_monthly_attendance_is_limited_to_the_month(container, payload):
    svc = container.attendance_service
    svc.mark(payload(date="2024-01-31", status="absent"))
    svc.mark(payload(date="2024-02-01", status="late", late_minutes=5))
    svc.mark(payload(date="2024-02-29", status="present"))

    days = container.statistics_service.get_student_monthly_attendance(1, 2024, 2)

    assert [d.date for d in days] == [date(2024, 2, 1), date(2024, 2, 29)]
    assert days[0].max_late_minutes == 5


def test_student_report_recomputes_summary(container, payload):
    svc = container.attendance_service
    svc.mark(payload(date="2024-01-30", status="present"))
    svc.mark(payload(date="2024-01-31", status="absent"))
    svc.mark(payload(date="2024-02-01", session_type="morning", status="present"))
    svc.mark(payload(date="2024-02-01", session_type="afternoon", status="on-leave"))
    svc.mark(payload(date="2024-02-02", academic_session_id=200, status="absent"))

    report = container.statistics_service.get_student_report(1, 100, recent_limit=2)

    assert report.summary.total_days == 4
    assert report.summary.present_days == 2
    assert report.summary.present_percentage == 50.0
    assert report.summary.absent_percentage == 25.0
    assert [(r.date, r.session_type) for r in report.recent] == [
        (date(2024, 2, 1), SessionType.MORNING),
        (date(2024, 2, 1), SessionType.AFTERNOON),
    ]
    assert [(m.year, m.month, m.total_days, m.leave_days) for m in report.monthly] == [
        (2024, 1, 2, 0),
        (2024, 2, 2, 1),
    ]


def test_student_report_with_no_records(container):
    report = container.statistics_service.get_student_report(99, 100)

    assert report.summary.total_days == 0
    assert report.summary.present_percentage is None
    assert report.recent == []
    assert report.monthly == []


def test_weekly_summary_keeps_empty_weeks_without_rate(make):
    start, end = date(2024, 1, 1), date(2024, 1, 17)
    records = [
        make(attendance_id=1, student_id=1, on=date(2024, 1, 2), status=S.PRESENT),
        make(attendance_id=2, student_id=2, on=date(2024, 1, 3), status=S.ABSENT),
        make(attendance_id=3, student_id=1, on=date(2024, 1, 15), status=S.ON_LEAVE),
    ]

    weeks = weekly_summary(start, end, records)

    assert [(w.week_number, w.week_start, w.week_end) for w in weeks] == [
        (1, date(2024, 1, 1), date(2024, 1, 7)),
        (2, date(2024, 1, 8), date(2024, 1, 14)),
        (3, date(2024, 1, 15), date(2024, 1, 17)),
    ]
    assert (weeks[0].total_records, weeks[0].present, weeks[0].absent, weeks[0].attendance_rate) == (2, 1, 1, 50.0)
    assert weeks[1].total_records == 0
    assert weeks[1].attendance_rate is None
    assert (weeks[2].on_leave, weeks[2].attendance_rate) == (1, 0.0)


def test_daily_trend_covers_every_day_in_range(make):
    start = date(2024, 3, 1)
    records = [
        make(attendance_id=1, student_id=1, on=start, status=S.PRESENT),
        make(attendance_id=2, student_id=2, on=start, status=S.LATE),
        make(attendance_id=3, student_id=3, on=start, status=S.ABSENT),
    ]

    trend = daily_trend(start, start + timedelta(days=2), records)

    assert [p.date for p in trend] == [start, start + timedelta(days=1), start + timedelta(days=2)]
    assert (trend[0].total_marked, trend[0].present, trend[0].late, trend[0].absent) == (3, 1, 1, 1)
    assert trend[0].attendance_rate == 33.33
    assert all(p.total_marked == 0 and p.attendance_rate is None for p in trend[1:])


def test_class_session_summaries_average_student_percentages(make):
    records = [
        make(attendance_id=1, student_id=1, class_id=10, on=D1, status=S.PRESENT),
        make(attendance_id=2, student_id=1, class_id=10, on=D2, status=S.PRESENT),
        make(attendance_id=3, student_id=2, class_id=10, on=D1, status=S.ABSENT),
        make(attendance_id=4, student_id=2, class_id=10, on=D2, status=S.LATE),
        make(attendance_id=5, student_id=3, class_id=11, on=D1, status=S.ON_LEAVE),
    ]

    summaries = class_session_summaries(100, records)

    assert [s.class_id for s in summaries] == [10, 11]
    first, second = summaries
    assert (first.total_students, first.present_days, first.absent_days, first.late_days) == (2, 2, 1, 1)
    # (100 + 0) / 2 students, not 2 / 4 records
    assert first.avg_attendance_percentage == 50.0
    assert (second.total_students, second.leave_days, second.avg_attendance_percentage) == (1, 1, 0.0)


def test_class_session_summaries_without_records():
    assert class_session_summaries(100, []) == []


def test_service_weekly_summary_filters_academic_session(container, payload):
    svc = container.attendance_service
    svc.mark(payload(student_id=1, date="2024-01-02", status="present"))
    svc.mark(payload(student_id=2, date="2024-01-02", academic_session_id=200, status="absent"))

    everyone = container.statistics_service.get_weekly_summary(date(2024, 1, 1), date(2024, 1, 7))
    session = container.statistics_service.get_weekly_summary(date(2024, 1, 1), date(2024, 1, 7), 100)

    assert everyone[0].total_records == 2
    assert (session[0].total_records, session[0].attendance_rate) == (1, 100.0)


def test_service_daily_summary_for_unmarked_day(container):
    point = container.statistics_service.get_daily_summary(date(2024, 5, 1))

    assert point.date == date(2024, 5, 1)
    assert point.total_marked == 0
    assert point.attendance_rate is None


@pytest.mark.parametrize("method", ["get_weekly_summary", "get_daily_trend"])
def test_service_windowed_summaries_reject_inverted_range(container, method):
    with pytest.raises(InvalidArgument):
        getattr(container.statistics_service, method)(D2, D1)


def test_service_class_session_summary_reads_the_session(container, payload):
    svc = container.attendance_service
    svc.mark(payload(student_id=1, class_id=10, status="present"))
    svc.mark(payload(student_id=2, class_id=12, status="absent"))
    svc.mark(payload(student_id=3, class_id=10, academic_session_id=200, status="absent"))

    summaries = container.statistics_service.get_class_session_summary(100)

    assert [(s.class_id, s.total_students, s.avg_attendance_percentage) for s in summaries] == [
        (10, 1, 100.0),
        (12, 1, 0.0),
    ]
