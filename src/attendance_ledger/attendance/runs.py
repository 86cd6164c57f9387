"""Consecutive-absence detection.

A student's records in a class are ordered by (date, session type). Two
absences are consecutive when no other record of that student sits between
them in that order. Calendar gaps do not matter: a student absent on five
Mondays with nothing recorded in between has a run of five.
"""
from __future__ import annotations

from itertools import groupby
from typing import Iterable, Iterator

from ..core.enums import AttendanceStatus
from ..core.exceptions import InvalidArgument
from .model import AbsenceRun, AttendanceRecord


def _absence_runs(records: list[AttendanceRecord]) -> Iterator[list[AttendanceRecord]]:
    """Maximal blocks of absences in one student's ordered records."""
    for is_absent, block in groupby(records, key=lambda r: r.status == AttendanceStatus.ABSENT):
        if is_absent:
            yield list(block)


def detect_absence_runs(records: Iterable[AttendanceRecord], min_days: int) -> list[AbsenceRun]:
    """Report every maximal absence run of at least ``min_days`` records.

    ``end_date`` is the date of the ``min_days``-th absence in the run (the
    point where the run first qualifies); ``run_length`` is the full length.
    Most recent start first.
    """

    if isinstance(min_days, bool) or not isinstance(min_days, int) or min_days <= 0:
        raise InvalidArgument(f"min_days must be a positive integer (got {min_days!r})")

    ordered = sorted(records, key=lambda r: (r.student_id, r.date, r.session_type.rank))

    runs: list[AbsenceRun] = []
    for student_id, student_records in groupby(ordered, key=lambda r: r.student_id):
        for block in _absence_runs(list(student_records)):
            if len(block) < min_days:
                continue
            runs.append(
                AbsenceRun(
                    student_id=student_id,
                    start_date=block[0].date,
                    end_date=block[min_days - 1].date,
                    consecutive_days=min_days,
                    run_length=len(block),
                )
            )

    runs.sort(key=lambda r: r.student_id)
    runs.sort(key=lambda r: r.start_date, reverse=True)
    return runs
