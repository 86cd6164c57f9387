from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import pytest

from attendance_ledger.attendance.model import AttendanceInput, AttendanceRecord, NaturalKey
from attendance_ledger.container import assemble
from attendance_ledger.core.enums import AttendanceStatus, SessionType


class InMemoryDatabase:
    """Stand-in for the transactional store: snapshot on begin, restore on error."""

    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self.by_key: dict[NaturalKey, int] = {}
        self.notifications: list = []
        self.guardians: dict[int, list[int]] = {}
        self.next_id = 0
        self.commits = 0
        self.rollbacks = 0
        self._lock = threading.RLock()
        self._tick = datetime(2024, 1, 1, 8, 0, 0)

    def now(self) -> datetime:
        self._tick += timedelta(seconds=1)
        return self._tick

    @contextmanager
    def transaction(self):
        with self._lock:
            snapshot = (dict(self.records), dict(self.by_key), list(self.notifications), self.next_id)
            try:
                yield self
            except BaseException:
                self.records, self.by_key, self.notifications, self.next_id = snapshot
                self.rollbacks += 1
                raise
            self.commits += 1

    @contextmanager
    def _join(self, tx):
        if tx is not None:
            yield tx
        else:
            with self.transaction() as own:
                yield own


class InMemoryAttendance:
    def __init__(self, db: InMemoryDatabase, *, fail_when: Optional[Callable[[AttendanceInput], bool]] = None):
        self._db = db
        self._fail_when = fail_when
        self.upsert_calls = 0
        self.written: list[AttendanceStatus] = []

    def upsert(self, item: AttendanceInput, *, tx=None) -> AttendanceRecord:
        with self._db._join(tx) as db:
            self.upsert_calls += 1
            if self._fail_when and self._fail_when(item):
                raise RuntimeError("store unavailable")
            existing_id = db.by_key.get(item.natural_key)
            if existing_id is not None:
                rec = replace(
                    db.records[existing_id],
                    status=item.status,
                    late_minutes=item.late_minutes,
                    reason=item.reason,
                    modified_by=item.recorded_by,
                    modified_at=db.now(),
                )
            else:
                db.next_id += 1
                rec = AttendanceRecord(
                    attendance_id=db.next_id,
                    student_id=item.student_id,
                    class_id=item.class_id,
                    academic_session_id=item.academic_session_id,
                    date=item.date,
                    session_type=item.session_type,
                    status=item.status,
                    recorded_by=item.recorded_by,
                    late_minutes=item.late_minutes,
                    reason=item.reason,
                    created_at=db.now(),
                )
                db.by_key[item.natural_key] = rec.attendance_id
            db.records[rec.attendance_id] = rec
            self.written.append(rec.status)
            return rec

    def update_status(self, *, attendance_id, status, reason, modified_by, tx=None):
        with self._db._join(tx) as db:
            rec = db.records.get(int(attendance_id))
            if rec is None:
                return None
            rec = replace(rec, status=status, reason=reason, modified_by=modified_by, modified_at=db.now())
            db.records[rec.attendance_id] = rec
            return rec

    def _where(self, pred) -> list[AttendanceRecord]:
        return sorted((r for r in self._db.records.values() if pred(r)), key=lambda r: r.sort_key)

    def find_by_id(self, attendance_id, *, tx=None):
        return self._db.records.get(int(attendance_id))

    def find_by_class_and_date(self, class_id, on, *, tx=None):
        return self._where(lambda r: r.class_id == class_id and r.date == on)

    def find_by_class_and_range(self, class_id, start, end, *, tx=None):
        return self._where(lambda r: r.class_id == class_id and start <= r.date <= end)

    def find_by_class_and_session(self, class_id, academic_session_id, *, tx=None):
        return self._where(lambda r: r.class_id == class_id and r.academic_session_id == academic_session_id)

    def find_by_class(self, class_id, *, tx=None):
        return self._where(lambda r: r.class_id == class_id)

    def find_by_student_and_range(self, student_id, start, end, *, tx=None):
        return self._where(lambda r: r.student_id == student_id and start <= r.date <= end)

    def find_by_student_and_session(self, student_id, academic_session_id, *, tx=None):
        return self._where(lambda r: r.student_id == student_id and r.academic_session_id == academic_session_id)

    def find_by_range(self, start, end, *, tx=None):
        return self._where(lambda r: start <= r.date <= end)

    def find_by_session(self, academic_session_id, *, tx=None):
        return self._where(lambda r: r.academic_session_id == academic_session_id)


class InMemoryGuardians:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def guardian_user_ids(self, student_id, *, tx=None):
        return list(self._db.guardians.get(int(student_id), []))


class InMemoryNotifications:
    def __init__(self, db: InMemoryDatabase, *, fail: bool = False):
        self._db = db
        self.fail = fail

    def enqueue(self, intents, *, tx=None):
        with self._db._join(tx) as db:
            if self.fail:
                raise RuntimeError("notifications table unavailable")
            db.notifications.extend(intents)
            return len(intents)


def make_record(
    *,
    attendance_id: int = 1,
    student_id: int = 1,
    class_id: int = 10,
    academic_session_id: int = 100,
    on: date = date(2024, 1, 1),
    session_type: SessionType = SessionType.MORNING,
    status: AttendanceStatus = AttendanceStatus.PRESENT,
    late_minutes: Optional[int] = None,
    reason: Optional[str] = None,
) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=attendance_id,
        student_id=student_id,
        class_id=class_id,
        academic_session_id=academic_session_id,
        date=on,
        session_type=session_type,
        status=status,
        recorded_by=7,
        late_minutes=late_minutes,
        reason=reason,
    )


def submission(**overrides) -> dict:
    data = {
        "student_id": 1,
        "class_id": 10,
        "academic_session_id": 100,
        "date": "2024-01-01",
        "session_type": "morning",
        "status": "present",
        "recorded_by": 7,
    }
    data.update(overrides)
    return data


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def attendance_repo(db):
    return InMemoryAttendance(db)


@pytest.fixture
def notifications_repo(db):
    return InMemoryNotifications(db)


@pytest.fixture
def container(db, attendance_repo, notifications_repo):
    return assemble(
        db=db,
        attendance_repo=attendance_repo,
        guardians_repo=InMemoryGuardians(db),
        notifications_repo=notifications_repo,
    )


@pytest.fixture
def make():
    return make_record


@pytest.fixture
def payload():
    return submission


@pytest.fixture
def flaky_attendance(db):
    def build(fail_when):
        return InMemoryAttendance(db, fail_when=fail_when)

    return build
