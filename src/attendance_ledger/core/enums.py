from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status values stored in the database."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half-day"
    ON_LEAVE = "on-leave"


class SessionType(str, Enum):
    """Part of the school day a record belongs to.

    Declaration order is the order sessions are read and reported in.
    """

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def rank(self) -> int:
        return _SESSION_ORDER[self]


_SESSION_ORDER = {s: i for i, s in enumerate(SessionType)}


class NotificationType(str, Enum):
    ATTENDANCE = "attendance"
