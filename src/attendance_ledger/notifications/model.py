from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class NotificationIntent:
    """A persisted request to notify a user; delivery happens elsewhere."""

    user_id: int
    title: str
    message: str
    notification_type: NotificationType = NotificationType.ATTENDANCE
    attendance_id: Optional[int] = None
