from __future__ import annotations

import logging
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.validators import optional_text, require_enum, require_id
from ..core.constants import NOTIFICATION_MESSAGE, NOTIFICATION_TITLE
from ..core.enums import AttendanceStatus, NotificationType
from ..core.exceptions import NotFound
from ..database.connection import TransactionManager
from .model import NotificationIntent
from .repository import GuardianDirectory, NotificationSink

logger = logging.getLogger(__name__)


class AttendanceChangeNotifier:
    """Changes an attendance status and queues guardian notices as one unit of work.

    If queuing the notices fails the status change is rolled back too. Nothing
    here retries: the notification write is not idempotent.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        guardians: GuardianDirectory,
        notifications: NotificationSink,
        db: TransactionManager,
    ):
        self._attendance = attendance
        self._guardians = guardians
        self._notifications = notifications
        self._db = db

    def update_with_notification(
        self,
        attendance_id: int,
        status: AttendanceStatus | str,
        reason: Optional[str],
        actor: int,
    ) -> AttendanceRecord:
        attendance_id = require_id(attendance_id, "attendance_id")
        new_status = require_enum(status, AttendanceStatus, "status")
        actor_id = require_id(actor, "modified_by")
        reason = optional_text(reason)

        with self._db.transaction() as tx:
            record = self._attendance.update_status(
                attendance_id=attendance_id,
                status=new_status,
                reason=reason,
                modified_by=actor_id,
                tx=tx,
            )
            if record is None:
                raise NotFound(f"attendance record {attendance_id} not found")

            intents = [
                NotificationIntent(
                    user_id=user_id,
                    title=NOTIFICATION_TITLE,
                    message=NOTIFICATION_MESSAGE.format(status=new_status.value),
                    notification_type=NotificationType.ATTENDANCE,
                    attendance_id=record.attendance_id,
                )
                for user_id in self._guardians.guardian_user_ids(record.student_id, tx=tx)
            ]
            queued = self._notifications.enqueue(intents, tx=tx)

        logger.info(
            "attendance %d set to %s by %d; %d guardian notification(s) queued",
            record.attendance_id,
            new_status.value,
            actor_id,
            queued,
        )
        return record
