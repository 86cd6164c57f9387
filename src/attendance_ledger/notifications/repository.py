from __future__ import annotations

from typing import Any, Protocol, Sequence

from .model import NotificationIntent


class GuardianDirectory(Protocol):
    def guardian_user_ids(self, student_id: int, *, tx: Any = None) -> Sequence[int]:
        """User accounts of every guardian linked to the student."""

        raise NotImplementedError


class NotificationSink(Protocol):
    def enqueue(self, intents: Sequence[NotificationIntent], *, tx: Any = None) -> int:
        """Append intents; returns how many were written."""

        raise NotImplementedError
