from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import SessionStatus
from .model import Session
from .repository import SessionRepository


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open intervals: [09:00, 12:00) and [12:00, 14:00) do not overlap."""
    return a_start < b_end and a_end > b_start


class ConflictDetector:
    """Instructor double-booking check over non-cancelled sessions.

    Callers lock the instructor row first so concurrent assignments of the
    same instructor are evaluated one after the other.
    """

    def __init__(self, sessions: SessionRepository):
        self._sessions = sessions

    def find_conflict(
        self,
        instructor_id: int,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[int] = None,
    ) -> Optional[Session]:
        for existing in self._sessions.list_active_for_instructor(instructor_id):
            if existing.status == SessionStatus.CANCELLED:
                continue
            if exclude_session_id is not None and existing.session_id == exclude_session_id:
                continue
            if overlaps(existing.start_at, existing.end_at, start, end):
                return existing
        return None

    def has_conflict(
        self,
        instructor_id: int,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[int] = None,
    ) -> bool:
        return self.find_conflict(instructor_id, start, end, exclude_session_id) is not None
