from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import SessionStatus
from .model import NewSession, PageRequest, Session, SessionFilters, SessionPage


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int, *, for_update: bool = False) -> Optional[Session]:
        """Fetch a session; ``for_update`` locks the row for capacity/status changes."""

        raise NotImplementedError

    def create(self, new: NewSession, *, status: SessionStatus, created_at: datetime) -> int:
        """Insert a session with zero occupancy; returns session_id."""

        raise NotImplementedError

    def update(self, session_id: int, values: dict[str, Any]) -> None:
        """Write editable columns. ``occupied_seats`` is not accepted here."""

        raise NotImplementedError

    def set_occupied_seats(self, session_id: int, occupied: int) -> None:
        """Only the capacity ledger calls this, inside the locking transaction."""

        raise NotImplementedError

    def delete(self, session_id: int) -> bool:
        raise NotImplementedError

    def list_active_for_instructor(self, instructor_id: int) -> Sequence[Session]:
        """Non-cancelled sessions led by the instructor."""

        raise NotImplementedError

    def search(self, filters: SessionFilters, page: PageRequest) -> SessionPage:
        raise NotImplementedError

    def list_between(self, start: datetime, end: datetime, *, center_id: Optional[int] = None) -> Sequence[Session]:
        """Sessions starting inside ``[start, end]``, oldest first."""

        raise NotImplementedError
