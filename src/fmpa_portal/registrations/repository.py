from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..payroll.model import PayrollSourceRow
from .model import Registration


class DuplicateRegistration(Exception):
    """Raised by a repository when the (session, person) unique key is already taken."""


class RegistrationRepository(Protocol):
    def get(self, session_id: int, person_id: int) -> Optional[Registration]:
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[Registration]:
        raise NotImplementedError

    def count_live(self, session_id: int) -> int:
        """Registrations whose status is not CANCELLED."""

        raise NotImplementedError

    def count_all(self, session_id: int) -> int:
        raise NotImplementedError

    def create(self, *, session_id: int, person_id: int, registered_at: datetime) -> Registration:
        """Insert a REGISTERED row.

        Raises DuplicateRegistration when the pair already exists.
        """

        raise NotImplementedError

    def update(self, registration: Registration) -> None:
        """Persist status/attendance fields of an existing registration."""

        raise NotImplementedError

    def delete(self, session_id: int, person_id: int) -> bool:
        raise NotImplementedError

    def list_payroll_sources(
        self,
        *,
        start: datetime,
        end: datetime,
        center_id: Optional[int] = None,
    ) -> Sequence[PayrollSourceRow]:
        """PRESENT registrations with validated hours on COMPLETED sessions starting in [start, end]."""

        raise NotImplementedError
