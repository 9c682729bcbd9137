from __future__ import annotations

from typing import ContextManager, Protocol

from ..catalog.repository import CatalogRepository
from ..personnel.repository import PersonnelRepository
from ..registrations.repository import RegistrationRepository
from ..sessions.repository import SessionRepository


class Transaction(Protocol):
    """Repositories bound to one open transaction."""

    sessions: SessionRepository
    registrations: RegistrationRepository
    personnel: PersonnelRepository
    catalog: CatalogRepository

    def rollback(self) -> None:
        """Discard every write of this transaction when the block exits."""

        raise NotImplementedError


class UnitOfWork(Protocol):
    def transaction(self) -> ContextManager[Transaction]:
        """Begin; commit on normal exit, roll back on exception or after ``rollback()``."""

        raise NotImplementedError
