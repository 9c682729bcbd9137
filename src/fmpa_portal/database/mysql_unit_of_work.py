from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ..catalog.mysql_catalog_repository import MySQLCatalogRepository
from ..personnel.mysql_personnel_repository import MySQLPersonnelRepository
from ..registrations.mysql_registration_repository import MySQLRegistrationRepository
from ..sessions.mysql_session_repository import MySQLSessionRepository
from .connection import DatabaseConnection
from .mysql_base import db_transaction
from .unit_of_work import UnitOfWork


class MySQLTransaction:
    def __init__(self, conn, cur):
        self._conn = conn
        self.sessions = MySQLSessionRepository(cur)
        self.registrations = MySQLRegistrationRepository(cur)
        self.personnel = MySQLPersonnelRepository(cur)
        self.catalog = MySQLCatalogRepository(cur)
        self.rolled_back = False

    def rollback(self) -> None:
        if not self.rolled_back:
            self._conn.rollback()
            self.rolled_back = True


class MySQLUnitOfWork(UnitOfWork):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[MySQLTransaction]:
        with db_transaction(self._conn_factory) as (conn, cur):
            yield MySQLTransaction(conn, cur)
