from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_transaction(conn_factory: DatabaseConnection) -> Iterator[tuple[Any, Any]]:
    """Open a connection and an explicit transaction; yield (conn, dict cursor).

    Commits on normal exit, rolls back on any exception.
    """

    conn = conn_factory.connect()
    try:
        conn.start_transaction(isolation_level="READ COMMITTED")
        cur = conn.cursor(dictionary=True)
        try:
            yield conn, cur
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def as_decimal(value: Any) -> Optional[Decimal]:
    """mysql-connector returns DECIMAL as Decimal, FLOAT/DOUBLE as float."""

    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
