from __future__ import annotations

import logging
import re
from contextlib import closing
from pathlib import Path
from typing import Iterator

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Quoted literals, line comments, separators, everything else.
_TOKEN = re.compile(r"""'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|--[^\n]*|;|[^;'"-]+|-""", re.S)
_DATABASE_STMT = re.compile(r"^(CREATE\s+DATABASE|USE)\b", re.I)


def split_statements(sql: str) -> Iterator[str]:
    """Yield the statements of ``sql``; semicolons inside literals and ``--`` comments do not split."""
    pending: list[str] = []
    for token in _TOKEN.findall(sql):
        if token.startswith("--"):
            continue
        if token != ";":
            pending.append(token)
            continue
        stmt = "".join(pending).strip()
        pending = []
        if stmt:
            yield stmt
    stmt = "".join(pending).strip()
    if stmt:
        yield stmt


def ensure_database_exists(db: DatabaseConnection) -> None:
    name = db.config.database
    with closing(db.connect(with_database=False)) as conn:
        conn.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()


def apply_schema(db: DatabaseConnection, *, schema_path: str | Path) -> int:
    """Create the database if needed and run every statement of ``schema_path``.

    CREATE DATABASE / USE lines in the script are skipped: the target database
    comes from DB_CONFIG. The schema only uses CREATE ... IF NOT EXISTS, so this
    is safe to rerun. Returns the number of executed statements.
    """
    ensure_database_exists(db)
    statements = [
        s
        for s in split_statements(Path(schema_path).read_text(encoding="utf-8"))
        if not _DATABASE_STMT.match(s)
    ]

    with closing(db.connect()) as conn:
        cursor = conn.cursor()
        for stmt in statements:
            cursor.execute(stmt)
        conn.commit()
    logger.info("Schema %s applied to %s (%s statements)", schema_path, db.config.database, len(statements))
    return len(statements)


def list_tables(db: DatabaseConnection) -> list[str]:
    with closing(db.connect()) as conn:
        cursor = conn.cursor()
        cursor.execute("SHOW TABLES")
        return sorted(row[0] for row in cursor.fetchall())
