from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import end_of_day, parse_month
from ..core.enums import SessionStatus
from ..database.mysql_base import as_decimal, fetchall, fetchone
from .model import NewSession, PageRequest, Session, SessionFilters, SessionPage
from .repository import SessionRepository

_COLUMNS = """
    session_id, training_type_id, center_id, instructor_id, start_at, end_at, location,
    max_seats, occupied_seats, status, payroll_code, hourly_rate, observations, created_at
"""

_EDITABLE = {
    "training_type_id",
    "center_id",
    "instructor_id",
    "start_at",
    "end_at",
    "location",
    "max_seats",
    "payroll_code",
    "hourly_rate",
    "observations",
    "status",
}


def _to_session(r: dict) -> Session:
    return Session(
        session_id=int(r["session_id"]),
        training_type_id=int(r["training_type_id"]),
        center_id=int(r["center_id"]),
        instructor_id=int(r["instructor_id"]),
        start_at=r["start_at"],
        end_at=r["end_at"],
        location=r["location"],
        max_seats=int(r["max_seats"]),
        occupied_seats=int(r["occupied_seats"]),
        status=SessionStatus(r["status"]),
        payroll_code=r.get("payroll_code"),
        hourly_rate=as_decimal(r.get("hourly_rate")),
        observations=r.get("observations"),
        created_at=r.get("created_at"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, session_id: int, *, for_update: bool = False) -> Optional[Session]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(f"SELECT {_COLUMNS} FROM sessions WHERE session_id=%s{lock}", (int(session_id),))
        r = fetchone(self._cur)
        return _to_session(r) if r else None

    def create(self, new: NewSession, *, status: SessionStatus, created_at: datetime) -> int:
        self._cur.execute(
            """
            INSERT INTO sessions(
                training_type_id, center_id, instructor_id, start_at, end_at, location,
                max_seats, occupied_seats, status, payroll_code, hourly_rate, observations, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s,%s,%s,%s,%s)
            """,
            (
                new.training_type_id,
                new.center_id,
                new.instructor_id,
                new.start_at,
                new.end_at,
                new.location,
                new.max_seats,
                status.value,
                new.payroll_code,
                new.hourly_rate,
                new.observations,
                created_at,
            ),
        )
        return int(self._cur.lastrowid)

    def update(self, session_id: int, values: dict[str, Any]) -> None:
        unknown = set(values) - _EDITABLE
        if unknown:
            raise ValueError(f"Not editable: {sorted(unknown)}")
        if not values:
            return

        assignments = ", ".join(f"{col}=%s" for col in values)
        params = [v.value if isinstance(v, SessionStatus) else v for v in values.values()]
        params.append(int(session_id))
        self._cur.execute(f"UPDATE sessions SET {assignments} WHERE session_id=%s", tuple(params))

    def set_occupied_seats(self, session_id: int, occupied: int) -> None:
        self._cur.execute(
            "UPDATE sessions SET occupied_seats=%s WHERE session_id=%s",
            (int(occupied), int(session_id)),
        )

    def delete(self, session_id: int) -> bool:
        self._cur.execute("DELETE FROM sessions WHERE session_id=%s", (int(session_id),))
        return self._cur.rowcount > 0

    def list_active_for_instructor(self, instructor_id: int) -> Sequence[Session]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM sessions
            WHERE instructor_id=%s AND status <> 'CANCELLED'
            ORDER BY start_at ASC
            """,
            (int(instructor_id),),
        )
        return [_to_session(r) for r in fetchall(self._cur)]

    def list_between(self, start: datetime, end: datetime, *, center_id: Optional[int] = None) -> Sequence[Session]:
        sql = f"SELECT {_COLUMNS} FROM sessions WHERE start_at BETWEEN %s AND %s"
        params: list[object] = [start, end]
        if center_id is not None:
            sql += " AND center_id=%s"
            params.append(int(center_id))
        self._cur.execute(sql + " ORDER BY start_at ASC, session_id ASC", tuple(params))
        return [_to_session(r) for r in fetchall(self._cur)]

    def search(self, filters: SessionFilters, page: PageRequest) -> SessionPage:
        clauses: list[str] = []
        params: list[object] = []

        if filters.date_from and filters.date_to:
            clauses.append("start_at BETWEEN %s AND %s")
            params.extend([datetime.combine(filters.date_from, datetime.min.time()), end_of_day(filters.date_to)])
        elif filters.month:
            first, last = parse_month(filters.month)
            clauses.append("start_at BETWEEN %s AND %s")
            params.extend([datetime.combine(first, datetime.min.time()), end_of_day(last)])

        if filters.center_id is not None:
            clauses.append("center_id=%s")
            params.append(int(filters.center_id))
        if filters.status is not None:
            clauses.append("status=%s")
            params.append(filters.status.value)
        if filters.instructor_id is not None:
            clauses.append("instructor_id=%s")
            params.append(int(filters.instructor_id))
        if filters.training_type_id is not None:
            clauses.append("training_type_id=%s")
            params.append(int(filters.training_type_id))
        if filters.registration_status is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM registrations r WHERE r.session_id = sessions.session_id AND r.status=%s)"
            )
            params.append(filters.registration_status.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        # sort_by is whitelisted by the service before reaching SQL.
        order = f"{page.sort_by} {'DESC' if page.descending else 'ASC'}, session_id ASC"

        self._cur.execute(f"SELECT COUNT(*) AS total FROM sessions {where}", tuple(params))
        total = int((fetchone(self._cur) or {"total": 0})["total"])

        self._cur.execute(
            f"SELECT {_COLUMNS} FROM sessions {where} ORDER BY {order} LIMIT %s OFFSET %s",
            tuple(params) + (int(page.page_size), int(page.offset)),
        )
        items = [_to_session(r) for r in fetchall(self._cur)]
        return SessionPage(items=items, total=total, page=page.page, page_size=page.page_size)
