from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import RegistrationStatus
from ..database.mysql_base import as_decimal, fetchall, fetchone
from ..payroll.model import PayrollSourceRow
from .model import Registration
from .repository import DuplicateRegistration, RegistrationRepository

_COLUMNS = """
    registration_id, session_id, person_id, status, registered_at,
    signature, signed_at, validated_hours, payable_amount
"""


def _to_registration(r: dict) -> Registration:
    return Registration(
        registration_id=int(r["registration_id"]),
        session_id=int(r["session_id"]),
        person_id=int(r["person_id"]),
        status=RegistrationStatus(r["status"]),
        registered_at=r["registered_at"],
        signature=r.get("signature"),
        signed_at=r.get("signed_at"),
        validated_hours=as_decimal(r.get("validated_hours")),
        payable_amount=as_decimal(r.get("payable_amount")),
    )


class MySQLRegistrationRepository(RegistrationRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, session_id: int, person_id: int) -> Optional[Registration]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM registrations WHERE session_id=%s AND person_id=%s",
            (int(session_id), int(person_id)),
        )
        r = fetchone(self._cur)
        return _to_registration(r) if r else None

    def list_for_session(self, session_id: int) -> Sequence[Registration]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM registrations WHERE session_id=%s ORDER BY registered_at ASC",
            (int(session_id),),
        )
        return [_to_registration(r) for r in fetchall(self._cur)]

    def count_live(self, session_id: int) -> int:
        self._cur.execute(
            "SELECT COUNT(*) AS n FROM registrations WHERE session_id=%s AND status <> 'CANCELLED'",
            (int(session_id),),
        )
        return int(fetchone(self._cur)["n"])

    def count_all(self, session_id: int) -> int:
        self._cur.execute("SELECT COUNT(*) AS n FROM registrations WHERE session_id=%s", (int(session_id),))
        return int(fetchone(self._cur)["n"])

    def create(self, *, session_id: int, person_id: int, registered_at: datetime) -> Registration:
        try:
            self._cur.execute(
                """
                INSERT INTO registrations(session_id, person_id, status, registered_at)
                VALUES(%s,%s,%s,%s)
                """,
                (int(session_id), int(person_id), RegistrationStatus.REGISTERED.value, registered_at),
            )
        except mysql.connector.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateRegistration(f"{session_id}/{person_id}") from e
            raise
        return Registration(
            registration_id=int(self._cur.lastrowid),
            session_id=int(session_id),
            person_id=int(person_id),
            status=RegistrationStatus.REGISTERED,
            registered_at=registered_at,
        )

    def update(self, registration: Registration) -> None:
        self._cur.execute(
            """
            UPDATE registrations
            SET status=%s, registered_at=%s, signature=%s, signed_at=%s,
                validated_hours=%s, payable_amount=%s
            WHERE registration_id=%s
            """,
            (
                registration.status.value,
                registration.registered_at,
                registration.signature,
                registration.signed_at,
                registration.validated_hours,
                registration.payable_amount,
                registration.registration_id,
            ),
        )

    def delete(self, session_id: int, person_id: int) -> bool:
        self._cur.execute(
            "DELETE FROM registrations WHERE session_id=%s AND person_id=%s",
            (int(session_id), int(person_id)),
        )
        return self._cur.rowcount > 0

    def list_payroll_sources(
        self,
        *,
        start: datetime,
        end: datetime,
        center_id: Optional[int] = None,
    ) -> Sequence[PayrollSourceRow]:
        clauses = [
            "s.start_at BETWEEN %s AND %s",
            "s.status = 'COMPLETED'",
            "r.status = 'PRESENT'",
            "r.validated_hours IS NOT NULL",
        ]
        params: list[object] = [start, end]
        if center_id is not None:
            clauses.append("s.center_id=%s")
            params.append(int(center_id))

        where = " AND ".join(clauses)

        self._cur.execute(
            f"""
            SELECT
                s.session_id, s.start_at, s.payroll_code,
                COALESCE(s.hourly_rate, t.hourly_rate) AS hourly_rate,
                t.label AS training_label,
                i.first_name AS instructor_first_name, i.last_name AS instructor_last_name,
                p.person_id, p.registration_number, p.last_name, p.first_name, p.grade,
                c.name AS center_name, c.code AS center_code,
                r.validated_hours
            FROM registrations r
            JOIN sessions s ON s.session_id = r.session_id
            JOIN training_types t ON t.training_type_id = s.training_type_id
            JOIN personnel i ON i.person_id = s.instructor_id
            JOIN personnel p ON p.person_id = r.person_id
            LEFT JOIN centers c ON c.center_id = p.center_id
            WHERE {where}
            ORDER BY s.start_at ASC, p.last_name ASC
            """,
            tuple(params),
        )
        return [
            PayrollSourceRow(
                session_id=int(r["session_id"]),
                session_start=r["start_at"],
                training_label=r["training_label"],
                payroll_code=r.get("payroll_code"),
                hourly_rate=as_decimal(r["hourly_rate"]),
                instructor_first_name=r["instructor_first_name"],
                instructor_last_name=r["instructor_last_name"],
                person_id=int(r["person_id"]),
                registration_number=r["registration_number"],
                last_name=r["last_name"],
                first_name=r["first_name"],
                grade=r.get("grade"),
                center_name=r.get("center_name"),
                center_code=r.get("center_code"),
                validated_hours=as_decimal(r["validated_hours"]),
            )
            for r in fetchall(self._cur)
        ]
