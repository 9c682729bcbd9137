from __future__ import annotations

from typing import Optional

from ..core.enums import MedicalStatus, PersonStatus
from ..database.mysql_base import fetchone
from .model import MedicalRecord, Person
from .repository import PersonnelRepository


class MySQLPersonnelRepository(PersonnelRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, person_id: int, *, for_update: bool = False) -> Optional[Person]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(
            f"""
            SELECT person_id, registration_number, last_name, first_name, grade, center_id,
                   status, medical_status, medical_next_exam
            FROM personnel
            WHERE person_id=%s{lock}
            """,
            (int(person_id),),
        )
        r = fetchone(self._cur)
        if not r:
            return None

        medical = None
        if r.get("medical_status"):
            medical = MedicalRecord(
                status=MedicalStatus(r["medical_status"]),
                next_exam_date=r.get("medical_next_exam"),
            )

        return Person(
            person_id=int(r["person_id"]),
            registration_number=r["registration_number"],
            last_name=r["last_name"],
            first_name=r["first_name"],
            status=PersonStatus(r["status"]),
            grade=r.get("grade"),
            center_id=int(r["center_id"]) if r.get("center_id") is not None else None,
            medical=medical,
        )
