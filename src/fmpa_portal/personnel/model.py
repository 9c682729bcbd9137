from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import MedicalStatus, PersonStatus


@dataclass(frozen=True)
class MedicalRecord:
    status: MedicalStatus
    next_exam_date: Optional[date] = None


@dataclass(frozen=True)
class Person:
    """Domain entity: a member of staff, as far as this core needs to know.

    Owned by personnel management; read-only here.
    """

    person_id: int
    registration_number: str
    last_name: str
    first_name: str
    status: PersonStatus
    grade: Optional[str] = None
    center_id: Optional[int] = None
    medical: Optional[MedicalRecord] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == PersonStatus.ACTIVE
