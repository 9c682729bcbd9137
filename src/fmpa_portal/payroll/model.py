from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..core.enums import RegistrationStatus
from ..personnel.model import Person
from ..sessions.model import Session


@dataclass(frozen=True)
class PayrollSourceRow:
    """Read-model for payroll export (optimised for the query)."""

    session_id: int
    session_start: datetime
    training_label: str
    payroll_code: Optional[str]
    hourly_rate: Decimal
    instructor_first_name: str
    instructor_last_name: str
    person_id: int
    registration_number: str
    last_name: str
    first_name: str
    grade: Optional[str]
    center_name: Optional[str]
    center_code: Optional[str]
    validated_hours: Decimal


@dataclass(frozen=True)
class PayrollRow:
    registration_number: str
    last_name: str
    first_name: str
    grade: str
    center_name: str
    center_code: str
    session_date: date
    training_label: str
    hours: Decimal
    hourly_rate: Decimal
    amount: Decimal
    instructor_name: str
    payroll_code: str

    def as_dict(self) -> dict:
        return {
            "registration_number": self.registration_number,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "grade": self.grade,
            "center_name": self.center_name,
            "center_code": self.center_code,
            "session_date": self.session_date.strftime("%Y-%m-%d"),
            "training_label": self.training_label,
            "hours": str(self.hours),
            "hourly_rate": str(self.hourly_rate),
            "amount": str(self.amount),
            "instructor_name": self.instructor_name,
            "payroll_code": self.payroll_code,
        }


@dataclass(frozen=True)
class PayrollExport:
    start: date
    end: date
    center_id: Optional[int]
    rows: Sequence[PayrollRow]
    total_amount: Decimal


@dataclass(frozen=True)
class SheetParticipant:
    registration_number: str
    last_name: str
    first_name: str
    center_name: str
    status: RegistrationStatus
    signed: bool
    validated_hours: Optional[Decimal] = None

    @property
    def present(self) -> bool:
        return self.status == RegistrationStatus.PRESENT


@dataclass(frozen=True)
class SessionSheet:
    """Per-session TTA sheet: header, instructor, live participants and counts."""

    session: Session
    training_label: str
    center_name: str
    instructor: Optional[Person]
    hourly_rate: Decimal
    participants: Sequence[SheetParticipant]
    generated_at: datetime

    @property
    def registered(self) -> int:
        return len(self.participants)

    @property
    def present(self) -> int:
        return sum(1 for p in self.participants if p.present)

    @property
    def absent(self) -> int:
        return self.registered - self.present

    @property
    def signatures(self) -> int:
        return sum(1 for p in self.participants if p.signed)


@dataclass(frozen=True)
class MonthlyReportRow:
    session_id: int
    session_date: date
    payroll_code: str
    training_label: str
    center_name: str
    instructor_name: str
    participants: int
    present: int
    hours: Decimal


@dataclass(frozen=True)
class MonthlyReport:
    month: str
    center_id: Optional[int]
    rows: Sequence[MonthlyReportRow]

    @property
    def total_participants(self) -> int:
        return sum(r.participants for r in self.rows)

    @property
    def total_present(self) -> int:
        return sum(r.present for r in self.rows)

    @property
    def total_hours(self) -> Decimal:
        return sum((r.hours for r in self.rows), Decimal("0"))

    @property
    def attendance_rate(self) -> int:
        """Present over registered, as a whole percentage (0 when nobody registered)."""
        if not self.total_participants:
            return 0
        rate = Decimal(self.total_present * 100) / Decimal(self.total_participants)
        return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class RenderedDocument:
    filename: str
    mimetype: str
    content: bytes
