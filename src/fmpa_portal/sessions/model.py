from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import ROUND_DOWN, Decimal
from typing import Any, Optional, Sequence

from ..catalog.model import Center, TrainingType
from ..core.enums import RegistrationStatus, SessionStatus
from ..personnel.model import Person
from ..registrations.model import Registration


@dataclass(frozen=True)
class Session:
    """Domain entity: one scheduled occurrence of a training type.

    ``occupied_seats`` is derived from live registrations and is only ever
    written by the capacity ledger.
    """

    session_id: int
    training_type_id: int
    center_id: int
    instructor_id: int
    start_at: datetime
    end_at: datetime
    location: str
    max_seats: int
    occupied_seats: int
    status: SessionStatus
    payroll_code: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    observations: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def free_seats(self) -> int:
        return max(self.max_seats - self.occupied_seats, 0)

    @property
    def is_full(self) -> bool:
        return self.occupied_seats >= self.max_seats

    @property
    def length_hours(self) -> Decimal:
        """Scheduled length, truncated to the hundredth of an hour."""
        seconds = int((self.end_at - self.start_at).total_seconds())
        return (Decimal(seconds) / Decimal(3600)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)


@dataclass(frozen=True)
class NewSession:
    """Validated input for session creation."""

    training_type_id: int
    center_id: int
    instructor_id: int
    start_at: datetime
    end_at: datetime
    location: str
    max_seats: int
    payroll_code: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    observations: Optional[str] = None


@dataclass(frozen=True)
class SessionChanges:
    """Partial update; ``None`` means "leave unchanged"."""

    training_type_id: Optional[int] = None
    center_id: Optional[int] = None
    instructor_id: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    location: Optional[str] = None
    max_seats: Optional[int] = None
    payroll_code: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    observations: Optional[str] = None
    status: Optional[SessionStatus] = None

    def provided(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @property
    def touches_schedule(self) -> bool:
        return self.start_at is not None or self.end_at is not None or self.instructor_id is not None


@dataclass(frozen=True)
class SessionFilters:
    month: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    center_id: Optional[int] = None
    status: Optional[SessionStatus] = None
    instructor_id: Optional[int] = None
    training_type_id: Optional[int] = None
    # Sessions with at least one registration in this status.
    registration_status: Optional[RegistrationStatus] = None


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = 10
    sort_by: str = "start_at"
    descending: bool = True

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class SessionPage:
    items: Sequence[Session]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.page_size else 0

    @property
    def pagination(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_next_page": self.page < self.total_pages,
            "has_previous_page": self.page > 1,
        }


@dataclass(frozen=True)
class SessionDetail:
    """Read-model for GetSession: the session with its references resolved."""

    session: Session
    training_type: Optional[TrainingType]
    center: Optional[Center]
    instructor: Optional[Person]
    registrations: Sequence[Registration] = field(default_factory=tuple)
