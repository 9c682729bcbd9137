from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator, Optional, Sequence

from ..catalog.model import Center, TrainingType
from ..common.datetime_utils import end_of_day, parse_month
from ..core.enums import PersonStatus, RegistrationStatus, SessionStatus
from ..payroll.model import PayrollSourceRow
from ..personnel.model import MedicalRecord, Person
from ..registrations.model import Registration
from ..registrations.repository import DuplicateRegistration
from ..sessions.model import NewSession, PageRequest, Session, SessionFilters, SessionPage
from .unit_of_work import UnitOfWork


class InMemoryDatabase(UnitOfWork):
    """Process-local store with the same transactional contract as MySQL.

    One re-entrant lock serializes transactions, which gives the row locks
    of the MySQL adapter for free. Entities are frozen dataclasses, so a
    shallow copy of each table is a full snapshot for rollback.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.training_types: dict[int, TrainingType] = {}
        self.centers: dict[int, Center] = {}
        self.personnel: dict[int, Person] = {}
        self.sessions: dict[int, Session] = {}
        self.registrations: dict[tuple[int, int], Registration] = {}
        self._ids = {"session": 0, "registration": 0}

    # -- seeding helpers (personnel and catalog are owned elsewhere) --

    def add_training_type(self, *, training_type_id: int, code: str, label: str, duration_hours, hourly_rate) -> TrainingType:
        tt = TrainingType(
            training_type_id=training_type_id,
            code=code,
            label=label,
            duration_hours=Decimal(str(duration_hours)),
            hourly_rate=Decimal(str(hourly_rate)),
        )
        self.training_types[training_type_id] = tt
        return tt

    def add_center(self, *, center_id: int, code: str, name: str) -> Center:
        center = Center(center_id=center_id, code=code, name=name)
        self.centers[center_id] = center
        return center

    def add_person(
        self,
        *,
        person_id: int,
        last_name: str,
        first_name: str = "",
        registration_number: Optional[str] = None,
        status: PersonStatus = PersonStatus.ACTIVE,
        grade: Optional[str] = None,
        center_id: Optional[int] = None,
        medical: Optional[MedicalRecord] = None,
    ) -> Person:
        person = Person(
            person_id=person_id,
            registration_number=registration_number or f"M{person_id:05d}",
            last_name=last_name,
            first_name=first_name,
            status=status,
            grade=grade,
            center_id=center_id,
            medical=medical,
        )
        self.personnel[person_id] = person
        return person

    def add_session(self, session: Session) -> Session:
        """Insert a session as-is, bypassing creation rules (fixtures, imports)."""
        self.sessions[session.session_id] = session
        self._ids["session"] = max(self._ids["session"], session.session_id)
        return session

    def add_registration(self, registration: Registration) -> Registration:
        self.registrations[(registration.session_id, registration.person_id)] = registration
        self._ids["registration"] = max(self._ids["registration"], registration.registration_id)
        return registration

    def next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # -- unit of work --

    def _snapshot(self) -> dict[str, Any]:
        return {
            "sessions": dict(self.sessions),
            "registrations": dict(self.registrations),
            "ids": dict(self._ids),
        }

    def _restore(self, snap: dict[str, Any]) -> None:
        self.sessions = snap["sessions"]
        self.registrations = snap["registrations"]
        self._ids = snap["ids"]

    @contextmanager
    def transaction(self) -> Iterator["InMemoryTransaction"]:
        with self._lock:
            snap = self._snapshot()
            tx = InMemoryTransaction(self)
            try:
                yield tx
            except Exception:
                self._restore(snap)
                raise
            if tx.rolled_back:
                self._restore(snap)


class InMemoryTransaction:
    def __init__(self, db: InMemoryDatabase):
        self.sessions = InMemorySessionRepository(db)
        self.registrations = InMemoryRegistrationRepository(db)
        self.personnel = InMemoryPersonnelRepository(db)
        self.catalog = InMemoryCatalogRepository(db)
        self.rolled_back = False

    def rollback(self) -> None:
        self.rolled_back = True


class InMemoryCatalogRepository:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def get_training_type(self, training_type_id: int) -> Optional[TrainingType]:
        return self._db.training_types.get(int(training_type_id))

    def get_center(self, center_id: int) -> Optional[Center]:
        return self._db.centers.get(int(center_id))


class InMemoryPersonnelRepository:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def get_by_id(self, person_id: int, *, for_update: bool = False) -> Optional[Person]:
        return self._db.personnel.get(int(person_id))


class InMemorySessionRepository:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def get_by_id(self, session_id: int, *, for_update: bool = False) -> Optional[Session]:
        return self._db.sessions.get(int(session_id))

    def create(self, new: NewSession, *, status: SessionStatus, created_at: datetime) -> int:
        session_id = self._db.next_id("session")
        self._db.sessions[session_id] = Session(
            session_id=session_id,
            training_type_id=new.training_type_id,
            center_id=new.center_id,
            instructor_id=new.instructor_id,
            start_at=new.start_at,
            end_at=new.end_at,
            location=new.location,
            max_seats=new.max_seats,
            occupied_seats=0,
            status=status,
            payroll_code=new.payroll_code,
            hourly_rate=new.hourly_rate,
            observations=new.observations,
            created_at=created_at,
        )
        return session_id

    def update(self, session_id: int, values: dict[str, Any]) -> None:
        if "occupied_seats" in values or "session_id" in values:
            raise ValueError("occupied_seats/session_id are not editable")
        current = self._db.sessions[int(session_id)]
        self._db.sessions[int(session_id)] = replace(current, **values)

    def set_occupied_seats(self, session_id: int, occupied: int) -> None:
        current = self._db.sessions[int(session_id)]
        self._db.sessions[int(session_id)] = replace(current, occupied_seats=int(occupied))

    def delete(self, session_id: int) -> bool:
        return self._db.sessions.pop(int(session_id), None) is not None

    def list_active_for_instructor(self, instructor_id: int) -> Sequence[Session]:
        items = [
            s
            for s in self._db.sessions.values()
            if s.instructor_id == int(instructor_id) and s.status != SessionStatus.CANCELLED
        ]
        return sorted(items, key=lambda s: s.start_at)

    def list_between(self, start: datetime, end: datetime, *, center_id: Optional[int] = None) -> Sequence[Session]:
        items = [
            s
            for s in self._db.sessions.values()
            if start <= s.start_at <= end and (center_id is None or s.center_id == int(center_id))
        ]
        return sorted(items, key=lambda s: (s.start_at, s.session_id))

    def search(self, filters: SessionFilters, page: PageRequest) -> SessionPage:
        lower: Optional[datetime] = None
        upper: Optional[datetime] = None
        if filters.date_from and filters.date_to:
            lower, upper = datetime.combine(filters.date_from, datetime.min.time()), end_of_day(filters.date_to)
        elif filters.month:
            first, last = parse_month(filters.month)
            lower, upper = datetime.combine(first, datetime.min.time()), end_of_day(last)

        def keep(s: Session) -> bool:
            if lower is not None and not (lower <= s.start_at <= upper):
                return False
            if filters.center_id is not None and s.center_id != filters.center_id:
                return False
            if filters.status is not None and s.status != filters.status:
                return False
            if filters.instructor_id is not None and s.instructor_id != filters.instructor_id:
                return False
            if filters.training_type_id is not None and s.training_type_id != filters.training_type_id:
                return False
            if filters.registration_status is not None and not any(
                r.status == filters.registration_status
                for (sid, _), r in self._db.registrations.items()
                if sid == s.session_id
            ):
                return False
            return True

        matched = sorted((s for s in self._db.sessions.values() if keep(s)), key=lambda s: s.session_id)
        matched.sort(key=lambda s: _sort_key(getattr(s, page.sort_by)), reverse=page.descending)
        window = matched[page.offset : page.offset + page.page_size]
        return SessionPage(items=window, total=len(matched), page=page.page, page_size=page.page_size)


def _sort_key(value: Any):
    # None sorts first, like MySQL ascending order.
    if isinstance(value, SessionStatus):
        value = value.value
    return (value is not None, value if value is not None else 0)


class InMemoryRegistrationRepository:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def get(self, session_id: int, person_id: int) -> Optional[Registration]:
        return self._db.registrations.get((int(session_id), int(person_id)))

    def list_for_session(self, session_id: int) -> Sequence[Registration]:
        items = [r for (sid, _), r in self._db.registrations.items() if sid == int(session_id)]
        return sorted(items, key=lambda r: (r.registered_at, r.registration_id))

    def count_live(self, session_id: int) -> int:
        return sum(1 for r in self.list_for_session(session_id) if r.is_live)

    def count_all(self, session_id: int) -> int:
        return len(self.list_for_session(session_id))

    def create(self, *, session_id: int, person_id: int, registered_at: datetime) -> Registration:
        key = (int(session_id), int(person_id))
        if key in self._db.registrations:
            raise DuplicateRegistration(f"{session_id}/{person_id}")
        reg = Registration(
            registration_id=self._db.next_id("registration"),
            session_id=int(session_id),
            person_id=int(person_id),
            status=RegistrationStatus.REGISTERED,
            registered_at=registered_at,
        )
        self._db.registrations[key] = reg
        return reg

    def update(self, registration: Registration) -> None:
        self._db.registrations[(registration.session_id, registration.person_id)] = registration

    def delete(self, session_id: int, person_id: int) -> bool:
        return self._db.registrations.pop((int(session_id), int(person_id)), None) is not None

    def list_payroll_sources(
        self,
        *,
        start: datetime,
        end: datetime,
        center_id: Optional[int] = None,
    ) -> Sequence[PayrollSourceRow]:
        out: list[PayrollSourceRow] = []
        for r in self._db.registrations.values():
            if r.status != RegistrationStatus.PRESENT or r.validated_hours is None:
                continue
            s = self._db.sessions.get(r.session_id)
            if not s or s.status != SessionStatus.COMPLETED or not (start <= s.start_at <= end):
                continue
            if center_id is not None and s.center_id != int(center_id):
                continue

            tt = self._db.training_types[s.training_type_id]
            instructor = self._db.personnel[s.instructor_id]
            person = self._db.personnel[r.person_id]
            center = self._db.centers.get(person.center_id) if person.center_id is not None else None
            out.append(
                PayrollSourceRow(
                    session_id=s.session_id,
                    session_start=s.start_at,
                    training_label=tt.label,
                    payroll_code=s.payroll_code,
                    hourly_rate=s.hourly_rate if s.hourly_rate is not None else tt.hourly_rate,
                    instructor_first_name=instructor.first_name,
                    instructor_last_name=instructor.last_name,
                    person_id=person.person_id,
                    registration_number=person.registration_number,
                    last_name=person.last_name,
                    first_name=person.first_name,
                    grade=person.grade,
                    center_name=center.name if center else None,
                    center_code=center.code if center else None,
                    validated_hours=r.validated_hours,
                )
            )
        out.sort(key=lambda row: (row.session_start, row.last_name))
        return out
