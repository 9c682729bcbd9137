from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from fmpa_portal.container import build_container
from fmpa_portal.core.enums import MedicalStatus, PersonStatus, SessionStatus
from fmpa_portal.database.memory import InMemoryDatabase
from fmpa_portal.personnel.model import MedicalRecord
from fmpa_portal.sessions.model import Session

NOW = datetime(2025, 3, 3, 8, 0, 0)

INSTRUCTOR = 100
OTHER_INSTRUCTOR = 101
INACTIVE_INSTRUCTOR = 102

INACTIVE_PERSON = 6
UNFIT_PERSON = 7
EXPIRED_PERSON = 8
UNRECORDED_PERSON = 9


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    def dispatch(self, kind, session, person_ids):
        self.events.append((kind, session.session_id, list(person_ids)))

    @property
    def kinds(self):
        return [k for k, _, _ in self.events]


class FailingDispatcher:
    def dispatch(self, kind, session, person_ids):
        raise ConnectionError("smtp down")


@pytest.fixture()
def db() -> InMemoryDatabase:
    db = InMemoryDatabase()
    db.add_training_type(
        training_type_id=1,
        code="FMPA-SAP",
        label="Secours a personnes",
        duration_hours=7,
        hourly_rate="12.50",
    )
    db.add_training_type(training_type_id=2, code="FMPA-INC", label="Incendie", duration_hours=3, hourly_rate="15")
    db.add_center(center_id=1, code="C01", name="Centre Nord")
    db.add_center(center_id=2, code="C02", name="Centre Sud")

    db.add_person(person_id=INSTRUCTOR, last_name="Martin", first_name="Paul", center_id=1)
    db.add_person(person_id=OTHER_INSTRUCTOR, last_name="Bernard", first_name="Lea", center_id=2)
    db.add_person(
        person_id=INACTIVE_INSTRUCTOR, last_name="Petit", first_name="Jean", status=PersonStatus.INACTIVE
    )

    fit = MedicalRecord(status=MedicalStatus.FIT, next_exam_date=date(2026, 1, 1))
    for pid, last_name in enumerate(["Durand", "Lefevre", "Moreau", "Roux", "Fournier"], start=1):
        db.add_person(
            person_id=pid,
            last_name=last_name,
            first_name=f"P{pid}",
            grade="SAP1",
            center_id=1 if pid % 2 else 2,
            medical=fit,
        )
    db.add_person(person_id=INACTIVE_PERSON, last_name="Garnier", status=PersonStatus.SUSPENDED, medical=fit)
    db.add_person(
        person_id=UNFIT_PERSON,
        last_name="Faure",
        medical=MedicalRecord(status=MedicalStatus.UNFIT, next_exam_date=date(2026, 1, 1)),
    )
    db.add_person(
        person_id=EXPIRED_PERSON,
        last_name="Andre",
        medical=MedicalRecord(status=MedicalStatus.FIT, next_exam_date=date(2025, 3, 2)),
    )
    db.add_person(person_id=UNRECORDED_PERSON, last_name="Mercier")
    return db


@pytest.fixture()
def make_session(db):
    def factory(**overrides) -> Session:
        start = overrides.pop("start_at", NOW + timedelta(days=7))
        values = dict(
            session_id=db.next_id("session"),
            training_type_id=1,
            center_id=1,
            instructor_id=INSTRUCTOR,
            start_at=start,
            end_at=overrides.pop("end_at", start + timedelta(hours=3)),
            location="Caserne Nord",
            max_seats=10,
            occupied_seats=0,
            status=SessionStatus.PLANNED,
        )
        values.update(overrides)
        return db.add_session(Session(**values))

    return factory


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def container(db, dispatcher):
    return build_container(uow=db, dispatcher=dispatcher)


def dec(value) -> Decimal:
    return Decimal(str(value))
