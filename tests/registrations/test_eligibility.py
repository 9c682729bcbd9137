from __future__ import annotations

from datetime import date

import pytest

from conftest import EXPIRED_PERSON, INACTIVE_PERSON, NOW, UNFIT_PERSON, UNRECORDED_PERSON

from fmpa_portal.core.enums import Reason, RegistrationStatus, SessionStatus
from fmpa_portal.registrations.eligibility import Allow, Deny, EligibilityChecker
from fmpa_portal.registrations.model import Registration

TODAY = NOW.date()


def registration(status: RegistrationStatus) -> Registration:
    return Registration(registration_id=1, session_id=1, person_id=1, status=status, registered_at=NOW)


@pytest.fixture()
def checker() -> EligibilityChecker:
    return EligibilityChecker()


def test_active_fit_person_is_allowed(checker, db, make_session):
    assert isinstance(checker.check(db.personnel[1], make_session(), None, today=TODAY), Allow)


@pytest.mark.parametrize("status", [SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, SessionStatus.CANCELLED])
def test_closed_session_is_denied(checker, db, make_session, status):
    decision = checker.check(db.personnel[1], make_session(status=status), None, today=TODAY)
    assert isinstance(decision, Deny)
    assert decision.reason == Reason.SESSION_NOT_OPEN


def test_confirmed_session_still_accepts(checker, db, make_session):
    assert isinstance(checker.check(db.personnel[1], make_session(status=SessionStatus.CONFIRMED), None, today=TODAY), Allow)


def test_full_session_is_denied(checker, db, make_session):
    decision = checker.check(db.personnel[1], make_session(max_seats=5, occupied_seats=5), None, today=TODAY)
    assert decision.reason == Reason.SESSION_FULL


@pytest.mark.parametrize(
    "person_id,reason",
    [
        (INACTIVE_PERSON, Reason.PERSON_INACTIVE),
        (UNFIT_PERSON, Reason.MEDICAL_UNFIT),
        (EXPIRED_PERSON, Reason.MEDICAL_EXPIRED),
    ],
)
def test_person_rules(checker, db, make_session, person_id, reason):
    decision = checker.check(db.personnel[person_id], make_session(), None, today=TODAY)
    assert decision.reason == reason


def test_missing_medical_record_is_permissive(checker, db, make_session):
    assert isinstance(checker.check(db.personnel[UNRECORDED_PERSON], make_session(), None, today=TODAY), Allow)


def test_exam_due_today_is_still_valid(checker, db, make_session):
    assert isinstance(checker.check(db.personnel[EXPIRED_PERSON], make_session(), None, today=date(2025, 3, 2)), Allow)


def test_live_registration_is_denied_but_cancelled_one_is_not(checker, db, make_session):
    session = make_session()
    person = db.personnel[1]

    assert checker.check(person, session, registration(RegistrationStatus.CONFIRMED), today=TODAY).reason == Reason.ALREADY_REGISTERED
    assert isinstance(checker.check(person, session, registration(RegistrationStatus.CANCELLED), today=TODAY), Allow)


def test_first_failing_rule_wins(checker, db, make_session):
    session = make_session(status=SessionStatus.CANCELLED, max_seats=5, occupied_seats=5)

    decision = checker.check(db.personnel[UNFIT_PERSON], session, registration(RegistrationStatus.REGISTERED), today=TODAY)

    assert decision.reason == Reason.SESSION_NOT_OPEN
