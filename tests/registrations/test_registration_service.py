from __future__ import annotations

import threading
from dataclasses import replace

from conftest import NOW

from fmpa_portal.core.enums import ErrorKind, NotificationKind, Reason, RegistrationStatus, SessionStatus
from fmpa_portal.registrations.model import Registration


def live_count(db, session_id):
    return sum(1 for (sid, _), r in db.registrations.items() if sid == session_id and r.is_live)


def occupied(db, session_id):
    return db.sessions[session_id].occupied_seats


def test_seat_sequence_with_two_seats(container, db, make_session):
    session = make_session(max_seats=2)
    sid = session.session_id
    service = container.registration_service

    assert service.register(sid, 1, now=NOW).ok
    assert occupied(db, sid) == 1
    assert service.register(sid, 2, now=NOW).ok
    assert occupied(db, sid) == 2

    full = service.register(sid, 3, now=NOW)
    assert full.error.reason == Reason.SESSION_FULL
    assert full.error.kind == ErrorKind.BUSINESS_RULE

    withdrawn = service.withdraw(sid, 1)
    assert withdrawn.value.occupied_seats == 1

    assert service.register(sid, 3, now=NOW).ok
    assert occupied(db, sid) == 2 == live_count(db, sid)


def test_register_creates_a_registered_row_and_notifies(container, db, dispatcher, make_session):
    session = make_session()

    registration = container.registration_service.register(session.session_id, 1, now=NOW).value

    assert registration.status == RegistrationStatus.REGISTERED
    assert registration.registered_at == NOW
    assert dispatcher.events == [(NotificationKind.REGISTRATION_CREATED, session.session_id, [1])]


def test_sequential_duplicate_is_rejected_once(container, db, make_session):
    session = make_session()
    service = container.registration_service

    assert service.register(session.session_id, 1, now=NOW).ok
    second = service.register(session.session_id, 1, now=NOW)

    assert second.error.reason == Reason.ALREADY_REGISTERED
    assert live_count(db, session.session_id) == 1
    assert occupied(db, session.session_id) == 1


def test_cancelled_registration_is_reactivated(container, db, make_session):
    session = make_session()
    db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=1,
            status=RegistrationStatus.CANCELLED,
            registered_at=NOW,
        )
    )

    result = container.registration_service.register(session.session_id, 1, now=NOW)

    assert result.value.status == RegistrationStatus.REGISTERED
    assert len(db.registrations) == 1
    assert occupied(db, session.session_id) == 1


def test_register_unknown_session_or_person(container, make_session):
    session = make_session()
    service = container.registration_service

    assert service.register(404, 1, now=NOW).error.reason == Reason.SESSION_NOT_FOUND
    assert service.register(session.session_id, 404, now=NOW).error.reason == Reason.PERSON_NOT_FOUND


def test_denied_registration_writes_nothing(container, db, dispatcher, make_session):
    session = make_session(status=SessionStatus.IN_PROGRESS)

    result = container.registration_service.register(session.session_id, 1, now=NOW)

    assert result.error.reason == Reason.SESSION_NOT_OPEN
    assert db.registrations == {}
    assert dispatcher.events == []


def test_withdraw_unknown_registration(container, make_session):
    session = make_session()
    assert container.registration_service.withdraw(session.session_id, 1).error.reason == Reason.REGISTRATION_NOT_FOUND


def test_withdraw_is_refused_on_completed_session(container, db, make_session):
    session = make_session()
    container.registration_service.register(session.session_id, 1, now=NOW)
    db.sessions[session.session_id] = replace(db.sessions[session.session_id], status=SessionStatus.COMPLETED)

    result = container.registration_service.withdraw(session.session_id, 1)

    assert result.error.reason == Reason.SESSION_LOCKED
    assert occupied(db, session.session_id) == 1


def test_withdraw_cancelled_registration_keeps_count(container, db, make_session):
    session = make_session()
    container.registration_service.register(session.session_id, 1, now=NOW)
    db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=2,
            status=RegistrationStatus.CANCELLED,
            registered_at=NOW,
        )
    )

    result = container.registration_service.withdraw(session.session_id, 2)

    assert result.value.occupied_seats == 1


def _run_concurrently(target, args_list):
    barrier = threading.Barrier(len(args_list))
    results = [None] * len(args_list)

    def worker(i, args):
        barrier.wait()
        results[i] = target(*args)

    threads = [threading.Thread(target=worker, args=(i, a)) for i, a in enumerate(args_list)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_concurrent_registrations_never_oversell(container, db, make_session):
    session = make_session(max_seats=5)
    service = container.registration_service
    people = [1, 2, 3, 4, 5, 9, 100, 101]

    results = _run_concurrently(lambda pid: service.register(session.session_id, pid, now=NOW), [(p,) for p in people])

    accepted = [r for r in results if r.ok]
    rejected = [r for r in results if not r.ok]
    assert len(accepted) == 5
    assert {r.error.reason for r in rejected} == {Reason.SESSION_FULL}
    assert occupied(db, session.session_id) == 5 == live_count(db, session.session_id)


def test_concurrent_duplicate_yields_one_registration(container, db, make_session):
    session = make_session()
    service = container.registration_service

    results = _run_concurrently(lambda pid: service.register(session.session_id, pid, now=NOW), [(1,), (1,), (1,)])

    assert sum(1 for r in results if r.ok) == 1
    assert all(r.error.reason == Reason.ALREADY_REGISTERED for r in results if not r.ok)
    assert live_count(db, session.session_id) == 1 == occupied(db, session.session_id)


def test_concurrent_register_and_withdraw_keep_counter_exact(container, db, make_session):
    session = make_session(max_seats=10)
    service = container.registration_service
    for pid in (1, 2, 3):
        service.register(session.session_id, pid, now=NOW)

    calls = [("w", 1), ("w", 2), ("r", 4), ("r", 5), ("r", 9)]
    _run_concurrently(
        lambda op, pid: service.withdraw(session.session_id, pid)
        if op == "w"
        else service.register(session.session_id, pid, now=NOW),
        calls,
    )

    assert occupied(db, session.session_id) == 4 == live_count(db, session.session_id)
