from __future__ import annotations

import logging
from datetime import datetime

from ..common.datetime_utils import now_local
from ..core.enums import NotificationKind, Reason, SessionStatus
from ..core.result import Result, not_found, violation
from ..database.unit_of_work import UnitOfWork
from ..notifications.dispatcher import NotificationPublisher
from ..sessions.model import Session
from .capacity import CapacityLedger
from .eligibility import Deny, EligibilityChecker
from .model import Registration

logger = logging.getLogger(__name__)


class RegistrationService:
    def __init__(
        self,
        uow: UnitOfWork,
        eligibility: EligibilityChecker,
        ledger: CapacityLedger,
        notifier: NotificationPublisher,
    ):
        self._uow = uow
        self._eligibility = eligibility
        self._ledger = ledger
        self._notifier = notifier

    def register(self, session_id: int, person_id: int, *, now: datetime | None = None) -> Result[Registration]:
        """Register a person into a session.

        The session row is locked before the eligibility check so the seat
        count it sees cannot move until commit.
        """
        now = now_local(now)
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id, for_update=True)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            person = tx.personnel.get_by_id(person_id)
            if not person:
                return Result.fail(not_found(Reason.PERSON_NOT_FOUND, "Person not found", person_id=person_id))

            existing = tx.registrations.get(session_id, person_id)
            decision = self._eligibility.check(person, session, existing, today=now.date())
            if isinstance(decision, Deny):
                logger.warning(
                    "Registration of person %s into session %s denied: %s",
                    person_id,
                    session_id,
                    decision.reason.value,
                )
                return Result.fail(decision.failure)

            result = self._ledger.reserve(tx, session, person_id, now=now, existing=existing)
            if not result.ok:
                logger.warning(
                    "Registration of person %s into session %s lost: %s",
                    person_id,
                    session_id,
                    result.error.reason.value,
                )
                return result
            session = tx.sessions.get_by_id(session_id)

        logger.info("Person %s registered into session %s (%s/%s seats)", person_id, session_id, session.occupied_seats, session.max_seats)
        self._notifier.publish(NotificationKind.REGISTRATION_CREATED, session, [person_id])
        return result

    def withdraw(self, session_id: int, person_id: int) -> Result[Session]:
        """Remove a registration and free its seat; returns the session with its new occupancy."""
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id, for_update=True)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            registration = tx.registrations.get(session_id, person_id)
            if not registration:
                return Result.fail(
                    not_found(
                        Reason.REGISTRATION_NOT_FOUND,
                        "Registration not found",
                        session_id=session_id,
                        person_id=person_id,
                    )
                )
            if session.status == SessionStatus.COMPLETED:
                return Result.fail(
                    violation(
                        Reason.SESSION_LOCKED,
                        "Registrations of a completed session are kept for payroll",
                        session_id=session_id,
                        status=session.status.value,
                    )
                )

            self._ledger.release(tx, session, registration)
            session = tx.sessions.get_by_id(session_id)

        logger.info("Person %s withdrawn from session %s", person_id, session_id)
        return Result.success(session)
