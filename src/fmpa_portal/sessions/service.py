from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import now_local
from ..core.enums import NotificationKind, PersonStatus, Reason, SessionStatus
from ..core.result import Failure, Result, invalid, not_found, violation
from ..database.unit_of_work import Transaction, UnitOfWork
from ..notifications.dispatcher import NotificationPublisher
from ..registrations.capacity import CapacityLedger
from .conflicts import ConflictDetector
from .model import NewSession, PageRequest, Session, SessionChanges, SessionDetail, SessionFilters, SessionPage
from .state_machine import check_mutation, is_terminal_noop

logger = logging.getLogger(__name__)


class SessionService:
    """Use cases: create, update, delete and read training sessions."""

    def __init__(self, uow: UnitOfWork, ledger: CapacityLedger, notifier: NotificationPublisher):
        self._uow = uow
        self._ledger = ledger
        self._notifier = notifier

    # -- shared checks --

    @staticmethod
    def _check_window(start: datetime, end: datetime) -> Optional[Failure]:
        if start >= end:
            return invalid(
                Reason.INVALID_SCHEDULE,
                "The session must end after it starts",
                start_at=start.isoformat(),
                end_at=end.isoformat(),
            )
        return None

    @staticmethod
    def _check_instructor(tx: Transaction, instructor_id: int) -> Optional[Failure]:
        # Row lock: concurrent assignments of this instructor queue up here.
        instructor = tx.personnel.get_by_id(instructor_id, for_update=True)
        if not instructor:
            return not_found(Reason.INSTRUCTOR_NOT_FOUND, "Instructor not found", instructor_id=instructor_id)
        if instructor.status != PersonStatus.ACTIVE:
            return violation(
                Reason.INSTRUCTOR_INACTIVE,
                "The primary instructor must be ACTIVE",
                instructor_id=instructor_id,
                status=instructor.status.value,
            )
        return None

    @staticmethod
    def _check_conflict(
        tx: Transaction,
        instructor_id: int,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[int] = None,
    ) -> Optional[Failure]:
        clash = ConflictDetector(tx.sessions).find_conflict(instructor_id, start, end, exclude_session_id)
        if clash:
            return violation(
                Reason.INSTRUCTOR_CONFLICT,
                "The instructor is already assigned to another session over this period",
                instructor_id=instructor_id,
                conflicting_session_id=clash.session_id,
                conflicting_start_at=clash.start_at.isoformat(),
                conflicting_end_at=clash.end_at.isoformat(),
            )
        return None

    @staticmethod
    def _live_registrants(tx: Transaction, session_id: int) -> list[int]:
        return [r.person_id for r in tx.registrations.list_for_session(session_id) if r.is_live]

    # -- commands --

    def create(self, new: NewSession, *, now: datetime | None = None) -> Result[Session]:
        now = now_local(now)

        failure = self._check_window(new.start_at, new.end_at)
        if not failure and new.start_at < now:
            failure = invalid(Reason.START_IN_PAST, "A session cannot start in the past", start_at=new.start_at.isoformat())
        if not failure:
            failure = self._ledger.check_band(new.max_seats)
        if failure:
            logger.warning("Session creation rejected: %s", failure.reason.value)
            return Result.fail(failure)

        with self._uow.transaction() as tx:
            if not tx.catalog.get_training_type(new.training_type_id):
                failure = not_found(
                    Reason.TRAINING_TYPE_NOT_FOUND, "Training type not found", training_type_id=new.training_type_id
                )
            elif not tx.catalog.get_center(new.center_id):
                failure = not_found(Reason.CENTER_NOT_FOUND, "Center not found", center_id=new.center_id)
            else:
                failure = self._check_instructor(tx, new.instructor_id) or self._check_conflict(
                    tx, new.instructor_id, new.start_at, new.end_at
                )
            if failure:
                logger.warning("Session creation rejected: %s", failure.reason.value)
                return Result.fail(failure)

            session_id = tx.sessions.create(new, status=SessionStatus.PLANNED, created_at=now)
            session = tx.sessions.get_by_id(session_id)

        logger.info("Session %s created (instructor=%s, start=%s)", session_id, new.instructor_id, new.start_at)
        self._notifier.publish(NotificationKind.SESSION_CREATED, session, [])
        return Result.success(session)

    def update(self, session_id: int, changes: SessionChanges) -> Result[Session]:
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id, for_update=True)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))

            if is_terminal_noop(session, changes):
                return Result.success(session)

            failure = check_mutation(session, changes) or self._check_update(tx, session, changes)
            if failure:
                logger.warning("Update of session %s rejected: %s", session_id, failure.reason.value)
                return Result.fail(failure)

            values: dict[str, Any] = {k: v for k, v in changes.provided().items() if getattr(session, k) != v}
            tx.sessions.update(session_id, values)
            updated = tx.sessions.get_by_id(session_id)
            recipients = self._live_registrants(tx, session_id)

        logger.info("Session %s updated: %s", session_id, sorted(values))
        if updated.status == SessionStatus.CANCELLED and session.status != SessionStatus.CANCELLED:
            self._notifier.publish(NotificationKind.SESSION_CANCELLED, updated, recipients)
        elif values.keys() & {"start_at", "end_at", "location", "status"}:
            self._notifier.publish(NotificationKind.SESSION_UPDATED, updated, recipients)
        return Result.success(updated)

    def _check_update(self, tx: Transaction, session: Session, changes: SessionChanges) -> Optional[Failure]:
        start = changes.start_at or session.start_at
        end = changes.end_at or session.end_at
        failure = self._check_window(start, end)
        if failure:
            return failure

        if changes.max_seats is not None and changes.max_seats != session.max_seats:
            failure = self._ledger.resize(session, changes.max_seats)
            if failure:
                return failure

        if changes.training_type_id is not None and not tx.catalog.get_training_type(changes.training_type_id):
            return not_found(
                Reason.TRAINING_TYPE_NOT_FOUND, "Training type not found", training_type_id=changes.training_type_id
            )
        if changes.center_id is not None and not tx.catalog.get_center(changes.center_id):
            return not_found(Reason.CENTER_NOT_FOUND, "Center not found", center_id=changes.center_id)

        instructor_id = changes.instructor_id or session.instructor_id
        if changes.instructor_id is not None and changes.instructor_id != session.instructor_id:
            failure = self._check_instructor(tx, instructor_id)
            if failure:
                return failure

        if changes.touches_schedule and changes.status != SessionStatus.CANCELLED:
            if changes.instructor_id is None:
                tx.personnel.get_by_id(instructor_id, for_update=True)
            return self._check_conflict(tx, instructor_id, start, end, exclude_session_id=session.session_id)
        return None

    def delete(self, session_id: int) -> Result[Session]:
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id, for_update=True)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            if session.status == SessionStatus.COMPLETED:
                return Result.fail(
                    violation(Reason.SESSION_LOCKED, "A completed session cannot be deleted", session_id=session_id)
                )
            registrants = tx.registrations.count_all(session_id)
            if registrants:
                return Result.fail(
                    violation(
                        Reason.SESSION_HAS_REGISTRANTS,
                        "Withdraw every registrant before deleting the session",
                        session_id=session_id,
                        registrations=registrants,
                    )
                )
            tx.sessions.delete(session_id)

        logger.info("Session %s deleted", session_id)
        return Result.success(session)

    # -- queries --

    def get(self, session_id: int) -> Result[SessionDetail]:
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            return Result.success(
                SessionDetail(
                    session=session,
                    training_type=tx.catalog.get_training_type(session.training_type_id),
                    center=tx.catalog.get_center(session.center_id),
                    instructor=tx.personnel.get_by_id(session.instructor_id),
                    registrations=tuple(tx.registrations.list_for_session(session_id)),
                )
            )

    def list(self, filters: SessionFilters, page: PageRequest) -> Result[SessionPage]:
        with self._uow.transaction() as tx:
            result = tx.sessions.search(filters, page)
        logger.debug("Listed %s of %s sessions (page %s)", len(result.items), result.total, page.page)
        return Result.success(result)
