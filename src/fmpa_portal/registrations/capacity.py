from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..common.validators import require_in_band
from ..core.constants import DEFAULT_MAX_SEATS, DEFAULT_MIN_SEATS
from ..core.enums import Reason, RegistrationStatus
from ..core.result import Failure, Result, conflict, violation
from ..database.unit_of_work import Transaction
from ..sessions.model import Session
from .model import Registration
from .repository import DuplicateRegistration

logger = logging.getLogger(__name__)


class CapacityLedger:
    """Seat accounting for sessions.

    ``occupied_seats`` is never taken from caller input: every registration
    write goes through this class, inside the transaction that locked the
    session row, and is followed by a recount of live registrations.
    """

    def __init__(self, *, min_seats: int = DEFAULT_MIN_SEATS, max_seats: int = DEFAULT_MAX_SEATS):
        if min_seats < 1 or min_seats > max_seats:
            raise ValueError(f"Invalid seat band [{min_seats}, {max_seats}]")
        self.min_seats = int(min_seats)
        self.max_seats = int(max_seats)

    def check_band(self, seats: int) -> Optional[Failure]:
        return require_in_band(int(seats), "max_seats", minimum=self.min_seats, maximum=self.max_seats)

    def check_free_seat(self, session: Session) -> Optional[Failure]:
        if session.occupied_seats >= session.max_seats:
            return violation(
                Reason.SESSION_FULL,
                "No seat left in this session",
                max_seats=session.max_seats,
                occupied_seats=session.occupied_seats,
            )
        return None

    def resize(self, session: Session, new_max: int) -> Optional[Failure]:
        if int(new_max) < session.occupied_seats:
            return violation(
                Reason.CAPACITY_BELOW_OCCUPANCY,
                f"Cannot reduce seats below the {session.occupied_seats} current registrants",
                occupied_seats=session.occupied_seats,
                requested=int(new_max),
            )
        return self.check_band(new_max)

    def reserve(
        self,
        tx: Transaction,
        session: Session,
        person_id: int,
        *,
        now: datetime,
        existing: Optional[Registration] = None,
    ) -> Result[Registration]:
        """Take one seat and write the registration in the same transaction.

        A CANCELLED registration for the pair is reactivated instead of
        inserting a second row, keeping (session, person) unique.
        """
        full = self.check_free_seat(session)
        if full:
            return Result.fail(full)

        if existing is not None:
            registration = replace(
                existing,
                status=RegistrationStatus.REGISTERED,
                registered_at=now,
                signature=None,
                signed_at=None,
                validated_hours=None,
                payable_amount=None,
            )
            tx.registrations.update(registration)
        else:
            try:
                registration = tx.registrations.create(session_id=session.session_id, person_id=person_id, registered_at=now)
            except DuplicateRegistration:
                tx.rollback()
                return Result.fail(
                    conflict(
                        Reason.ALREADY_REGISTERED,
                        "A concurrent request registered this person first; refresh and retry",
                        session_id=session.session_id,
                        person_id=person_id,
                    )
                )

        self.sync(tx, session)
        return Result.success(registration)

    def release(self, tx: Transaction, session: Session, registration: Registration) -> int:
        """Delete the registration and give its seat back; returns the new occupancy."""
        if registration.is_live and session.occupied_seats <= 0:
            logger.warning("Seat counter of session %s was already at zero before release", session.session_id)
        tx.registrations.delete(registration.session_id, registration.person_id)
        return self.sync(tx, session)

    def change_status(
        self,
        tx: Transaction,
        session: Session,
        before: Registration,
        after: Registration,
    ) -> Optional[Failure]:
        """Persist a registration status change, moving a seat when liveness flips."""
        if not before.is_live and after.is_live:
            full = self.check_free_seat(session)
            if full:
                return full

        tx.registrations.update(after)
        if before.is_live != after.is_live:
            self.sync(tx, session)
        return None

    def sync(self, tx: Transaction, session: Session) -> int:
        occupied = tx.registrations.count_live(session.session_id)
        if occupied > session.max_seats:
            # Only reachable if something wrote registrations outside this ledger.
            raise RuntimeError(
                f"Session {session.session_id} would hold {occupied} registrants for {session.max_seats} seats"
            )
        tx.sessions.set_occupied_seats(session.session_id, occupied)
        return occupied
