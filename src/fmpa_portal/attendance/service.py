from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.datetime_utils import now_local
from ..common.validators import decimal_places, to_decimal
from ..core.constants import DECIMAL_PLACES
from ..core.enums import Reason, RegistrationStatus, SessionStatus
from ..core.result import Result, invalid, not_found, violation
from ..database.unit_of_work import UnitOfWork
from ..payroll.calculator.base import PayrollCalculator
from ..registrations.capacity import CapacityLedger
from ..registrations.model import Registration

logger = logging.getLogger(__name__)


class AttendanceService:
    """Record attendance outcomes and the hours they pay."""

    def __init__(self, uow: UnitOfWork, ledger: CapacityLedger, calculator: PayrollCalculator):
        self._uow = uow
        self._ledger = ledger
        self._calculator = calculator

    def mark_attendance(
        self,
        session_id: int,
        person_id: int,
        status: RegistrationStatus,
        validated_hours: Any = None,
        signature: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> Result[Registration]:
        """Set a registration's attendance status.

        PRESENT with validated hours stores the payable amount
        (hours x effective rate, the session's override rate or else the
        training type's). Any other status clears it. PRESENT without hours
        keeps the hours recorded earlier, if any. Hours carry at most two decimals
        and never exceed the session length.
        """
        now = now_local(now)

        hours: Optional[Decimal] = None
        if validated_hours is not None and validated_hours != "":
            hours = to_decimal(validated_hours)
            if hours is None or hours <= 0:
                return Result.fail(
                    invalid(
                        Reason.INVALID_HOURS,
                        "validated_hours must be a positive number",
                        field="validated_hours",
                        value=str(validated_hours),
                    )
                )
            if decimal_places(hours) > DECIMAL_PLACES:
                return Result.fail(
                    invalid(
                        Reason.INVALID_HOURS,
                        f"validated_hours cannot have more than {DECIMAL_PLACES} decimals",
                        field="validated_hours",
                        value=str(validated_hours),
                        max_decimals=DECIMAL_PLACES,
                    )
                )

        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id, for_update=True)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            before = tx.registrations.get(session_id, person_id)
            if not before:
                return Result.fail(
                    not_found(
                        Reason.REGISTRATION_NOT_FOUND,
                        "Registration not found",
                        session_id=session_id,
                        person_id=person_id,
                    )
                )
            if session.status == SessionStatus.CANCELLED:
                return Result.fail(
                    violation(
                        Reason.SESSION_LOCKED,
                        "Attendance cannot be recorded on a cancelled session",
                        session_id=session_id,
                    )
                )

            limit = session.length_hours
            if hours is not None and hours > limit:
                return Result.fail(
                    invalid(
                        Reason.INVALID_HOURS,
                        "validated_hours cannot exceed the session length",
                        field="validated_hours",
                        value=str(hours),
                        max_hours=limit,
                    )
                )

            hours = hours if hours is not None else before.validated_hours
            payable: Optional[Decimal] = None
            if status == RegistrationStatus.PRESENT and hours is not None:
                rate = session.hourly_rate
                if rate is None:
                    training_type = tx.catalog.get_training_type(session.training_type_id)
                    rate = training_type.hourly_rate
                payable = self._calculator.amount(hours, rate)

            after = replace(before, status=status, validated_hours=hours, payable_amount=payable)
            if signature:
                after = replace(after, signature=signature, signed_at=now)

            failure = self._ledger.change_status(tx, session, before, after)
            if failure:
                logger.warning(
                    "Attendance of person %s in session %s rejected: %s",
                    person_id,
                    session_id,
                    failure.reason.value,
                )
                return Result.fail(failure)

        logger.info(
            "Attendance of person %s in session %s: %s (hours=%s, payable=%s)",
            person_id,
            session_id,
            status.value,
            hours,
            payable,
        )
        return Result.success(after)
