from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from ..core.enums import MedicalStatus, Reason
from ..core.result import Failure, violation
from ..personnel.model import Person
from ..sessions.model import Session
from .model import Registration


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Deny:
    failure: Failure

    @property
    def reason(self) -> Reason:
        return self.failure.reason


Decision = Union[Allow, Deny]


class EligibilityChecker:
    """Decide whether a person may register into a session.

    Pure predicate, rules in order, first failure wins. A person without a
    medical-fitness record is allowed; only an explicit UNFIT status or an
    overdue exam blocks.
    """

    def check(
        self,
        person: Person,
        session: Session,
        existing: Optional[Registration],
        *,
        today: date,
    ) -> Decision:
        if not session.status.is_open:
            return Deny(
                violation(
                    Reason.SESSION_NOT_OPEN,
                    f"Session {session.session_id} is {session.status.value} and does not accept registrations",
                    status=session.status.value,
                )
            )

        if session.occupied_seats >= session.max_seats:
            return Deny(
                violation(
                    Reason.SESSION_FULL,
                    "No seat left in this session",
                    max_seats=session.max_seats,
                    occupied_seats=session.occupied_seats,
                )
            )

        if not person.is_active:
            return Deny(
                violation(Reason.PERSON_INACTIVE, f"{person.display_name} is not active", status=person.status.value)
            )

        medical = person.medical
        if medical is not None:
            if medical.status == MedicalStatus.UNFIT:
                return Deny(violation(Reason.MEDICAL_UNFIT, f"{person.display_name} is medically unfit"))
            if medical.next_exam_date is not None and medical.next_exam_date < today:
                return Deny(
                    violation(
                        Reason.MEDICAL_EXPIRED,
                        f"Medical fitness of {person.display_name} expired",
                        next_exam_date=medical.next_exam_date.isoformat(),
                    )
                )

        if existing is not None and existing.is_live:
            return Deny(
                violation(
                    Reason.ALREADY_REGISTERED,
                    f"{person.display_name} is already registered for this session",
                    registration_id=existing.registration_id,
                )
            )

        return Allow()
