from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import RegistrationStatus


@dataclass(frozen=True)
class Registration:
    """Domain entity: one person's enrollment in one session.

    Unique per (session_id, person_id).
    """

    registration_id: int
    session_id: int
    person_id: int
    status: RegistrationStatus
    registered_at: datetime
    signature: Optional[str] = None
    signed_at: Optional[datetime] = None
    validated_hours: Optional[Decimal] = None
    payable_amount: Optional[Decimal] = None

    @property
    def is_live(self) -> bool:
        return self.status.is_live
