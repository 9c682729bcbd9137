from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def amount(self, hours: Decimal, hourly_rate: Decimal) -> Decimal:
        raise NotImplementedError
