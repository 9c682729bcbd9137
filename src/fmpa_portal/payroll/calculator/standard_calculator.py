from __future__ import annotations

from decimal import Decimal

from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: validated hours x hourly rate, exact (no rounding here)."""

    def amount(self, hours: Decimal, hourly_rate: Decimal) -> Decimal:
        return Decimal(hours) * Decimal(hourly_rate)
