from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.enums import Reason
from ..core.result import Failure, invalid


def require_non_empty(value: Optional[str], field_name: str) -> Optional[Failure]:
    if not value or not str(value).strip():
        return invalid(Reason.MISSING_FIELD, f"{field_name} is required", field=field_name)
    return None


def require_positive_int(value: Any, field_name: str) -> Optional[Failure]:
    try:
        ok = int(value) > 0 and not isinstance(value, bool)
    except (TypeError, ValueError):
        ok = False
    if not ok:
        return invalid(Reason.INVALID_VALUE, f"{field_name} must be a positive integer", field=field_name)
    return None


def require_in_band(value: int, field_name: str, *, minimum: int, maximum: int) -> Optional[Failure]:
    if value < minimum or value > maximum:
        return invalid(
            Reason.OUT_OF_BAND,
            f"{field_name} must be between {minimum} and {maximum}",
            field=field_name,
            minimum=minimum,
            maximum=maximum,
        )
    return None


def to_decimal(value: Any) -> Optional[Decimal]:
    """Best-effort Decimal conversion; None when the value is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def first_failure(*checks: Optional[Failure]) -> Optional[Failure]:
    for f in checks:
        if f is not None:
            return f
    return None
