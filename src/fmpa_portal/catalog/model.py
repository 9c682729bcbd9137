from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TrainingType:
    """Domain entity: a kind of mandatory refresher training (catalog entry)."""

    training_type_id: int
    code: str
    label: str
    duration_hours: Decimal
    hourly_rate: Decimal


@dataclass(frozen=True)
class Center:
    center_id: int
    code: str
    name: str
