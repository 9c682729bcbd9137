from __future__ import annotations

from typing import Optional

from ..database.mysql_base import as_decimal, fetchone
from .model import Center, TrainingType
from .repository import CatalogRepository


class MySQLCatalogRepository(CatalogRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_training_type(self, training_type_id: int) -> Optional[TrainingType]:
        self._cur.execute(
            """
            SELECT training_type_id, code, label, duration_hours, hourly_rate
            FROM training_types
            WHERE training_type_id=%s
            """,
            (int(training_type_id),),
        )
        r = fetchone(self._cur)
        if not r:
            return None
        return TrainingType(
            training_type_id=int(r["training_type_id"]),
            code=r["code"],
            label=r["label"],
            duration_hours=as_decimal(r["duration_hours"]),
            hourly_rate=as_decimal(r["hourly_rate"]),
        )

    def get_center(self, center_id: int) -> Optional[Center]:
        self._cur.execute("SELECT center_id, code, name FROM centers WHERE center_id=%s", (int(center_id),))
        r = fetchone(self._cur)
        if not r:
            return None
        return Center(center_id=int(r["center_id"]), code=r["code"], name=r["name"])
