from __future__ import annotations

from typing import Optional, Protocol

from .model import Center, TrainingType


class CatalogRepository(Protocol):
    def get_training_type(self, training_type_id: int) -> Optional[TrainingType]:
        raise NotImplementedError

    def get_center(self, center_id: int) -> Optional[Center]:
        raise NotImplementedError
