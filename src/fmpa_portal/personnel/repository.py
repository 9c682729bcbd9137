from __future__ import annotations

from typing import Optional, Protocol

from .model import Person


class PersonnelRepository(Protocol):
    def get_by_id(self, person_id: int, *, for_update: bool = False) -> Optional[Person]:
        """Fetch a person; ``for_update`` locks the row until the transaction ends.

        Locking the instructor row serializes concurrent assignments of that instructor.
        """

        raise NotImplementedError
