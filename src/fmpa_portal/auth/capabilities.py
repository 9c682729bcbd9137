from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..core.enums import Permission, Role

logger = logging.getLogger(__name__)

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.USER: frozenset({Permission.SESSION_READ, Permission.REGISTRATION_SELF}),
    Role.INSTRUCTOR: frozenset(
        {
            Permission.SESSION_READ,
            Permission.REGISTRATION_SELF,
            Permission.ATTENDANCE_MARK,
        }
    ),
    Role.CENTER_CHIEF: frozenset(
        {
            Permission.SESSION_READ,
            Permission.SESSION_WRITE,
            Permission.REGISTRATION_SELF,
            Permission.REGISTRATION_MANAGE,
            Permission.ATTENDANCE_MARK,
            Permission.PAYROLL_EXPORT,
        }
    ),
    Role.ADMIN: frozenset(Permission),
}


@dataclass(frozen=True)
class Caller:
    """An authenticated caller with its resolved capability set."""

    person_id: int
    role: Role
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    def can(self, permission: Permission) -> bool:
        return permission in self.permissions

    def can_act_for(self, person_id: int) -> bool:
        """Register/withdraw someone: yourself with REGISTRATION_SELF, anyone with REGISTRATION_MANAGE."""
        if self.can(Permission.REGISTRATION_MANAGE):
            return True
        return self.can(Permission.REGISTRATION_SELF) and int(person_id) == self.person_id


def _grants(raw: Any) -> Iterable[str]:
    """Accepts a list of keys, a {key: bool} mapping, or their JSON text."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed permission blob")
            return []
    if isinstance(raw, dict):
        return [str(k) for k, v in raw.items() if v]
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [str(k) for k in raw]
    return []


def resolve_caller(user_id: Any, role: Any, raw_permissions: Any = None) -> Optional[Caller]:
    """Resolve role + permission blob into a Caller; None when unauthenticated.

    Unknown role names fall back to USER, unknown permission keys are dropped.
    """
    if user_id is None:
        return None
    try:
        person_id = int(user_id)
    except (TypeError, ValueError):
        return None

    try:
        resolved_role = Role(str(role).upper())
    except ValueError:
        resolved_role = Role.USER

    granted = set(ROLE_PERMISSIONS[resolved_role])
    known = {p.value: p for p in Permission}
    known.update({p.name: p for p in Permission})
    for key in _grants(raw_permissions):
        if key in known:
            granted.add(known[key])
    return Caller(person_id=person_id, role=resolved_role, permissions=frozenset(granted))
