from __future__ import annotations

from typing import Optional

from ..core.enums import Reason, SessionStatus
from ..core.result import Failure, violation
from .model import Session, SessionChanges

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PLANNED: frozenset({SessionStatus.CONFIRMED, SessionStatus.CANCELLED}),
    SessionStatus.CONFIRMED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in TRANSITIONS[current]


def is_terminal_noop(session: Session, changes: SessionChanges) -> bool:
    """Re-applying a terminal session's own status, and nothing else."""
    return session.status.is_terminal and changes.provided() == {"status": session.status}


def check_mutation(session: Session, changes: SessionChanges) -> Optional[Failure]:
    """Status lock first, then transition legality.

    A status equal to the current one is not a transition and is accepted.
    """
    if session.status.is_terminal:
        if is_terminal_noop(session, changes):
            return None
        return violation(
            Reason.SESSION_LOCKED,
            f"Session {session.session_id} is {session.status.value} and can no longer be modified",
            session_id=session.session_id,
            status=session.status.value,
        )

    target = changes.status
    if target is not None and target != session.status and not can_transition(session.status, target):
        return violation(
            Reason.INVALID_TRANSITION,
            f"Cannot move a session from {session.status.value} to {target.value}",
            current=session.status.value,
            target=target.value,
            allowed=sorted(s.value for s in TRANSITIONS[session.status]),
        )
    return None
