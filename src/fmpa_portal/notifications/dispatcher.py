from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ..core.enums import NotificationKind
from ..sessions.model import Session

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Delivery channel (email, SMS, push). Implemented outside this core."""

    def dispatch(self, kind: NotificationKind, session: Session, person_ids: Sequence[int]) -> None:
        raise NotImplementedError


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Default channel: records the event in the application log."""

    def dispatch(self, kind: NotificationKind, session: Session, person_ids: Sequence[int]) -> None:
        logger.info(
            "notification %s session=%s start=%s recipients=%s",
            kind.value,
            session.session_id,
            session.start_at.isoformat(),
            list(person_ids),
        )


class NotificationPublisher:
    """Fire-and-forget wrapper: a failing channel never fails the committed command."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self._dispatcher = dispatcher

    def publish(self, kind: NotificationKind, session: Session, person_ids: Sequence[int]) -> bool:
        try:
            self._dispatcher.dispatch(kind, session, list(person_ids))
        except Exception:
            logger.exception("Could not dispatch %s for session %s", kind.value, session.session_id)
            return False
        return True
