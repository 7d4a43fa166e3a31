"""
inkwell.services.notification_service — Notification Dispatch Contract
=======================================================================

The economy engine *emits* notifications (achievement unlocked, streak
milestone, challenge completed, tip received) but delivery — push, in-app
feed, e-mail — belongs to the notification collaborator.

The contract is a single method, ``notify(session, user_id, type, data)``.
The default :class:`OutboxNotifier` writes a ``notifications`` row inside
the caller's transaction, so a notification exists if and only if the
economy change that caused it committed.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.orm import Session

from inkwell.database.models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def notify(
        self,
        session: Session,
        user_id: int,
        notification_type: NotificationType,
        data: dict,
    ) -> None: ...


class OutboxNotifier:
    """Persist notifications to the ``notifications`` outbox table."""

    def notify(
        self,
        session: Session,
        user_id: int,
        notification_type: NotificationType,
        data: dict,
    ) -> None:
        session.add(Notification(
            user_id=user_id,
            type=notification_type.value,
            data=data,
        ))
        logger.debug("Queued %s notification for user %d", notification_type, user_id)


_OUTBOX = OutboxNotifier()


def default_notifier() -> NotificationDispatcher:
    return _OUTBOX
