from __future__ import annotations

import logging
from typing import Protocol

from packages.shared.schemas.notification_v1 import NotificationTypeV1, NotificationV1
from services.api.app.db.models import Notification
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def emit(self, notification: NotificationV1) -> None: ...


class SqlNotificationSink:
    """Writes notifications inside a SAVEPOINT of the caller's session.

    A failed insert rolls back only the savepoint, so the order in the same session is
    untouched. Never raises.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def emit(self, notification: NotificationV1) -> None:
        try:
            with self._db.begin_nested():
                self._db.add(
                    Notification(
                        user_id=notification.user_id,
                        order_id=notification.order_id,
                        title=notification.title,
                        body=notification.body,
                        type=notification.type.value,
                        is_read=notification.is_read,
                    )
                )
        except Exception:
            logger.exception(
                "Error creating notification for order %s user %s",
                notification.order_id,
                notification.user_id,
            )


def order_placed_notification(*, user_id: str, order_id: int, online: bool) -> NotificationV1:
    if online:
        body = f"Complete your payment to confirm order #{order_id}."
    else:
        body = f"Your payment for order #{order_id} will be collected on delivery."

    return NotificationV1(
        user_id=user_id,
        order_id=order_id,
        title="Order Placed Successfully!",
        body=body,
        type=NotificationTypeV1.ORDER_PLACED,
    )
