"""
Notification Fanout

Live delivery of an already persisted notification to every session of its
receiver. An offline receiver is a silent no-op; the row stays queryable.
"""
from typing import Any, Dict, Optional

from app.core.logging import get_logger
from app.models.notification import Notification
from app.realtime.hub import RealtimeHub
from app.schemas.notification import NotificationOut, NotificationSender

logger = get_logger(__name__)


def notification_payload(
    notification: Notification, sender: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    if sender is None and notification.sender_id is not None:
        sender = {"id": notification.sender_id}

    return NotificationOut(
        id=notification.id,
        type=notification.type,
        content=notification.content,
        sender=NotificationSender(**sender) if sender else None,
        created_at=notification.created_at,
        metadata=notification.meta,
        is_read=notification.is_read,
    ).model_dump()


class NotificationFanout:
    def __init__(self, hub: RealtimeHub):
        self.hub = hub

    async def deliver(
        self, notification: Notification, sender: Optional[Dict[str, Any]] = None
    ) -> int:
        """Emit new_notification to the receiver's personal room; returns sessions reached"""
        if not self.hub.presence.is_online(notification.receiver_id):
            return 0

        reached = await self.hub.emit_to_user(
            notification.receiver_id, "new_notification", notification_payload(notification, sender)
        )
        logger.info(
            f"Notification {notification.id} ({notification.type}) delivered to "
            f"{reached} session(s) of user {notification.receiver_id}"
        )
        return reached
