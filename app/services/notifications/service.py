"""
Notification Service

Entry point for the friendship/like/comment handlers: persist the row, then
hand it to the fanout. Live delivery is best-effort.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, PermissionDeniedError
from app.core.logging import get_logger
from app.models.notification import Notification
from app.schemas.notification import NotificationCreate
from app.services.notifications.crud import NotificationCRUD
from app.services.notifications.fanout import NotificationFanout

logger = get_logger(__name__)


class NotificationService:
    def __init__(self, session: AsyncSession, fanout: NotificationFanout):
        self.session = session
        self.fanout = fanout

    async def notify(
        self,
        data: NotificationCreate,
        sender: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """Persist and deliver. Users are never notified about their own actions."""
        if data.sender_id is not None and data.sender_id == data.receiver_id:
            return None

        notification = await NotificationCRUD.create(self.session, data)
        try:
            await self.fanout.deliver(notification, sender)
        except Exception as e:
            logger.error(f"Live delivery of notification {notification.id} failed: {e}")
        return notification

    async def list_for_user(self, user_id: int) -> List[Notification]:
        return await NotificationCRUD.list_for_receiver(self.session, user_id)

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = await NotificationCRUD.get(self.session, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.receiver_id != user_id:
            raise PermissionDeniedError("Not allowed to modify this notification")

        notification.is_read = True
        await self.session.commit()
        return notification
