"""
CRUD service layer for Notification
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.schemas.notification import NotificationCreate


class NotificationCRUD:
    @staticmethod
    async def create(db: AsyncSession, data: NotificationCreate) -> Notification:
        notification = Notification(
            receiver_id=data.receiver_id,
            sender_id=data.sender_id,
            type=data.type,
            content=data.content,
            meta=data.metadata,
        )
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def get(db: AsyncSession, notification_id: int) -> Optional[Notification]:
        return await db.get(Notification, notification_id)

    @staticmethod
    async def list_for_receiver(db: AsyncSession, receiver_id: int, limit: int = 100) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .where(Notification.receiver_id == receiver_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
