from typing import List

from fastapi import APIRouter

from app.core.deps import CurrentUserDep, NotificationServiceDep
from app.schemas.notification import NotificationOut
from app.services.notifications.fanout import notification_payload

router = APIRouter()


@router.get("", response_model=List[NotificationOut])
async def list_notifications(user_id: CurrentUserDep, service: NotificationServiceDep):
    """The caller's notifications, newest first"""
    notifications = await service.list_for_user(user_id)
    return [notification_payload(n) for n in notifications]


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: int,
    user_id: CurrentUserDep,
    service: NotificationServiceDep,
):
    notification = await service.mark_read(notification_id, user_id)
    return notification_payload(notification)
