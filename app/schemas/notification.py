"""
Notification Schemas
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer

from app.core.time import to_iso


class NotificationSender(BaseModel):
    id: int
    username: Optional[str] = None
    profile: Optional[dict[str, Any]] = None


class NotificationOut(BaseModel):
    """Payload of new_notification and of the notification list"""

    id: int
    type: str
    content: Optional[str] = None
    sender: Optional[NotificationSender] = None
    created_at: datetime
    metadata: Optional[dict[str, Any]] = None
    is_read: bool = False

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return to_iso(value)


class NotificationCreate(BaseModel):
    """What a friendship/like/comment handler hands to the notification service"""

    receiver_id: int
    sender_id: Optional[int] = None
    type: str = Field(..., min_length=1, max_length=50)
    content: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
