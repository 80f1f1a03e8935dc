"""
Chat Schemas

Wire models for the realtime channel and the chat HTTP surface. Client
payloads use camelCase keys; persisted rows are rendered snake_case.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_serializer

from app.core.time import to_iso


# Envelope -----------------------------------------------------------
class InboundEvent(BaseModel):
    event: str = Field(..., min_length=1)
    data: Any = None


# Client -> Server ---------------------------------------------------
class ConversationRef(BaseModel):
    conversation_id: int = Field(..., alias="conversationId", gt=0)

    class Config:
        populate_by_name = True

    @classmethod
    def parse(cls, data: Any) -> "ConversationRef":
        """Accept a bare id as well as {"conversationId": id}"""
        if not isinstance(data, dict):
            data = {"conversationId": data}
        return cls.model_validate(data)


class TypingIn(ConversationRef):
    is_typing: bool = Field(True, alias="isTyping")


class SendMessageIn(ConversationRef):
    content: str
    type: str = Field("text", min_length=1, max_length=20)


class MessageSeenIn(ConversationRef):
    message_ids: List[int] = Field(..., alias="messageIds", min_length=1)


# Server -> Client ---------------------------------------------------
class MessageOut(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return to_iso(value)


class ConversationOut(BaseModel):
    id: int
    type: str
    name: Optional[str] = None
    members: List[int] = []
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return to_iso(value)


class LastMessage(BaseModel):
    id: int
    content: str
    sender_id: int = Field(..., serialization_alias="senderId")
    created_at: datetime = Field(..., serialization_alias="createdAt")

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return to_iso(value)


class ConversationSummary(BaseModel):
    """Row of the conversation list, sorted by recency"""

    id: int
    type: str
    name: Optional[str] = None
    other_user_id: Optional[int] = Field(None, serialization_alias="otherUserId")
    members: List[int] = []
    last_message: Optional[LastMessage] = Field(None, serialization_alias="lastMessage")
    unread_count: int = Field(0, serialization_alias="unreadCount")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return to_iso(value)


# HTTP requests ------------------------------------------------------
class PrivateConversationCreate(BaseModel):
    user_id: int = Field(..., alias="userId", gt=0)

    class Config:
        populate_by_name = True


class GroupConversationCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    users: List[int] = Field(..., min_length=1)


class ConversationRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class PresenceOut(BaseModel):
    user_id: int = Field(..., serialization_alias="userId")
    online: bool
    sessions: int
