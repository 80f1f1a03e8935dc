"""
Conversation Models

Private (exactly two members, unique per pair) and group conversations.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time import utc_now
from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.message import Message

CONVERSATION_PRIVATE = "private"
CONVERSATION_GROUP = "group"


def private_pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key for the pair of a private conversation"""
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


class Conversation(Base, TimestampMixin):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default=CONVERSATION_PRIVATE)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # NULL for groups; unique for private pairs
    private_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)

    # Relationships
    members: Mapped[List["ConversationMember"]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan"
    )
    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_conversations_updated_at", "updated_at"),
    )

    @property
    def is_group(self) -> bool:
        return self.type == CONVERSATION_GROUP


class ConversationMember(Base):
    __tablename__ = "conversation_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    conversation: Mapped["Conversation"] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_members_pair"),
    )
