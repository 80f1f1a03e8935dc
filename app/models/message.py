"""
Message Models - conversation messages and per-recipient receipts
"""
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time import utc_now
from app.models.base import Base

if TYPE_CHECKING:
    from app.models.conversation import Conversation

RECEIPT_DELIVERED = "delivered"
RECEIPT_READ = "read"

# Receipts only ever move up this scale
RECEIPT_RANK = {RECEIPT_DELIVERED: 1, RECEIPT_READ: 2}


class Message(Base):
    """Immutable chat message; ordered by (created_at, id)"""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")
    receipts: Mapped[List["MessageReceipt"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )


class MessageReceipt(Base):
    """Delivery/read state of one message for one user"""

    __tablename__ = "message_receipts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default=RECEIPT_DELIVERED)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    message: Mapped["Message"] = relationship(back_populates="receipts")

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_receipts_pair"),
        Index("idx_message_receipts_user_status", "user_id", "status"),
    )
