"""
Persistence layer for conversations, messages and receipts.

Static CRUD helpers over an AsyncSession. Callers own the transaction
boundary (commit/rollback) unless a helper says otherwise.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.time import utc_now
from app.models.conversation import (
    CONVERSATION_PRIVATE,
    Conversation,
    ConversationMember,
)
from app.models.message import (
    RECEIPT_DELIVERED,
    RECEIPT_RANK,
    Message,
    MessageReceipt,
)


class ConversationCRUD:
    """CRUD operations for Conversation and ConversationMember"""

    @staticmethod
    async def get(db: AsyncSession, conversation_id: int) -> Optional[Conversation]:
        return await db.get(Conversation, conversation_id)

    @staticmethod
    async def get_private_by_key(db: AsyncSession, private_key: str) -> Optional[Conversation]:
        result = await db.execute(
            select(Conversation).where(
                Conversation.private_key == private_key,
                Conversation.type == CONVERSATION_PRIVATE,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        conversation_type: str,
        member_ids: Iterable[int],
        name: Optional[str] = None,
        private_key: Optional[str] = None,
    ) -> Conversation:
        """Add a conversation plus one membership row per member and flush"""
        conversation = Conversation(type=conversation_type, name=name, private_key=private_key)
        db.add(conversation)
        await db.flush()

        db.add_all(
            ConversationMember(conversation_id=conversation.id, user_id=user_id)
            for user_id in member_ids
        )
        await db.flush()
        return conversation

    @staticmethod
    async def member_ids(db: AsyncSession, conversation_id: int) -> List[int]:
        result = await db.execute(
            select(ConversationMember.user_id)
            .where(ConversationMember.conversation_id == conversation_id)
            .order_by(ConversationMember.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def is_member(db: AsyncSession, conversation_id: int, user_id: int) -> bool:
        result = await db.execute(
            select(ConversationMember.id).where(
                ConversationMember.conversation_id == conversation_id,
                ConversationMember.user_id == user_id,
            )
        )
        return result.first() is not None

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int, limit: int = 50) -> List[Conversation]:
        """Conversations the user belongs to, most recently active first"""
        stmt = (
            select(Conversation)
            .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
            .where(ConversationMember.user_id == user_id)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def members_by_conversation(
        db: AsyncSession, conversation_ids: Sequence[int]
    ) -> Dict[int, List[int]]:
        if not conversation_ids:
            return {}
        result = await db.execute(
            select(ConversationMember.conversation_id, ConversationMember.user_id)
            .where(ConversationMember.conversation_id.in_(conversation_ids))
            .order_by(ConversationMember.id)
        )
        members: Dict[int, List[int]] = {cid: [] for cid in conversation_ids}
        for conversation_id, user_id in result.all():
            members[conversation_id].append(user_id)
        return members

    @staticmethod
    async def touch(db: AsyncSession, conversation_id: int) -> None:
        """Bump the recency timestamp used to sort conversation lists"""
        await db.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(updated_at=utc_now())
        )


class MessageCRUD:
    """CRUD operations for Message"""

    @staticmethod
    async def create(
        db: AsyncSession,
        conversation_id: int,
        sender_id: int,
        content: str,
        message_type: str = "text",
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            type=message_type,
            created_at=utc_now(),
        )
        db.add(message)
        await db.flush()
        return message

    @staticmethod
    async def history(
        db: AsyncSession,
        conversation_id: int,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[Message]:
        """Newest `limit` messages (optionally older than before_id), oldest first"""
        stmt = select(Message).where(Message.conversation_id == conversation_id)
        if before_id is not None:
            stmt = stmt.where(Message.id < before_id)
        stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit)

        result = await db.execute(stmt)
        messages = list(result.scalars().all())
        messages.reverse()
        return messages

    @staticmethod
    async def last_messages(
        db: AsyncSession, conversation_ids: Sequence[int]
    ) -> Dict[int, Message]:
        if not conversation_ids:
            return {}
        latest = (
            select(Message.conversation_id, func.max(Message.id).label("last_id"))
            .where(Message.conversation_id.in_(conversation_ids))
            .group_by(Message.conversation_id)
            .subquery()
        )
        result = await db.execute(select(Message).join(latest, Message.id == latest.c.last_id))
        return {message.conversation_id: message for message in result.scalars().all()}

    @staticmethod
    async def ids_in_conversation(
        db: AsyncSession, conversation_id: int, message_ids: Sequence[int]
    ) -> set[int]:
        if not message_ids:
            return set()
        result = await db.execute(
            select(Message.id).where(
                Message.conversation_id == conversation_id,
                Message.id.in_(message_ids),
            )
        )
        return set(result.scalars().all())


class ReceiptCRUD:
    """CRUD operations for MessageReceipt"""

    @staticmethod
    async def get(db: AsyncSession, message_id: int, user_id: int) -> Optional[MessageReceipt]:
        result = await db.execute(
            select(MessageReceipt).where(
                MessageReceipt.message_id == message_id,
                MessageReceipt.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def bulk_create_delivered(
        db: AsyncSession, message_id: int, user_ids: Sequence[int]
    ) -> int:
        """Insert one delivered receipt per user in a single statement"""
        if not user_ids:
            return 0
        now = utc_now()
        await db.execute(
            insert(MessageReceipt),
            [
                {
                    "message_id": message_id,
                    "user_id": user_id,
                    "status": RECEIPT_DELIVERED,
                    "updated_at": now,
                }
                for user_id in user_ids
            ],
        )
        return len(user_ids)

    @staticmethod
    async def upsert_status(
        db: AsyncSession, message_id: int, user_id: int, status: str
    ) -> str:
        """
        Create or raise the receipt for (message, user) and commit.

        Status never moves down: asking for 'delivered' on a 'read' receipt
        leaves it untouched. Returns the stored status.
        """
        receipt = await ReceiptCRUD.get(db, message_id, user_id)

        if receipt is None:
            db.add(MessageReceipt(message_id=message_id, user_id=user_id, status=status))
            try:
                await db.commit()
                return status
            except IntegrityError:
                # Lost an insert race; the row exists now
                await db.rollback()
                receipt = await ReceiptCRUD.get(db, message_id, user_id)
                if receipt is None:
                    raise

        if RECEIPT_RANK[receipt.status] < RECEIPT_RANK[status]:
            receipt.status = status
            receipt.updated_at = utc_now()
            await db.commit()
        return receipt.status

    @staticmethod
    async def unread_counts(
        db: AsyncSession, user_id: int, conversation_ids: Sequence[int]
    ) -> Dict[int, int]:
        """Messages per conversation whose receipt for user_id is still 'delivered'"""
        if not conversation_ids:
            return {}
        result = await db.execute(
            select(Message.conversation_id, func.count(MessageReceipt.id))
            .join(MessageReceipt, MessageReceipt.message_id == Message.id)
            .where(
                MessageReceipt.user_id == user_id,
                MessageReceipt.status == RECEIPT_DELIVERED,
                Message.conversation_id.in_(conversation_ids),
            )
            .group_by(Message.conversation_id)
        )
        return {conversation_id: count for conversation_id, count in result.all()}
