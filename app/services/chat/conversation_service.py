"""
Conversation Service

Conversation lifecycle and membership-checked reads.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from app.core.logging import get_logger
from app.models.conversation import (
    CONVERSATION_GROUP,
    CONVERSATION_PRIVATE,
    Conversation,
    private_pair_key,
)
from app.models.message import Message
from app.schemas.chat import ConversationOut, ConversationSummary, LastMessage
from app.services.chat.crud import ConversationCRUD, MessageCRUD, ReceiptCRUD

logger = get_logger(__name__)


class ConversationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def require_member(self, conversation_id: int, user_id: int) -> Conversation:
        """Load the conversation, failing unless user_id is a current member"""
        conversation = await ConversationCRUD.get(self.session, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        if not await ConversationCRUD.is_member(self.session, conversation_id, user_id):
            raise PermissionDeniedError("You are not a member of this conversation")
        return conversation

    async def get_or_create_private(self, user_id: int, other_user_id: int) -> ConversationOut:
        """
        Return the private conversation between the two users, creating it once.
        Calling it again from either side returns the same row.
        """
        if user_id == other_user_id:
            raise ValidationError("Cannot create conversation with yourself")

        key = private_pair_key(user_id, other_user_id)
        existing = await ConversationCRUD.get_private_by_key(self.session, key)
        if existing is not None:
            return await self._to_out(existing)

        try:
            conversation = await ConversationCRUD.create(
                self.session,
                CONVERSATION_PRIVATE,
                member_ids=[user_id, other_user_id],
                private_key=key,
            )
            await self.session.commit()
        except IntegrityError:
            # Another request created the pair concurrently
            await self.session.rollback()
            conversation = await ConversationCRUD.get_private_by_key(self.session, key)
            if conversation is None:
                raise

        logger.info(f"Private conversation {conversation.id} ready for users {key}")
        return await self._to_out(conversation)

    async def create_group(
        self, creator_id: int, user_ids: List[int], name: Optional[str] = None
    ) -> ConversationOut:
        """Always creates a new group; the creator is added as a member"""
        others = [uid for uid in dict.fromkeys(user_ids) if uid != creator_id]
        if not others:
            raise ValidationError("Users required")

        conversation = await ConversationCRUD.create(
            self.session,
            CONVERSATION_GROUP,
            member_ids=[*others, creator_id],
            name=name,
        )
        await self.session.commit()
        logger.info(f"Group conversation {conversation.id} created by user {creator_id}")
        return await self._to_out(conversation)

    async def rename_group(self, conversation_id: int, user_id: int, name: str) -> ConversationOut:
        conversation = await self.require_member(conversation_id, user_id)
        if not conversation.is_group:
            raise ValidationError("Only group conversations can be renamed")

        name = name.strip()
        if not name:
            raise ValidationError("Name required")

        conversation.name = name
        await self.session.commit()
        await self.session.refresh(conversation)
        return await self._to_out(conversation)

    async def get_history(
        self,
        conversation_id: int,
        user_id: int,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[Message]:
        await self.require_member(conversation_id, user_id)
        return await MessageCRUD.history(self.session, conversation_id, limit, before_id)

    async def list_for_user(self, user_id: int, limit: int = 50) -> List[ConversationSummary]:
        conversations = await ConversationCRUD.list_for_user(self.session, user_id, limit)
        if not conversations:
            return []

        ids = [c.id for c in conversations]
        members = await ConversationCRUD.members_by_conversation(self.session, ids)
        last_messages = await MessageCRUD.last_messages(self.session, ids)
        unread = await ReceiptCRUD.unread_counts(self.session, user_id, ids)

        summaries = []
        for conversation in conversations:
            member_ids = members.get(conversation.id, [])
            other_user_id = None
            if conversation.type == CONVERSATION_PRIVATE:
                other_user_id = next((uid for uid in member_ids if uid != user_id), None)

            last = last_messages.get(conversation.id)
            summaries.append(
                ConversationSummary(
                    id=conversation.id,
                    type=conversation.type,
                    name=conversation.name,
                    other_user_id=other_user_id,
                    members=member_ids,
                    last_message=LastMessage(
                        id=last.id,
                        content=last.content,
                        sender_id=last.sender_id,
                        created_at=last.created_at,
                    ) if last else None,
                    unread_count=unread.get(conversation.id, 0),
                    created_at=conversation.created_at,
                    updated_at=conversation.updated_at,
                )
            )
        return summaries

    async def _to_out(self, conversation: Conversation) -> ConversationOut:
        return ConversationOut(
            id=conversation.id,
            type=conversation.type,
            name=conversation.name,
            members=await ConversationCRUD.member_ids(self.session, conversation.id),
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
