"""
Receipt Tracker

Marks messages read for one user and tells the conversation room once per
batch. Each id is written independently; a failed write is logged and the
rest of the batch still goes through.
"""
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.message import RECEIPT_READ
from app.realtime.hub import RealtimeHub
from app.realtime.rooms import conversation_room
from app.services.chat.conversation_service import ConversationService
from app.services.chat.crud import MessageCRUD, ReceiptCRUD

logger = get_logger(__name__)


class ReceiptTracker:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], hub: RealtimeHub):
        self._session_factory = session_factory
        self.hub = hub

    async def mark_seen(
        self, user_id: int, conversation_id: int, message_ids: Iterable[int]
    ) -> List[int]:
        """
        Upsert a 'read' receipt for every id, then emit one message_seen to
        the room. Safe to repeat: read receipts never go back to delivered.

        Returns:
            Ids whose receipt is now 'read'
        """
        ids = list(dict.fromkeys(int(mid) for mid in message_ids))
        if not ids:
            raise ValidationError("messageIds required")

        async with self._session_factory() as db:
            await ConversationService(db).require_member(conversation_id, user_id)
            known = await MessageCRUD.ids_in_conversation(db, conversation_id, ids)

        marked = []
        for message_id in ids:
            if message_id not in known:
                logger.warning(f"Message {message_id} not found in conversation {conversation_id}; skipped")
                continue
            try:
                async with self._session_factory() as db:
                    await ReceiptCRUD.upsert_status(db, message_id, user_id, RECEIPT_READ)
                marked.append(message_id)
            except SQLAlchemyError as e:
                logger.error(f"Seen error for message {message_id}, user {user_id}: {e}")

        await self.hub.emit_to_room(
            conversation_room(conversation_id),
            "message_seen",
            {"userId": user_id, "conversationId": conversation_id, "messageIds": ids},
        )
        return marked
