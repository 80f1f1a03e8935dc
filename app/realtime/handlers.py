"""
Chat event handlers

One coroutine per client event. Each opens its own database session, so no
state is shared between events beyond the injected components.
"""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.realtime.connection import Connection
from app.realtime.dispatcher import EventDispatcher
from app.realtime.hub import RealtimeHub
from app.realtime.rooms import conversation_room
from app.schemas.chat import ConversationRef, MessageSeenIn, SendMessageIn, TypingIn
from app.services.chat.conversation_service import ConversationService
from app.services.chat.message_pipeline import MessagePipeline
from app.services.chat.receipts import ReceiptTracker

logger = get_logger(__name__)


class ChatEventHandlers:
    def __init__(
        self,
        hub: RealtimeHub,
        session_factory: async_sessionmaker[AsyncSession],
        pipeline: MessagePipeline,
        receipts: ReceiptTracker,
        strict_room_join: bool = True,
    ):
        self.hub = hub
        self._session_factory = session_factory
        self.pipeline = pipeline
        self.receipts = receipts
        self.strict_room_join = strict_room_join

    def register(self, dispatcher: EventDispatcher) -> EventDispatcher:
        dispatcher.register("join_conversation", self.join_conversation)
        dispatcher.register("leave_conversation", self.leave_conversation)
        dispatcher.register("typing", self.typing)
        dispatcher.register("send_message", self.send_message)
        dispatcher.register("message_seen", self.message_seen)
        return dispatcher

    async def join_conversation(self, connection: Connection, data: Any) -> None:
        ref = ConversationRef.parse(data)

        if self.strict_room_join:
            async with self._session_factory() as db:
                await ConversationService(db).require_member(ref.conversation_id, connection.user_id)

        if self.hub.join_conversation(connection, ref.conversation_id):
            await connection.send("joined_conversation", {"conversationId": ref.conversation_id})

    async def leave_conversation(self, connection: Connection, data: Any) -> None:
        ref = ConversationRef.parse(data)
        self.hub.leave_conversation(connection, ref.conversation_id)
        logger.info(f"User {connection.user_id} left room {conversation_room(ref.conversation_id)}")
        await connection.send("left_conversation", {"conversationId": ref.conversation_id})

    async def typing(self, connection: Connection, data: Any) -> None:
        event = TypingIn.model_validate(data)
        if event.conversation_id not in connection.conversations:
            raise ValidationError("Join the conversation before sending typing events")

        await self.hub.emit_to_room(
            conversation_room(event.conversation_id),
            "typing",
            {
                "userId": connection.user_id,
                "conversationId": event.conversation_id,
                "isTyping": event.is_typing,
            },
            exclude=connection,
        )

    async def send_message(self, connection: Connection, data: Any) -> None:
        event = SendMessageIn.model_validate(data)
        await self.pipeline.send(
            connection.user_id, event.conversation_id, event.content, event.type
        )

    async def message_seen(self, connection: Connection, data: Any) -> None:
        event = MessageSeenIn.model_validate(data)
        await self.receipts.mark_seen(connection.user_id, event.conversation_id, event.message_ids)
