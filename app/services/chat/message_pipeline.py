"""
Message Pipeline

received -> persisted -> broadcast -> receipted

Persisting the message is the only critical step: if it fails the sender gets
an error and nothing is broadcast. Everything after it (recency bump, room
broadcast, delivered receipts, per-member notifications) is best-effort and
fault-isolated; those failures are logged and collected, never raised.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import NotFoundError, PermissionDeniedError, PersistenceError, ValidationError
from app.core.logging import get_logger
from app.models.message import RECEIPT_DELIVERED
from app.realtime.hub import RealtimeHub
from app.realtime.rooms import conversation_room
from app.schemas.chat import MessageOut
from app.services.chat.crud import ConversationCRUD, MessageCRUD, ReceiptCRUD

logger = get_logger(__name__)


@dataclass
class PipelineOutcome:
    message: Dict[str, Any]
    member_ids: List[int]
    notified_user_ids: List[int] = field(default_factory=list)
    # step name -> exception for side effects that failed
    failures: Dict[str, BaseException] = field(default_factory=dict)


class MessagePipeline:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hub: RealtimeHub,
        max_length: int = 5000,
    ):
        self._session_factory = session_factory
        self.hub = hub
        self.max_length = max_length
        # conversation_id -> [lock, holders]
        self._locks: Dict[int, list] = {}

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: int):
        """Serialize persist+broadcast per conversation so room order == persistence order"""
        entry = self._locks.get(conversation_id)
        if entry is None:
            entry = self._locks[conversation_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[conversation_id]

    async def send(
        self,
        sender_id: int,
        conversation_id: int,
        content: str,
        message_type: str = "text",
    ) -> PipelineOutcome:
        content = self._validate_content(content)
        failures: Dict[str, BaseException] = {}

        async with self._conversation_lock(conversation_id):
            message, member_ids = await self._persist(
                sender_id, conversation_id, content, message_type or "text"
            )
            logger.info(f"Message {message['id']} saved in conversation {conversation_id} by user {sender_id}")

            try:
                await self.hub.emit_to_room(
                    conversation_room(conversation_id), "receive_message", message
                )
            except Exception as e:
                logger.error(f"Broadcast of message {message['id']} failed: {e}")
                failures["broadcast"] = e

        recipients = [uid for uid in member_ids if uid != sender_id]
        steps = {
            "recency": self._bump_recency(conversation_id),
            "receipts": self._create_delivered_receipts(message["id"], recipients),
            "notifications": self._notify_members(conversation_id, message, recipients),
        }
        results = await asyncio.gather(*steps.values(), return_exceptions=True)

        notified: List[int] = []
        for name, result in zip(steps, results):
            if isinstance(result, BaseException):
                logger.error(f"Step '{name}' for message {message['id']} failed: {result!r}")
                failures[name] = result
            elif name == "notifications":
                notified = result

        return PipelineOutcome(
            message=message,
            member_ids=member_ids,
            notified_user_ids=notified,
            failures=failures,
        )

    def _validate_content(self, content: Any) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Content required")
        if len(content) > self.max_length:
            raise ValidationError(f"Message exceeds {self.max_length} characters")
        return content

    async def _persist(self, sender_id, conversation_id, content, message_type):
        async with self._session_factory() as db:
            conversation = await ConversationCRUD.get(db, conversation_id)
            if conversation is None:
                raise NotFoundError(f"Conversation {conversation_id} not found")

            member_ids = await ConversationCRUD.member_ids(db, conversation_id)
            if sender_id not in member_ids:
                raise PermissionDeniedError("You are not a member of this conversation")

            try:
                message = await MessageCRUD.create(db, conversation_id, sender_id, content, message_type)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error saving message in conversation {conversation_id}: {e}")
                raise PersistenceError("Cannot send message") from e

            return MessageOut.model_validate(message).model_dump(), member_ids

    async def _bump_recency(self, conversation_id: int) -> None:
        async with self._session_factory() as db:
            await ConversationCRUD.touch(db, conversation_id)
            await db.commit()

    async def _create_delivered_receipts(self, message_id: int, recipients: List[int]) -> int:
        """Bulk insert; on failure retry row by row so one bad member does not block the rest"""
        if not recipients:
            return 0

        async with self._session_factory() as db:
            try:
                created = await ReceiptCRUD.bulk_create_delivered(db, message_id, recipients)
                await db.commit()
                return created
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Bulk receipt insert for message {message_id} failed, retrying per member: {e}")

        created = 0
        errors = []
        for user_id in recipients:
            try:
                async with self._session_factory() as db:
                    await ReceiptCRUD.upsert_status(db, message_id, user_id, RECEIPT_DELIVERED)
                created += 1
            except SQLAlchemyError as e:
                logger.error(f"Delivered receipt for message {message_id}, user {user_id} failed: {e}")
                errors.append(e)

        if errors and not created:
            raise errors[0]
        return created

    async def _notify_members(
        self, conversation_id: int, message: Dict[str, Any], recipients: List[int]
    ) -> List[int]:
        """message_notification to each online recipient's personal room"""
        online = [uid for uid in recipients if self.hub.presence.is_online(uid)]
        if not online:
            return []

        payload = {"conversationId": conversation_id, "message": message}
        results = await asyncio.gather(
            *(self.hub.emit_to_user(uid, "message_notification", payload) for uid in online),
            return_exceptions=True,
        )

        notified = []
        for user_id, result in zip(online, results):
            if isinstance(result, BaseException):
                logger.error(f"message_notification to user {user_id} failed: {result}")
            elif result:
                notified.append(user_id)
        return notified
