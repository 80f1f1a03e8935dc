"""
Realtime runtime wiring

Builds the component graph once per application.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.realtime.auth import ConnectionAuthenticator
from app.realtime.dispatcher import EventDispatcher
from app.realtime.handlers import ChatEventHandlers
from app.realtime.hub import RealtimeHub
from app.realtime.presence import PresenceRegistry
from app.realtime.rooms import RoomRouter
from app.services.chat.message_pipeline import MessagePipeline
from app.services.chat.receipts import ReceiptTracker
from app.services.notifications.fanout import NotificationFanout


@dataclass
class RealtimeRuntime:
    session_factory: async_sessionmaker[AsyncSession]
    presence: PresenceRegistry
    rooms: RoomRouter
    hub: RealtimeHub
    authenticator: ConnectionAuthenticator
    pipeline: MessagePipeline
    receipts: ReceiptTracker
    fanout: NotificationFanout
    dispatcher: EventDispatcher
    serialize_events: bool = False


def build_runtime(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    *,
    strict_room_join: Optional[bool] = None,
    serialize_events: Optional[bool] = None,
) -> RealtimeRuntime:
    if session_factory is None:
        from app.infra.db import AsyncSessionLocal
        session_factory = AsyncSessionLocal
    if strict_room_join is None:
        strict_room_join = settings.ws_strict_room_join
    if serialize_events is None:
        serialize_events = settings.ws_serialize_events

    presence = PresenceRegistry()
    rooms = RoomRouter()
    hub = RealtimeHub(presence, rooms)
    pipeline = MessagePipeline(session_factory, hub, max_length=settings.message_max_length)
    receipts = ReceiptTracker(session_factory, hub)

    dispatcher = EventDispatcher(hub)
    ChatEventHandlers(
        hub,
        session_factory,
        pipeline,
        receipts,
        strict_room_join=strict_room_join,
    ).register(dispatcher)

    return RealtimeRuntime(
        session_factory=session_factory,
        presence=presence,
        rooms=rooms,
        hub=hub,
        authenticator=ConnectionAuthenticator(),
        pipeline=pipeline,
        receipts=receipts,
        fanout=NotificationFanout(hub),
        dispatcher=dispatcher,
        serialize_events=serialize_events,
    )
