"""
Realtime hub

Owns the live connections and combines the presence registry with the room
router: session lifecycle, conversation rooms and every outbound emit.
"""
import asyncio
from typing import Any, Iterable, List, Optional, Set

from app.core.logging import get_logger
from app.realtime.connection import Connection
from app.realtime.presence import PresenceRegistry
from app.realtime.rooms import RoomRouter, conversation_room, personal_room

logger = get_logger(__name__)

STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"


class RealtimeHub:
    def __init__(self, presence: PresenceRegistry, rooms: RoomRouter):
        self.presence = presence
        self.rooms = rooms
        self._connections: Set[Connection] = set()

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections)

    # Session lifecycle --------------------------------------------------
    async def connect(self, connection: Connection) -> None:
        """Register an authenticated connection and join its personal room"""
        self._connections.add(connection)
        self.rooms.join(personal_room(connection.user_id), connection)
        came_online = await self.presence.register(connection.user_id, connection)

        if came_online:
            await self.broadcast(
                "user_status",
                {"userId": connection.user_id, "status": STATUS_ONLINE},
                exclude_user=connection.user_id,
            )

    async def disconnect(self, connection: Connection) -> None:
        """Leave every room and drop the session; runs unconditionally"""
        connection.closed = True
        self.rooms.leave_all(connection)
        connection.conversations.clear()
        self._connections.discard(connection)
        went_offline = await self.presence.unregister(connection.user_id, connection)

        if went_offline:
            await self.broadcast(
                "user_status",
                {"userId": connection.user_id, "status": STATUS_OFFLINE},
                exclude_user=connection.user_id,
            )

    # Conversation rooms -------------------------------------------------
    def join_conversation(self, connection: Connection, conversation_id: int) -> bool:
        if connection.closed:
            return False
        self.rooms.join(conversation_room(conversation_id), connection)
        connection.conversations.add(conversation_id)
        logger.info(f"User {connection.user_id} joined room {conversation_room(conversation_id)}")
        return True

    def leave_conversation(self, connection: Connection, conversation_id: int) -> None:
        self.rooms.leave(conversation_room(conversation_id), connection)
        connection.conversations.discard(conversation_id)

    # Emitters -----------------------------------------------------------
    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: Any,
        exclude: Optional[Connection] = None,
    ) -> int:
        targets = [c for c in self.rooms.members(room) if c is not exclude]
        return await self._send_many(targets, event, data)

    async def emit_to_user(self, user_id: int, event: str, data: Any) -> int:
        """Send to every session of a user through the personal room"""
        return await self.emit_to_room(personal_room(user_id), event, data)

    async def emit_error(self, connection: Connection, event: Optional[str], message: str) -> bool:
        return await connection.send("error_message", {"message": message, "event": event})

    async def broadcast(self, event: str, data: Any, exclude_user: Optional[int] = None) -> int:
        targets = [c for c in self._connections if c.user_id != exclude_user]
        return await self._send_many(targets, event, data)

    async def _send_many(self, connections: Iterable[Connection], event: str, data: Any) -> int:
        """Send concurrently; returns how many connections accepted the event"""
        connections = list(connections)
        if not connections:
            return 0
        results = await asyncio.gather(
            *(connection.send(event, data) for connection in connections),
            return_exceptions=True,
        )
        return sum(1 for result in results if result is True)
