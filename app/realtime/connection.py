"""
A single live socket bound to an authenticated user.
"""
import asyncio
import uuid
from typing import Any, Set

from fastapi import WebSocket

from app.core.logging import get_logger
from app.core.time import utc_now

logger = get_logger(__name__)


class Connection:
    """
    Session handle: one WebSocket, its owner and the rooms it has joined.
    Hashable by identity so it can live in presence and room sets.
    """

    def __init__(self, websocket: WebSocket, user_id: int, connection_id: str = None):
        self.id = connection_id or uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.rooms: Set[str] = set()
        self.conversations: Set[int] = set()
        self.connected_at = utc_now()
        self.closed = False
        # ASGI sends on one socket must not interleave
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: Any) -> bool:
        """Send one event envelope; returns False instead of raising on a dead socket"""
        if self.closed:
            return False
        try:
            async with self._send_lock:
                await self.websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.warning(f"Send of '{event}' to user {self.user_id} ({self.id}) failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id}>"
