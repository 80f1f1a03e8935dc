"""
Room Router

Named broadcast groups of live connections. Rooms are ephemeral and exist
only while they have at least one connection.
"""
from typing import Dict, List, Set

from app.realtime.connection import Connection


def conversation_room(conversation_id: int) -> str:
    return f"conv_{conversation_id}"


def personal_room(user_id: int) -> str:
    return f"user_{user_id}"


class RoomRouter:
    def __init__(self):
        self._rooms: Dict[str, Set[Connection]] = {}

    def join(self, room: str, connection: Connection) -> None:
        self._rooms.setdefault(room, set()).add(connection)
        connection.rooms.add(room)

    def leave(self, room: str, connection: Connection) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def leave_all(self, connection: Connection) -> None:
        for room in list(connection.rooms):
            self.leave(room, connection)

    def members(self, room: str) -> List[Connection]:
        # Copy so sends can await while joins/leaves happen
        return list(self._rooms.get(room, ()))

    def is_member(self, room: str, connection: Connection) -> bool:
        return connection in self._rooms.get(room, ())

    def rooms(self) -> List[str]:
        return list(self._rooms)
