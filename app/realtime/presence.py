"""
Presence Registry

Process-wide map of user id -> live session handles. A user may hold several
sessions (tabs, devices); the user is online while at least one remains.
State is in-memory only and starts empty after a restart.
"""
import asyncio
from typing import Dict, FrozenSet, Hashable, List, Set

from app.core.logging import get_logger

logger = get_logger(__name__)


class PresenceRegistry:
    """
    Single source of truth for "is user X reachable".
    Mutations run under one asyncio.Lock so concurrent connect/disconnect
    events for the same user cannot lose updates.
    """

    def __init__(self):
        # user_id -> set of session handles; never holds an empty set
        self._sessions: Dict[int, Set[Hashable]] = {}
        self._lock = asyncio.Lock()

    async def register(self, user_id: int, handle: Hashable) -> bool:
        """Add a session. Returns True when the user just came online."""
        async with self._lock:
            sessions = self._sessions.get(user_id)
            if sessions is None:
                sessions = self._sessions[user_id] = set()
            came_online = not sessions
            sessions.add(handle)
            logger.info(f"User {user_id} registered session. Total sessions: {len(sessions)}")
            return came_online

    async def unregister(self, user_id: int, handle: Hashable) -> bool:
        """Remove a session. Returns True when the user just went offline."""
        async with self._lock:
            sessions = self._sessions.get(user_id)
            if sessions is None or handle not in sessions:
                return False
            sessions.discard(handle)
            if sessions:
                return False
            del self._sessions[user_id]
            logger.info(f"User {user_id} has no sessions left")
            return True

    def sessions_for(self, user_id: int) -> FrozenSet[Hashable]:
        return frozenset(self._sessions.get(user_id, ()))

    def is_online(self, user_id: int) -> bool:
        return user_id in self._sessions

    def online_user_ids(self) -> List[int]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
