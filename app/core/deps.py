"""
Dependency Injection

FastAPI dependencies for routes.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from app.core.errors import AuthenticationError
from app.core.security import verify_token
from app.infra.db import get_db
from app.realtime.runtime import RealtimeRuntime
from app.services.notifications.fanout import NotificationFanout
from app.services.notifications.service import NotificationService

bearer_scheme = HTTPBearer(auto_error=False)

# Type aliases for common dependencies
SessionDep = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> int:
    """
    Validate token and return current user ID.
    Does not fetch a user row; identity is owned by the auth service.
    """
    user_id = verify_token(credentials.credentials) if credentials else None
    if user_id is None:
        raise AuthenticationError("Could not validate credentials")
    return user_id


CurrentUserDep = Annotated[int, Depends(get_current_user_id)]


def get_realtime(connection: HTTPConnection) -> RealtimeRuntime:
    return connection.app.state.realtime


RealtimeDep = Annotated[RealtimeRuntime, Depends(get_realtime)]


def get_fanout(realtime: RealtimeDep) -> NotificationFanout:
    return realtime.fanout


def get_notification_service(
    db: SessionDep,
    fanout: Annotated[NotificationFanout, Depends(get_fanout)],
) -> NotificationService:
    return NotificationService(db, fanout)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
