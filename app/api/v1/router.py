"""
API Router configuration
"""

from fastapi import APIRouter

from app.api.v1 import (
    health,
    chat,
    notifications,
    ws_chat,
)
from app.core.config import settings

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
if settings.enable_websocket:
    api_router.include_router(ws_chat.router, prefix="/chat", tags=["websocket"])
