"""
Chat WebSocket endpoint

Handshake -> presence registration -> event loop -> cleanup.
"""
import asyncio
from typing import Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.core.errors import AuthenticationError
from app.core.logging import get_logger
from app.realtime.connection import Connection
from app.realtime.runtime import RealtimeRuntime

logger = get_logger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket):
    """
    Realtime chat channel.

    Authenticate with ?token=<jwt> or an Authorization: Bearer header.
    Frames are JSON envelopes: {"event": "...", "data": ...}
    """
    runtime: RealtimeRuntime = websocket.app.state.realtime

    # Authenticate before accept: a rejected client leaves no session behind
    try:
        user_id = runtime.authenticator.authenticate(
            runtime.authenticator.credential_from(websocket)
        )
    except AuthenticationError as e:
        logger.warning(f"WebSocket handshake rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    connection = Connection(websocket, user_id)
    await runtime.hub.connect(connection)
    logger.info(f"User {user_id} connected ({connection.id})")

    # Events of one connection are read in order; unless serialized, each
    # runs as its own task so a slow write does not stall the next read
    pending: Set[asyncio.Task] = set()
    try:
        while True:
            raw = await websocket.receive_text()
            if runtime.serialize_events:
                await runtime.dispatcher.dispatch(connection, raw)
                continue
            task = asyncio.create_task(runtime.dispatcher.dispatch(connection, raw))
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected ({connection.id})")
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id}: {e}")
    finally:
        await runtime.hub.disconnect(connection)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
