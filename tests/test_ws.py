"""
WebSocket end-to-end tests
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.websockets import WebSocketDisconnect

from app.core.security import create_access_token
from app.main import create_app
from app.models.base import Base
from app.realtime.runtime import build_runtime
from app.services.chat.crud import ConversationCRUD


def ws_url(user_id, **token_kwargs):
    return f"/chat/ws?token={create_access_token(user_id, **token_kwargs)}"


def receive_event(websocket, name, limit=10):
    """Read frames until the named event arrives"""
    for _ in range(limit):
        message = websocket.receive_json()
        if message["event"] == name:
            return message["data"]
    raise AssertionError(f"no '{name}' event received")


@pytest.fixture
def ws_env(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    runtime = build_runtime(factory, strict_room_join=True, serialize_events=False)
    app = create_app(runtime)

    async def prepare():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with factory() as db:
            conversation = await ConversationCRUD.create(db, "group", [1, 2], name="Test")
            await db.commit()
            return conversation.id

    with TestClient(app) as client:
        # run setup on the app's own event loop
        conversation_id = client.portal.call(prepare)
        yield client, runtime, conversation_id
        client.portal.call(engine.dispose)


def test_expired_token_rejected_before_presence(ws_env):
    client, runtime, _ = ws_env

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(ws_url(1, expires_delta=timedelta(minutes=-1))):
            pass

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/chat/ws"):
            pass

    assert runtime.presence.online_user_ids() == []


def test_presence_status_events(ws_env):
    client, runtime, conversation_id = ws_env

    with client.websocket_connect(ws_url(1)) as alice:
        # the ack proves alice is registered before bob arrives
        alice.send_json({"event": "join_conversation", "data": conversation_id})
        receive_event(alice, "joined_conversation")

        with client.websocket_connect(ws_url(2)) as bob:
            assert receive_event(alice, "user_status") == {"userId": 2, "status": "online"}
            bob.send_json({"event": "join_conversation", "data": conversation_id})
            receive_event(bob, "joined_conversation")
            assert sorted(runtime.presence.online_user_ids()) == [1, 2]
            assert len(runtime.rooms.members(f"conv_{conversation_id}")) == 2


def test_send_message_round_trip(ws_env):
    client, runtime, conversation_id = ws_env

    with client.websocket_connect(ws_url(1)) as alice, client.websocket_connect(ws_url(2)) as bob:
        bob.send_json({"event": "join_conversation", "data": conversation_id})
        assert receive_event(bob, "joined_conversation") == {"conversationId": conversation_id}
        alice.send_json({"event": "join_conversation", "data": {"conversationId": conversation_id}})
        assert receive_event(alice, "joined_conversation") == {"conversationId": conversation_id}

        alice.send_json({
            "event": "send_message",
            "data": {"conversationId": conversation_id, "content": "hi", "type": "text"},
        })
        alice_copy = receive_event(alice, "receive_message")
        bob_copy = receive_event(bob, "receive_message")
        assert alice_copy == bob_copy
        assert alice_copy["sender_id"] == 1
        assert alice_copy["content"] == "hi"

        notice = receive_event(bob, "message_notification")
        assert notice == {"conversationId": conversation_id, "message": bob_copy}

        bob.send_json({
            "event": "message_seen",
            "data": {"conversationId": conversation_id, "messageIds": [bob_copy["id"]]},
        })
        assert receive_event(alice, "message_seen") == {
            "userId": 2,
            "conversationId": conversation_id,
            "messageIds": [bob_copy["id"]],
        }


def test_errors_go_to_sender_only(ws_env):
    client, runtime, conversation_id = ws_env

    with client.websocket_connect(ws_url(3)) as outsider:
        outsider.send_text("not json")
        assert receive_event(outsider, "error_message")["event"] is None

        outsider.send_json({"event": "join_conversation", "data": conversation_id})
        error = receive_event(outsider, "error_message")
        assert error["event"] == "join_conversation"
        assert runtime.rooms.members(f"conv_{conversation_id}") == []

