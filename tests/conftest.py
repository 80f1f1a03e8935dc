"""
Conftest
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-0123456789-abcdefghijklmnop")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-app.db")

from typing import AsyncGenerator, List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.security import create_access_token
from app.infra.db import get_db
from app.main import create_app
from app.models.base import Base
from app.realtime.connection import Connection
from app.realtime.runtime import build_runtime
from app.services.chat.crud import ConversationCRUD


class RecordingWebSocket:
    """Stands in for a Starlette WebSocket; keeps every envelope sent to it"""

    def __init__(self):
        self.sent: List[dict] = []
        self.fail = False

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    def events(self, name: str = None) -> list:
        return [m["data"] for m in self.sent if name is None or m["event"] == name]


# File-backed SQLite so concurrent sessions each get their own connection
@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def runtime(session_factory):
    return build_runtime(session_factory, strict_room_join=True, serialize_events=True)


@pytest.fixture
def connect_user(runtime):
    """Open a registered connection for a user, backed by a RecordingWebSocket"""

    async def _connect(user_id: int) -> Connection:
        connection = Connection(RecordingWebSocket(), user_id)
        await runtime.hub.connect(connection)
        return connection

    return _connect


@pytest.fixture
def seed_conversation(session_factory):
    async def _seed(member_ids, conversation_type: str = "group", name: str = None) -> int:
        async with session_factory() as db:
            conversation = await ConversationCRUD.create(db, conversation_type, member_ids, name=name)
            await db.commit()
            return conversation.id

    return _seed


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
async def client(runtime, session_factory) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(runtime)

    # Override dependency
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
