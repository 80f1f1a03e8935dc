"""
Chat HTTP route tests
"""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_requires_bearer_token(client: AsyncClient):
    response = await client.get("/chat/conversations")
    assert response.status_code == 401
    assert response.json()["error_code"] == "auth_rejected"

    response = await client.get("/chat/conversations", headers={"Authorization": "Bearer junk"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_private_conversation_route_is_idempotent(client: AsyncClient, auth_headers):
    first = await client.post("/chat/conversations/private", json={"userId": 2}, headers=auth_headers(1))
    second = await client.post("/chat/conversations/private", json={"userId": 1}, headers=auth_headers(2))

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert sorted(first.json()["members"]) == [1, 2]

    response = await client.post("/chat/conversations/private", json={"userId": 1}, headers=auth_headers(1))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_group_create_list_and_rename(client: AsyncClient, auth_headers):
    created = await client.post(
        "/chat/conversations/group",
        json={"name": "Hiking", "users": [2, 3]},
        headers=auth_headers(1),
    )
    assert created.status_code == 201
    group = created.json()
    assert sorted(group["members"]) == [1, 2, 3]

    listed = await client.get("/chat/conversations", headers=auth_headers(3))
    assert listed.status_code == 200
    rows = listed.json()
    assert [row["id"] for row in rows] == [group["id"]]
    assert rows[0]["unreadCount"] == 0
    assert rows[0]["lastMessage"] is None

    renamed = await client.patch(
        f"/chat/conversations/{group['id']}", json={"name": "Climbing"}, headers=auth_headers(2)
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Climbing"


@pytest.mark.asyncio
async def test_history_enforces_membership(client: AsyncClient, runtime, seed_conversation, auth_headers):
    conversation_id = await seed_conversation([1, 2])
    await runtime.pipeline.send(1, conversation_id, "first")
    await runtime.pipeline.send(2, conversation_id, "second")

    response = await client.get(f"/chat/conversations/{conversation_id}/messages", headers=auth_headers(2))
    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["first", "second"]
    assert response.json()[0]["sender_id"] == 1

    response = await client.get(f"/chat/conversations/{conversation_id}/messages", headers=auth_headers(3))
    assert response.status_code == 403

    response = await client.get("/chat/conversations/999/messages", headers=auth_headers(1))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_presence_route(client: AsyncClient, connect_user, auth_headers):
    await connect_user(4)
    await connect_user(4)

    response = await client.get("/chat/presence/4", headers=auth_headers(1))
    assert response.json() == {"userId": 4, "online": True, "sessions": 2}

    response = await client.get("/chat/presence/5", headers=auth_headers(1))
    assert response.json() == {"userId": 5, "online": False, "sessions": 0}
