"""
Notification fanout and notification service tests
"""
import pytest
from httpx import AsyncClient

from app.schemas.notification import NotificationCreate
from app.services.notifications.crud import NotificationCRUD
from app.services.notifications.service import NotificationService


def friend_request(receiver_id=2, sender_id=1):
    return NotificationCreate(
        receiver_id=receiver_id,
        sender_id=sender_id,
        type="friend_request",
        content="sent you a friend request",
        metadata={"friendship_id": 10},
    )


@pytest.mark.asyncio
async def test_deliver_reaches_every_session(runtime, connect_user, db_session):
    phone = await connect_user(2)
    laptop = await connect_user(2)
    other = await connect_user(3)
    notification = await NotificationCRUD.create(db_session, friend_request())

    reached = await runtime.fanout.deliver(notification, sender={"id": 1, "username": "alice"})

    assert reached == 2
    payload = phone.websocket.events("new_notification")[0]
    assert laptop.websocket.events("new_notification") == [payload]
    assert other.websocket.events("new_notification") == []
    assert payload["id"] == notification.id
    assert payload["type"] == "friend_request"
    assert payload["sender"]["username"] == "alice"
    assert payload["metadata"] == {"friendship_id": 10}
    assert payload["created_at"]


@pytest.mark.asyncio
async def test_deliver_to_offline_user_is_noop(runtime, connect_user, db_session):
    bystander = await connect_user(3)
    notification = await NotificationCRUD.create(db_session, friend_request())

    assert await runtime.fanout.deliver(notification) == 0
    assert bystander.websocket.events("new_notification") == []


@pytest.mark.asyncio
async def test_delivery_ignores_conversation_rooms(runtime, connect_user, db_session):
    bob = await connect_user(2)
    runtime.hub.join_conversation(bob, 5)
    notification = await NotificationCRUD.create(db_session, friend_request())

    await runtime.fanout.deliver(notification)

    assert len(bob.websocket.events("new_notification")) == 1


@pytest.mark.asyncio
async def test_service_persists_then_delivers(runtime, connect_user, db_session):
    bob = await connect_user(2)
    service = NotificationService(db_session, runtime.fanout)

    notification = await service.notify(friend_request())

    assert notification.id is not None
    assert [n.id for n in await service.list_for_user(2)] == [notification.id]
    assert bob.websocket.events("new_notification")[0]["sender"] == {
        "id": 1, "username": None, "profile": None,
    }


@pytest.mark.asyncio
async def test_service_skips_self_notification(runtime, db_session):
    service = NotificationService(db_session, runtime.fanout)

    assert await service.notify(friend_request(receiver_id=1, sender_id=1)) is None
    assert await service.list_for_user(1) == []


@pytest.mark.asyncio
async def test_notification_routes(client: AsyncClient, runtime, db_session, auth_headers):
    service = NotificationService(db_session, runtime.fanout)
    notification = await service.notify(friend_request())

    response = await client.get("/notifications", headers=auth_headers(2))
    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == [notification.id]

    response = await client.patch(f"/notifications/{notification.id}/read", headers=auth_headers(3))
    assert response.status_code == 403

    response = await client.patch(f"/notifications/{notification.id}/read", headers=auth_headers(2))
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    response = await client.patch("/notifications/9999/read", headers=auth_headers(2))
    assert response.status_code == 404
