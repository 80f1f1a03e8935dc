"""
Receipt tracker tests
"""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from unittest.mock import patch

from app.core.errors import PermissionDeniedError, ValidationError
from app.models.message import MessageReceipt
from app.services.chat.crud import ReceiptCRUD


async def receipt_rows(session_factory, user_id):
    async with session_factory() as db:
        result = await db.execute(
            select(MessageReceipt.message_id, MessageReceipt.status)
            .where(MessageReceipt.user_id == user_id)
            .order_by(MessageReceipt.message_id)
        )
        return list(result.all())


async def send_messages(runtime, conversation_id, sender_id, count):
    ids = []
    for i in range(count):
        outcome = await runtime.pipeline.send(sender_id, conversation_id, f"message {i}")
        ids.append(outcome.message["id"])
    return ids


@pytest.mark.asyncio
async def test_mark_seen_moves_receipts_to_read_and_broadcasts_once(
    runtime, connect_user, seed_conversation, session_factory
):
    conversation_id = await seed_conversation([1, 2])
    first, second = await send_messages(runtime, conversation_id, 2, 2)
    bob = await connect_user(2)
    runtime.hub.join_conversation(bob, conversation_id)

    marked = await runtime.receipts.mark_seen(1, conversation_id, [first, second])

    assert marked == [first, second]
    assert await receipt_rows(session_factory, 1) == [(first, "read"), (second, "read")]
    assert bob.websocket.events("message_seen") == [
        {"userId": 1, "conversationId": conversation_id, "messageIds": [first, second]}
    ]


@pytest.mark.asyncio
async def test_mark_seen_is_idempotent(runtime, seed_conversation, session_factory):
    conversation_id = await seed_conversation([1, 2])
    ids = await send_messages(runtime, conversation_id, 2, 3)

    await runtime.receipts.mark_seen(1, conversation_id, ids[:2])
    await runtime.receipts.mark_seen(1, conversation_id, ids[1:])
    await runtime.receipts.mark_seen(1, conversation_id, ids + ids)

    assert await receipt_rows(session_factory, 1) == [(mid, "read") for mid in ids]


@pytest.mark.asyncio
async def test_read_never_downgrades(runtime, seed_conversation, session_factory):
    conversation_id = await seed_conversation([1, 2])
    (message_id,) = await send_messages(runtime, conversation_id, 2, 1)
    await runtime.receipts.mark_seen(1, conversation_id, [message_id])

    async with session_factory() as db:
        status = await ReceiptCRUD.upsert_status(db, message_id, 1, "delivered")

    assert status == "read"
    assert await receipt_rows(session_factory, 1) == [(message_id, "read")]


@pytest.mark.asyncio
async def test_mark_seen_creates_missing_receipt(runtime, seed_conversation, session_factory):
    conversation_id = await seed_conversation([1, 2])
    (message_id,) = await send_messages(runtime, conversation_id, 2, 1)

    # the sender has no receipt of their own until they mark it
    assert await receipt_rows(session_factory, 2) == []
    await runtime.receipts.mark_seen(2, conversation_id, [message_id])
    assert await receipt_rows(session_factory, 2) == [(message_id, "read")]


@pytest.mark.asyncio
async def test_unknown_ids_are_skipped(runtime, connect_user, seed_conversation, session_factory):
    conversation_id = await seed_conversation([1, 2])
    other_conversation = await seed_conversation([1, 3])
    (mine,) = await send_messages(runtime, conversation_id, 2, 1)
    (foreign,) = await send_messages(runtime, other_conversation, 3, 1)
    alice = await connect_user(1)
    runtime.hub.join_conversation(alice, conversation_id)

    marked = await runtime.receipts.mark_seen(1, conversation_id, [mine, foreign, 99999])

    assert marked == [mine]
    assert (foreign, "read") not in await receipt_rows(session_factory, 1)
    # still one broadcast for the batch
    assert len(alice.websocket.events("message_seen")) == 1


@pytest.mark.asyncio
async def test_one_failed_write_does_not_stop_the_batch(
    runtime, connect_user, seed_conversation, session_factory
):
    conversation_id = await seed_conversation([1, 2])
    ids = await send_messages(runtime, conversation_id, 2, 3)
    bob = await connect_user(2)
    runtime.hub.join_conversation(bob, conversation_id)

    original = ReceiptCRUD.upsert_status

    async def flaky(db, message_id, user_id, status):
        if message_id == ids[1]:
            raise SQLAlchemyError("deadlock")
        return await original(db, message_id, user_id, status)

    with patch.object(ReceiptCRUD, "upsert_status", new=flaky):
        marked = await runtime.receipts.mark_seen(1, conversation_id, ids)

    assert marked == [ids[0], ids[2]]
    assert await receipt_rows(session_factory, 1) == [
        (ids[0], "read"),
        (ids[1], "delivered"),
        (ids[2], "read"),
    ]
    assert bob.websocket.events("message_seen") == [
        {"userId": 1, "conversationId": conversation_id, "messageIds": ids}
    ]


@pytest.mark.asyncio
async def test_non_member_cannot_mark_seen(runtime, seed_conversation):
    conversation_id = await seed_conversation([1, 2])
    (message_id,) = await send_messages(runtime, conversation_id, 2, 1)

    with pytest.raises(PermissionDeniedError):
        await runtime.receipts.mark_seen(7, conversation_id, [message_id])


@pytest.mark.asyncio
async def test_empty_batch_rejected(runtime, seed_conversation):
    conversation_id = await seed_conversation([1, 2])
    with pytest.raises(ValidationError):
        await runtime.receipts.mark_seen(1, conversation_id, [])
