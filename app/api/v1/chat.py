"""
Chat HTTP routes

Conversation creation, listing and history. Every route checks persisted
membership; live delivery happens over the socket.
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from app.core.config import settings
from app.core.deps import CurrentUserDep, RealtimeDep, SessionDep
from app.schemas.chat import (
    ConversationOut,
    ConversationRename,
    ConversationSummary,
    GroupConversationCreate,
    MessageOut,
    PresenceOut,
    PrivateConversationCreate,
)
from app.services.chat.conversation_service import ConversationService

router = APIRouter()


@router.post("/conversations/private", response_model=ConversationOut)
async def create_private_conversation(
    body: PrivateConversationCreate,
    user_id: CurrentUserDep,
    db: SessionDep,
):
    """Get or create the 1-1 conversation with another user"""
    return await ConversationService(db).get_or_create_private(user_id, body.user_id)


@router.post(
    "/conversations/group",
    response_model=ConversationOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_group_conversation(
    body: GroupConversationCreate,
    user_id: CurrentUserDep,
    db: SessionDep,
):
    return await ConversationService(db).create_group(user_id, body.users, body.name)


@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(user_id: CurrentUserDep, db: SessionDep):
    return await ConversationService(db).list_for_user(user_id)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageOut])
async def get_messages(
    conversation_id: int,
    user_id: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.history_limit, ge=1, le=settings.history_limit),
    before_id: Optional[int] = Query(None, ge=1),
):
    """Message history, oldest first; members only"""
    return await ConversationService(db).get_history(conversation_id, user_id, limit, before_id)


@router.patch("/conversations/{conversation_id}", response_model=ConversationOut)
async def rename_conversation(
    conversation_id: int,
    body: ConversationRename,
    user_id: CurrentUserDep,
    db: SessionDep,
):
    return await ConversationService(db).rename_group(conversation_id, user_id, body.name)


@router.get("/presence/{target_user_id}", response_model=PresenceOut)
async def get_presence(target_user_id: int, user_id: CurrentUserDep, realtime: RealtimeDep):
    sessions = realtime.presence.sessions_for(target_user_id)
    return PresenceOut(user_id=target_user_id, online=bool(sessions), sessions=len(sessions))
