"""
Chat History Router
===================
GET    /api/chats  all chat messages, oldest first
POST   /api/chats  append one message
DELETE /api/chats  clear the whole chat history

Messages are append-only; there is no update and no selective delete.
Writes and clears go through the shared conversation session too, so
its history never holds a message the store no longer has. Clearing
chats leaves mood history untouched. StorageFailure is mapped to 503 by
the app-level handler in app.main.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from app.db.base import InvalidMood
from app.db.store import get_store
from app.models.chat import ChatMessage, ChatMessageCreate, WriteAck
from app.models.mood import MOOD_LABELS
from app.services.conversation import get_conversation_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["chats"])


@router.get(
    "",
    response_model=list[ChatMessage],
    summary="List chat messages",
)
async def list_chats() -> list[ChatMessage]:
    return get_store().list_messages()


@router.post(
    "",
    response_model=WriteAck,
    summary="Append a chat message",
    description="The server assigns the id and timestamp.",
    responses={
        422: {"description": "Invalid role or mood label"},
        503: {"description": "Storage unavailable"},
    },
)
async def create_chat(body: ChatMessageCreate) -> WriteAck:
    try:
        message = get_store().append_message(body.role, body.content, body.mood)
    except InvalidMood as exc:
        logger.warning("Rejected chat message with invalid mood %r", body.mood)
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "code": "invalid_mood",
                "valid_moods": list(MOOD_LABELS),
            },
        ) from exc

    get_conversation_session().mark_stale()
    return WriteAck(id=message.id, timestamp=message.timestamp)


@router.delete(
    "",
    response_model=WriteAck,
    summary="Clear chat history",
    description="Deletes every chat message. Mood history is kept.",
)
async def clear_chats() -> WriteAck:
    await get_conversation_session().clear()
    return WriteAck()
