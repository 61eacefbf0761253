"""
Conversation Session Router
===========================
GET    /api/session        current messages, moods and turn state
POST   /api/session/turns  send a message and get the companion's reply
DELETE /api/session        clear chat history (mood history is kept)

A turn only fails visibly when the store cannot save a message (503).
If the companion model is down the student still gets the fallback
reply with a Neutral mood. Blank input is accepted and ignored (204);
a second message while the first is still awaiting its reply is 409.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from app.models.chat import WriteAck
from app.models.session import SessionSnapshot, TurnRequest, TurnResult
from app.services.conversation import TurnInProgress, get_conversation_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get(
    "",
    response_model=SessionSnapshot,
    summary="Get the conversation session",
)
async def get_session() -> SessionSnapshot:
    session = get_conversation_session()
    if not session.loaded:
        await session.load()
    return session.snapshot()


@router.post(
    "/turns",
    response_model=TurnResult,
    status_code=status.HTTP_200_OK,
    summary="Send a message",
    description=(
        "Persists the message, asks the companion model for a reply and a mood "
        "label, persists both, and returns the settled turn."
    ),
    responses={
        200: {"description": "Turn settled (possibly with the fallback reply)"},
        204: {"description": "Blank message ignored"},
        409: {"description": "Previous message still awaiting its reply"},
        503: {"description": "Storage unavailable, message not saved"},
    },
)
async def submit_turn(body: TurnRequest):
    session = get_conversation_session()

    try:
        result = await session.submit(body.message)
    except TurnInProgress as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "code": "turn_in_progress"},
        ) from exc

    if result is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return result


@router.delete(
    "",
    response_model=WriteAck,
    summary="Clear the conversation",
    description="Deletes every chat message. Mood history is kept.",
)
async def clear_session() -> WriteAck:
    await get_conversation_session().clear()
    return WriteAck()
