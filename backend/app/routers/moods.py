"""
Mood History Router
===================
GET  /api/moods  all mood entries, oldest first
POST /api/moods  append one mood entry

Labels are validated strictly against the closed mood set because they
feed the analytics scores. Mood entries are never deleted through the API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from app.db.base import InvalidMood
from app.db.store import get_store
from app.models.chat import WriteAck
from app.models.mood import MOOD_LABELS, MoodEntry, MoodEntryCreate
from app.services.conversation import get_conversation_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/moods", tags=["moods"])


@router.get(
    "",
    response_model=list[MoodEntry],
    summary="List mood entries",
)
async def list_moods() -> list[MoodEntry]:
    return get_store().list_moods()


@router.post(
    "",
    response_model=WriteAck,
    status_code=status.HTTP_200_OK,
    summary="Record a mood",
    responses={
        422: {"description": "Mood label outside the allowed set"},
        503: {"description": "Storage unavailable"},
    },
)
async def create_mood(body: MoodEntryCreate) -> WriteAck:
    try:
        entry = get_store().append_mood(body.mood)
    except InvalidMood as exc:
        logger.warning("Rejected invalid mood %r", body.mood)
        raise HTTPException(
            status_code=422,
            detail={
                "message": f"Invalid mood: {body.mood}",
                "code": "invalid_mood",
                "valid_moods": list(MOOD_LABELS),
            },
        ) from exc

    get_conversation_session().mark_stale()
    return WriteAck(id=entry.id, timestamp=entry.timestamp)
