"""
Conversation Session Schemas
============================
Request/response models for the turn-taking API.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from app.models.chat import ChatMessage
from app.models.mood import MoodEntry


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_CLASSIFICATION = "awaiting_classification"
    SETTLED = "settled"


class TurnRequest(BaseModel):
    """Payload for POST /api/session/turns."""

    message: str


class TurnResult(BaseModel):
    """Both halves of a settled turn, as persisted."""

    user_message: ChatMessage
    bot_message: ChatMessage
    suggestions: list[str] = Field(default_factory=list)
    used_fallback: bool = Field(
        ...,
        description="True if the companion model failed and the fixed fallback reply was used.",
    )


class SessionSnapshot(BaseModel):
    state: TurnState
    messages: list[ChatMessage]
    moods: list[MoodEntry]
