"""
Chat Message Schemas
====================
Pydantic models for the chat history API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

VALID_ROLES = frozenset({"user", "bot"})

Role = Literal["user", "bot"]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """One stored chat turn half. Never updated after insert."""

    id: int
    role: Role
    content: str
    timestamp: datetime
    mood: Optional[str] = Field(
        default=None,
        description="Mood label, only present on bot messages produced by classification.",
    )


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------

class ChatMessageCreate(BaseModel):
    """Payload for POST /api/chats."""

    role: Role
    content: str
    mood: Optional[str] = None


class WriteAck(BaseModel):
    """Acknowledgement returned by the append endpoints."""

    success: bool = True
    id: Optional[int] = None
    timestamp: Optional[datetime] = None
