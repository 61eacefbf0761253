"""
Mood Schemas
============
Pydantic models for mood history and for the structured reply the
companion model returns on every turn.

Key design decisions:
- MoodEntry.mood is a plain string on the way OUT. Rows written before a
  label change must still load; analytics scores unknown labels as
  Neutral instead of failing.
- Labels are checked against VALID_MOODS on the way IN (store boundary
  and model reply parsing).
- MoodEntry has no link to the chat message that produced it. Mood
  history outlives a chat clear.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

MOOD_LABELS: tuple[str, ...] = (
    "Happy",
    "Neutral",
    "Stressed",
    "Sad",
    "Anxious",
    "Angry",
)

VALID_MOODS = frozenset(MOOD_LABELS)

_CANONICAL_MOODS = {label.lower(): label for label in MOOD_LABELS}


def normalise_mood(label: str) -> Optional[str]:
    """Return the canonical spelling of *label*, or None if it is not a mood."""
    if not isinstance(label, str):
        return None
    return _CANONICAL_MOODS.get(label.strip().lower())


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class MoodEntry(BaseModel):
    """One stored mood observation."""

    id: int
    mood: str
    timestamp: datetime


class MoodEntryCreate(BaseModel):
    """Payload for POST /api/moods. The label is validated by the store."""

    mood: str = Field(..., description="One of: " + ", ".join(MOOD_LABELS))


# ---------------------------------------------------------------------------
# Companion reply
# ---------------------------------------------------------------------------

class MoodClassification(BaseModel):
    """Structured output from the companion model for one turn."""

    mood: str = Field(..., description="Detected mood, one of MOOD_LABELS.")
    response: str = Field(
        ...,
        min_length=1,
        description="Supportive reply shown to the student. May contain markdown.",
    )
    suggestions: list[str] = Field(
        default_factory=list,
        description="Optional coping suggestions, e.g. a breathing exercise.",
    )

    @field_validator("mood")
    @classmethod
    def _mood_in_closed_set(cls, value: str) -> str:
        canonical = normalise_mood(value)
        if canonical is None:
            raise ValueError(f"mood must be one of {', '.join(MOOD_LABELS)}")
        return canonical

    @field_validator("response")
    @classmethod
    def _response_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("response must not be blank")
        return value

    @field_validator("suggestions", mode="before")
    @classmethod
    def _suggestions_default(cls, value):
        # Models sometimes send null instead of omitting the key
        return [] if value is None else value


FALLBACK_CLASSIFICATION = MoodClassification(
    mood="Neutral",
    response=(
        "I'm here for you, but I'm having a little trouble connecting right now. "
        "How can I help?"
    ),
    suggestions=["Take a deep breath", "Try again in a moment"],
)
