"""
Store Contract
==============
The operations every persistence backend provides, the errors they
raise, and the timestamp/label helpers they share.

Ordering contract: list_messages() and list_moods() return records by
timestamp ascending, ties broken by id ascending. Two rows written in
the same instant therefore still read back in insertion order.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol

from app.models.chat import VALID_ROLES, ChatMessage
from app.models.mood import MOOD_LABELS, MoodEntry, normalise_mood


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StorageFailure(Exception):
    """The backing store is unreachable or rejected a read or write."""


class InvalidMood(ValueError):
    """A mood label outside the closed set was offered for storage."""

    def __init__(self, mood: object) -> None:
        self.mood = mood
        super().__init__(
            f"Invalid mood {mood!r}; expected one of {', '.join(MOOD_LABELS)}"
        )


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class ChatStore(Protocol):
    def append_message(
        self, role: str, content: str, mood: Optional[str] = None
    ) -> ChatMessage: ...

    def list_messages(self) -> list[ChatMessage]: ...

    def clear_messages(self) -> None: ...

    def append_mood(self, mood: str) -> MoodEntry: ...

    def list_moods(self) -> list[MoodEntry]: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC ISO-8601 so that string order equals time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str | datetime) -> datetime:
    """Read a stored timestamp back as an aware UTC datetime.

    Accepts our own ISO strings, Postgres ``Z`` suffixes, and the naive
    ``YYYY-MM-DD HH:MM:SS`` form SQLite's CURRENT_TIMESTAMP default writes.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def check_mood(mood: object) -> str:
    """Return the canonical label for *mood* or raise InvalidMood."""
    canonical = normalise_mood(mood)  # type: ignore[arg-type]
    if canonical is None:
        raise InvalidMood(mood)
    return canonical


def check_role(role: str) -> str:
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role {role!r}; expected 'user' or 'bot'")
    return role
