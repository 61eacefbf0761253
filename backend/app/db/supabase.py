"""
Supabase Store
==============
Hosted alternative to the SQLite store. Same ``chats`` and ``moods``
tables, same ordering contract, reached through the Supabase client's
PostgREST query builder.

Uses the service_role key because this backend is the only writer;
there is no per-user row level security in a single-user deployment.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from supabase import Client, create_client

from app.config import get_settings
from app.db.base import (
    StorageFailure,
    check_mood,
    check_role,
    format_timestamp,
    parse_timestamp,
    utcnow,
)
from app.models.chat import ChatMessage
from app.models.mood import MoodEntry

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)


class SupabaseStore:
    """Chat and mood persistence on Supabase tables."""

    def __init__(self, client: Client | None = None) -> None:
        self._db = client or get_supabase_client()

    def _execute(self, operation: str, query: Any) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            logger.error("Supabase %s failed: %s", operation, exc)
            raise StorageFailure(f"{operation} failed: {exc}") from exc

    def _next_timestamp(self, table: str) -> str:
        # Clock steps backwards must not reorder rows relative to ids
        now = utcnow()
        result = self._execute(
            f"latest_{table}_timestamp",
            self._db.table(table)
            .select("timestamp")
            .order("timestamp", desc=True)
            .limit(1),
        )
        if result.data:
            latest = parse_timestamp(result.data[0]["timestamp"])
            if latest > now:
                now = latest
        return format_timestamp(now)

    def _inserted_row(self, operation: str, result: Any) -> dict:
        if not result.data:
            logger.error("Supabase %s returned no row", operation)
            raise StorageFailure(f"{operation} returned no row")
        return result.data[0]

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def append_message(
        self, role: str, content: str, mood: Optional[str] = None
    ) -> ChatMessage:
        check_role(role)
        if mood is not None:
            mood = check_mood(mood)

        result = self._execute(
            "append_message",
            self._db.table("chats").insert({
                "role": role,
                "content": content,
                "mood": mood,
                "timestamp": self._next_timestamp("chats"),
            }),
        )
        row = self._inserted_row("append_message", result)
        return _message_from_row(row)

    def list_messages(self) -> list[ChatMessage]:
        result = self._execute(
            "list_messages",
            self._db.table("chats")
            .select("id, role, content, timestamp, mood")
            .order("timestamp", desc=False)
            .order("id", desc=False),
        )
        return [_message_from_row(row) for row in (result.data or [])]

    def clear_messages(self) -> None:
        # PostgREST refuses an unfiltered DELETE; every id is >= 0
        self._execute(
            "clear_messages",
            self._db.table("chats").delete().gte("id", 0),
        )
        logger.info("Cleared chat messages")

    # ------------------------------------------------------------------
    # Moods
    # ------------------------------------------------------------------

    def append_mood(self, mood: str) -> MoodEntry:
        mood = check_mood(mood)

        result = self._execute(
            "append_mood",
            self._db.table("moods").insert({
                "mood": mood,
                "timestamp": self._next_timestamp("moods"),
            }),
        )
        row = self._inserted_row("append_mood", result)
        return _mood_from_row(row)

    def list_moods(self) -> list[MoodEntry]:
        result = self._execute(
            "list_moods",
            self._db.table("moods")
            .select("id, mood, timestamp")
            .order("timestamp", desc=False)
            .order("id", desc=False),
        )
        return [_mood_from_row(row) for row in (result.data or [])]


def _message_from_row(row: dict) -> ChatMessage:
    return ChatMessage(
        id=int(row["id"]),
        role=row["role"],
        content=row.get("content") or "",
        timestamp=parse_timestamp(row["timestamp"]),
        mood=row.get("mood"),
    )


def _mood_from_row(row: dict) -> MoodEntry:
    return MoodEntry(
        id=int(row["id"]),
        mood=row.get("mood") or "",
        timestamp=parse_timestamp(row["timestamp"]),
    )
