"""
SQLite Store
============
Embedded default backend: one database file holding the ``chats`` and
``moods`` tables.

Handles:
- Schema creation and the ``chats.mood`` column migration
- A single shared connection guarded by a lock (one writer, and safe to
  call from asyncio.to_thread())
- Timestamp assignment that never runs backwards within a table
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

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

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS moods (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        mood TEXT,
        timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chats (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        role TEXT,
        content TEXT,
        timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
        mood TEXT
    )
    """,
)

_MIGRATIONS = (
    # Databases created before bot messages kept their mood label
    "ALTER TABLE chats ADD COLUMN mood TEXT",
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_chats_timestamp ON chats(timestamp, id)",
    "CREATE INDEX IF NOT EXISTS idx_moods_timestamp ON moods(timestamp, id)",
)


class SQLiteStore:
    """Chat and mood persistence on a local SQLite file."""

    def __init__(self, db_path: str | Path = "database.db") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._setup_database()
        except sqlite3.Error as exc:
            raise StorageFailure(f"Could not open database at {self.db_path}: {exc}") from exc

        logger.debug("SQLite store ready at %s", self.db_path)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _setup_database(self) -> None:
        with self._conn:
            for statement in _SCHEMA:
                self._conn.execute(statement)
            for migration in _MIGRATIONS:
                try:
                    self._conn.execute(migration)
                except sqlite3.OperationalError:
                    pass  # Column already exists
            for statement in _INDEXES:
                self._conn.execute(statement)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Serialise access and turn driver errors into StorageFailure."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                logger.error("SQLite %s failed: %s", operation, exc)
                raise StorageFailure(f"{operation} failed: {exc}") from exc

    def _next_timestamp(self, conn: sqlite3.Connection, table: str) -> str:
        # Clock steps backwards must not reorder rows relative to ids
        now = utcnow()
        row = conn.execute(f"SELECT MAX(timestamp) AS latest FROM {table}").fetchone()
        if row is not None and row["latest"]:
            latest = parse_timestamp(row["latest"])
            if latest > now:
                now = latest
        return format_timestamp(now)

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def append_message(
        self, role: str, content: str, mood: Optional[str] = None
    ) -> ChatMessage:
        check_role(role)
        if mood is not None:
            mood = check_mood(mood)

        with self._guard("append_message") as conn:
            with conn:
                timestamp = self._next_timestamp(conn, "chats")
                cur = conn.execute(
                    "INSERT INTO chats (role, content, timestamp, mood) VALUES (?, ?, ?, ?)",
                    (role, content, timestamp, mood),
                )
                message_id = cur.lastrowid

        return ChatMessage(
            id=message_id,
            role=role,
            content=content,
            timestamp=parse_timestamp(timestamp),
            mood=mood,
        )

    def list_messages(self) -> list[ChatMessage]:
        with self._guard("list_messages") as conn:
            rows = conn.execute(
                """
                SELECT id, role, content, timestamp, mood
                FROM chats
                ORDER BY timestamp ASC, id ASC
                """
            ).fetchall()

        return [
            ChatMessage(
                id=row["id"],
                role=row["role"],
                content=row["content"] or "",
                timestamp=parse_timestamp(row["timestamp"]),
                mood=row["mood"],
            )
            for row in rows
        ]

    def clear_messages(self) -> None:
        with self._guard("clear_messages") as conn:
            with conn:
                cur = conn.execute("DELETE FROM chats")
        logger.info("Cleared %d chat messages", cur.rowcount)

    # ------------------------------------------------------------------
    # Moods
    # ------------------------------------------------------------------

    def append_mood(self, mood: str) -> MoodEntry:
        mood = check_mood(mood)

        with self._guard("append_mood") as conn:
            with conn:
                timestamp = self._next_timestamp(conn, "moods")
                cur = conn.execute(
                    "INSERT INTO moods (mood, timestamp) VALUES (?, ?)",
                    (mood, timestamp),
                )
                entry_id = cur.lastrowid

        return MoodEntry(id=entry_id, mood=mood, timestamp=parse_timestamp(timestamp))

    def list_moods(self) -> list[MoodEntry]:
        with self._guard("list_moods") as conn:
            rows = conn.execute(
                "SELECT id, mood, timestamp FROM moods ORDER BY timestamp ASC, id ASC"
            ).fetchall()

        return [
            MoodEntry(
                id=row["id"],
                mood=row["mood"] or "",
                timestamp=parse_timestamp(row["timestamp"]),
            )
            for row in rows
        ]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
