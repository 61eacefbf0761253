"""
Conversation Session
====================
Runs one student turn end to end:

    1. Ignore blank input; reject input while a turn is still in flight
    2. Persist the user message (awaited, before anything else)
    3. Ask the companion model for a reply with a windowed history
    4. On any model failure, substitute the fixed fallback reply
    5. Persist the bot message, then the mood entry
    6. Re-fetch mood history from the store

The in-memory message list only ever holds rows the store has confirmed.
If the user message cannot be saved the turn fails before the model is
called; the model failing never fails the turn.

Store calls are synchronous, so they run in a worker thread to keep the
event loop free while SQLite or Supabase is busy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Optional

from app.config import get_settings
from app.db.base import ChatStore
from app.db.store import get_store
from app.models.chat import ChatMessage
from app.models.mood import FALLBACK_CLASSIFICATION, MoodClassification, MoodEntry
from app.models.session import SessionSnapshot, TurnResult, TurnState
from app.services.mood_classifier import MoodClassifierService, get_mood_classifier

logger = logging.getLogger(__name__)


class TurnInProgress(Exception):
    """A new message arrived while the previous turn is awaiting its reply."""


def history_window(
    messages: Sequence[ChatMessage], max_turns: Optional[int]
) -> list[dict[str, str]]:
    """The last *max_turns* turns of *messages* as ``{role, content}`` dicts.

    A turn starts at a user message. ``None`` keeps the whole history.
    """
    if max_turns is not None and max_turns <= 0:
        return []

    start = 0
    if max_turns is not None:
        user_indices = [i for i, m in enumerate(messages) if m.role == "user"]
        if len(user_indices) > max_turns:
            start = user_indices[-max_turns]

    return [{"role": m.role, "content": m.content} for m in messages[start:]]


class ConversationSession:
    """One student's conversation state with injected store and model."""

    def __init__(
        self,
        store: ChatStore,
        classifier: MoodClassifierService,
        history_window_turns: Optional[int] = None,
        ai_enabled: bool = True,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._history_window_turns = history_window_turns
        self._ai_enabled = ai_enabled

        self._messages: list[ChatMessage] = []
        self._moods: list[MoodEntry] = []
        self._state = TurnState.IDLE
        self._loaded = False

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def moods(self) -> list[MoodEntry]:
        return list(self._moods)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(state=self._state, messages=self.messages, moods=self.moods)

    async def load(self) -> None:
        """Replace in-memory state with what the store holds."""
        self._messages = await asyncio.to_thread(self._store.list_messages)
        self._moods = await asyncio.to_thread(self._store.list_moods)
        self._loaded = True

    async def refresh_moods(self) -> list[MoodEntry]:
        self._moods = await asyncio.to_thread(self._store.list_moods)
        return self.moods

    async def submit(self, text: str) -> Optional[TurnResult]:
        """Run one turn. Returns None for blank input.

        Raises TurnInProgress if a turn is already awaiting its reply and
        StorageFailure if a message cannot be persisted.
        """
        if not text or not text.strip():
            logger.debug("Ignoring blank submission")
            return None

        if self._state is TurnState.AWAITING_CLASSIFICATION:
            logger.warning("Rejected submission while a turn is in flight")
            raise TurnInProgress("Still waiting for the reply to the previous message")

        self._state = TurnState.AWAITING_CLASSIFICATION
        try:
            if not self._loaded:
                await self.load()

            user_message = await asyncio.to_thread(self._store.append_message, "user", text)
            history = history_window(self._messages, self._history_window_turns)
            self._messages.append(user_message)

            classification, used_fallback = await self._classify(text, history)

            bot_message = await asyncio.to_thread(
                self._store.append_message,
                "bot",
                classification.response,
                classification.mood,
            )
            self._messages.append(bot_message)

            if bot_message.mood:
                await asyncio.to_thread(self._store.append_mood, bot_message.mood)

            await self.refresh_moods()
        except BaseException:
            self._state = TurnState.IDLE
            raise

        self._state = TurnState.SETTLED
        logger.info(
            "Turn settled: user=%s bot=%s mood=%s fallback=%s",
            user_message.id,
            bot_message.id,
            bot_message.mood,
            used_fallback,
        )
        return TurnResult(
            user_message=user_message,
            bot_message=bot_message,
            suggestions=classification.suggestions,
            used_fallback=used_fallback,
        )

    async def _classify(
        self, text: str, history: list[dict[str, str]]
    ) -> tuple[MoodClassification, bool]:
        if not self._ai_enabled:
            logger.debug("AI classification disabled, answering with fallback reply")
            return FALLBACK_CLASSIFICATION, True

        try:
            classification = await self._classifier.classify(text, history)
        except Exception:
            # A model failure must never cost the student a reply
            logger.exception("Companion model failed, answering with fallback reply")
            return FALLBACK_CLASSIFICATION, True

        if classification is None:
            logger.warning("Companion model returned nothing, answering with fallback reply")
            return FALLBACK_CLASSIFICATION, True
        return classification, False

    def mark_stale(self) -> None:
        """Re-read the store before the next snapshot or turn.

        Called after chats or moods are written outside a turn.
        """
        self._loaded = False

    async def clear(self) -> None:
        """Delete all chat messages. Mood history is kept."""
        await asyncio.to_thread(self._store.clear_messages)
        self._messages = []


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_session: ConversationSession | None = None


def get_conversation_session() -> ConversationSession:
    global _default_session
    if _default_session is None:
        settings = get_settings()
        _default_session = ConversationSession(
            store=get_store(),
            classifier=get_mood_classifier(),
            history_window_turns=settings.history_window_turns,
            ai_enabled=settings.enable_ai_classification,
        )
    return _default_session
