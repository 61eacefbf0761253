"""
Mood Classifier Service
=======================
Asks the Claude API for a reply to the student's latest message, the
mood it detects, and optional coping suggestions, all in one call.

Flow:
    1. The session hands over the new message plus a windowed history
    2. History is mapped to Claude roles (bot → assistant) and made to
       alternate, starting with a user turn
    3. The system prompt carries the persona, the closed mood set, the
       safety rules and the JSON schema
    4. The reply is parsed leniently and validated into MoodClassification

Anything that goes wrong (transport, status code, timeout, bad JSON,
schema mismatch) raises CollaboratorFailure. The session decides what
to show instead; this module never invents a reply.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.models.mood import MOOD_LABELS, MoodClassification

logger = logging.getLogger(__name__)

SELF_HARM_RESPONSE = (
    "I'm really sorry that you're feeling this way. You are not alone. "
    "Please consider talking to someone you trust or a mental health professional."
)

SUPPORT_DISCLAIMER = "This is for support only and not a replacement for professional care."

_MOOD_ENUM = " | ".join(f'"{label}"' for label in MOOD_LABELS)

_SYSTEM_PROMPT = f"""\
You are "MindfulMate", an empathetic mental health companion for students.

Your goals:
1. Detect the user's mood: {", ".join(MOOD_LABELS)}.
2. Provide empathetic, supportive, and motivational responses.
3. Suggest relaxation techniques (breathing, meditation, walks, etc.) when appropriate.
4. Maintain a friendly, non-judgmental tone.

SAFETY RULES:
- Never diagnose mental illness.
- Never replace professional therapy.
- If the user expresses self-harm (e.g. "I want to die", "I want to kill myself"), \
respond with: "{SELF_HARM_RESPONSE}" and suggest calling a helpline or contacting a counselor.
- Always include a subtle disclaimer if giving advice: "{SUPPORT_DISCLAIMER}"

RESPONSE FORMAT:
Return ONLY valid JSON with no markdown fences and no explanation:
{{
  "mood": {_MOOD_ENUM},
  "response": "<your empathetic response>",
  "suggestions": ["<suggestion 1>", "<suggestion 2>"]
}}
"suggestions" is optional.
"""


class CollaboratorFailure(Exception):
    """The companion model could not produce a usable reply."""


class MoodClassifierService:
    """Gets a mood label and a supportive reply from the Claude API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._api_url = "https://api.anthropic.com/v1/messages"

    async def classify(
        self,
        message: str,
        history: Sequence[dict[str, str]] = (),
    ) -> MoodClassification:
        """Return the model's reply to *message* given prior *history*.

        ``history`` is oldest first, each item ``{"role": "user"|"bot",
        "content": str}``. Raises CollaboratorFailure on any failure.
        """
        messages = build_messages(message, history)

        try:
            raw = await self._call_claude_api(messages)
        except httpx.HTTPStatusError as exc:
            raise CollaboratorFailure(
                f"Claude API returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CollaboratorFailure(f"Claude API request failed: {exc}") from exc
        except (ValueError, KeyError) as exc:
            # Non-JSON body or a content block without text
            raise CollaboratorFailure("Claude API returned a malformed body") from exc

        try:
            return self._parse_response(raw)
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "Unusable Claude reply: %s",
                raw[:200] if raw else "empty",
            )
            raise CollaboratorFailure("Claude reply did not match the schema") from exc

    async def _call_claude_api(self, messages: list[dict[str, str]]) -> str:
        """POST the conversation and return the concatenated text blocks."""
        headers = {
            "x-api-key": self._settings.anthropic_api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        payload = {
            "model": self._settings.anthropic_model,
            "max_tokens": self._settings.anthropic_max_tokens,
            "system": _SYSTEM_PROMPT,
            "messages": messages,
        }

        async with httpx.AsyncClient(timeout=self._settings.anthropic_timeout_seconds) as client:
            response = await client.post(
                self._api_url,
                headers=headers,
                json=payload,
            )
            response.raise_for_status()

        data = response.json()

        text_parts = [
            block["text"]
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        return "\n".join(text_parts)

    def _parse_response(self, raw_response: str) -> MoodClassification:
        """Parse Claude's JSON reply into a validated MoodClassification.

        Tolerates markdown code fences, leading/trailing whitespace, and
        commentary before or after the JSON object.
        """
        text = raw_response.strip()

        if text.startswith("```"):
            text = text.split("\n", 1)[-1]
        if text.endswith("```"):
            text = text.rsplit("```", 1)[0]
        text = text.strip()

        if not text.startswith("{"):
            start = text.find("{")
            end = text.rfind("}") + 1
            if start != -1 and end > start:
                text = text[start:end]

        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError("Claude reply is not a JSON object")
        return MoodClassification.model_validate(parsed)


def build_messages(
    message: str, history: Sequence[dict[str, Any]] = ()
) -> list[dict[str, str]]:
    """Turn session history plus the new message into Claude ``messages``.

    Claude wants strictly alternating roles that open with ``user``, so
    leading bot turns are dropped and back-to-back turns from the same
    side are merged.
    """
    turns = [
        {
            "role": "user" if item.get("role") == "user" else "assistant",
            "content": str(item.get("content") or ""),
        }
        for item in history
    ]
    turns.append({"role": "user", "content": message})

    merged: list[dict[str, str]] = []
    for turn in turns:
        if not turn["content"].strip():
            continue
        if not merged and turn["role"] != "user":
            continue
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1]["content"] += "\n\n" + turn["content"]
        else:
            merged.append(dict(turn))
    return merged


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_classifier: MoodClassifierService | None = None


def get_mood_classifier() -> MoodClassifierService:
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = MoodClassifierService()
    return _default_classifier
