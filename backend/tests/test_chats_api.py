"""
Tests for /api/chats and /api/moods
===================================
Covers:
- POST /api/chats then GET /api/chats round-trips role/content with
  server-assigned id and timestamp
- POST /api/chats with a mood keeps it; invalid mood → 422 with valid set
- Invalid role → 422
- DELETE /api/chats empties chats, leaves /api/moods untouched
- POST /api/moods validates against the closed set
- GET /api/moods ascending order
- DELETE /api/chats also empties the session: its snapshot and the
  history sent with the next turn hold nothing that was deleted
- POST /api/chats and /api/moods show up in the session snapshot and
  in the next turn's history
- Storage failure → 503 storage_unavailable
- Health check

Run: pytest tests/test_chats_api.py -v
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.db.base import StorageFailure
from app.db.sqlite import SQLiteStore
from app.models.mood import MoodClassification
from app.services.conversation import ConversationSession


@pytest.fixture
def store(tmp_path):
    s = SQLiteStore(tmp_path / "api.db")
    yield s
    s.close()


@pytest.fixture
def classifier():
    c = MagicMock()
    c.classify = AsyncMock(
        return_value=MoodClassification(mood="Sad", response="I'm sorry.", suggestions=[])
    )
    return c


@pytest.fixture
def session(store, classifier):
    return ConversationSession(store, classifier)


@pytest.fixture
def client(store, session):
    with (
        patch("app.routers.chats.get_store", return_value=store),
        patch("app.routers.moods.get_store", return_value=store),
        patch("app.routers.chats.get_conversation_session", return_value=session),
        patch("app.routers.moods.get_conversation_session", return_value=session),
        patch("app.routers.session.get_conversation_session", return_value=session),
    ):
        from app.main import app
        yield TestClient(app)


class TestChats:

    def test_post_then_get(self, client):
        before = datetime.now().astimezone()
        resp = client.post("/api/chats", json={"role": "user", "content": "I failed my exam"})

        assert resp.status_code == 200
        ack = resp.json()
        assert ack["success"] is True
        assert isinstance(ack["id"], int)

        listed = client.get("/api/chats").json()
        assert listed[-1]["role"] == "user"
        assert listed[-1]["content"] == "I failed my exam"
        assert listed[-1]["id"] == ack["id"]
        assert datetime.fromisoformat(listed[-1]["timestamp"]) >= before

    def test_bot_message_with_mood(self, client):
        client.post("/api/chats", json={"role": "bot", "content": "Sounds rough.", "mood": "Sad"})
        assert client.get("/api/chats").json()[0]["mood"] == "Sad"

    def test_invalid_mood_rejected(self, client):
        resp = client.post(
            "/api/chats", json={"role": "bot", "content": "hmm", "mood": "Ecstatic"}
        )
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["code"] == "invalid_mood"
        assert "Happy" in detail["valid_moods"]

    def test_invalid_role_rejected(self, client):
        resp = client.post("/api/chats", json={"role": "assistant", "content": "hi"})
        assert resp.status_code == 422

    def test_order_is_call_order(self, client):
        for text in ("one", "two", "three"):
            client.post("/api/chats", json={"role": "user", "content": text})
        assert [m["content"] for m in client.get("/api/chats").json()] == ["one", "two", "three"]

    def test_delete_clears_chats_but_not_moods(self, client):
        client.post("/api/chats", json={"role": "user", "content": "hello"})
        client.post("/api/moods", json={"mood": "Happy"})

        resp = client.delete("/api/chats")
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        assert client.get("/api/chats").json() == []
        assert [m["mood"] for m in client.get("/api/moods").json()] == ["Happy"]

    def test_delete_empty_history_succeeds(self, client):
        assert client.delete("/api/chats").status_code == 200


class TestMoods:

    def test_post_then_get(self, client):
        client.post("/api/moods", json={"mood": "Anxious"})
        client.post("/api/moods", json={"mood": "Happy"})

        moods = client.get("/api/moods").json()
        assert [m["mood"] for m in moods] == ["Anxious", "Happy"]
        assert moods[0]["id"] < moods[1]["id"]

    def test_invalid_mood_rejected(self, client):
        resp = client.post("/api/moods", json={"mood": "Ecstatic"})
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert "Ecstatic" in detail["message"]
        assert sorted(detail["valid_moods"]) == sorted(
            ["Happy", "Neutral", "Stressed", "Sad", "Anxious", "Angry"]
        )
        assert client.get("/api/moods").json() == []

    def test_missing_mood_field(self, client):
        assert client.post("/api/moods", json={}).status_code == 422


class TestStorageUnavailable:

    def test_read_failure_is_503(self):
        broken = MagicMock()
        broken.list_messages.side_effect = StorageFailure("database is locked")

        with patch("app.routers.chats.get_store", return_value=broken):
            from app.main import app
            resp = TestClient(app).get("/api/chats")

        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "storage_unavailable"

    def test_write_failure_is_503(self):
        broken = MagicMock()
        broken.append_mood.side_effect = StorageFailure("disk full")

        with patch("app.routers.moods.get_store", return_value=broken):
            from app.main import app
            resp = TestClient(app).post("/api/moods", json={"mood": "Happy"})

        assert resp.status_code == 503


def test_health_check():
    from app.main import app
    resp = TestClient(app).get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestSessionStaysInSync:

    def test_delete_chats_empties_session_history(self, client, classifier):
        assert client.post("/api/session/turns", json={"message": "secret confession"}).status_code == 200

        assert client.delete("/api/chats").status_code == 200

        snapshot = client.get("/api/session").json()
        assert snapshot["messages"] == []

        assert client.post("/api/session/turns", json={"message": "hello again"}).status_code == 200
        history = classifier.classify.call_args[0][1]
        assert history == []

    def test_posted_chats_reach_session(self, client, classifier):
        client.get("/api/session")
        client.post("/api/chats", json={"role": "user", "content": "from another tab"})
        client.post("/api/chats", json={"role": "bot", "content": "noted", "mood": "Neutral"})

        snapshot = client.get("/api/session").json()
        assert [m["content"] for m in snapshot["messages"]] == ["from another tab", "noted"]

        client.post("/api/session/turns", json={"message": "still there?"})
        history = classifier.classify.call_args[0][1]
        assert history == [
            {"role": "user", "content": "from another tab"},
            {"role": "bot", "content": "noted"},
        ]

    def test_posted_mood_reaches_session(self, client):
        client.get("/api/session")
        client.post("/api/moods", json={"mood": "Happy"})

        snapshot = client.get("/api/session").json()
        assert [m["mood"] for m in snapshot["moods"]] == ["Happy"]

    def test_rejected_chat_leaves_session_loaded(self, client, session):
        client.get("/api/session")
        client.post("/api/chats", json={"role": "bot", "content": "hmm", "mood": "Ecstatic"})
        assert session.loaded is True
