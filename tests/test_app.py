"""Tests for the FastAPI app (app.py) routes and caching behaviour."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi import HTTPException


# ── Health ──────────────────────────


class TestHealth:
    @pytest.mark.parametrize("path", ["/health", "/healthz"])
    def test_ok(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# ── Data ──────────────────────────


class TestApiData:
    def test_returns_payload(self, client):
        data = client.get("/api/data").json()
        assert data["summary"]["total_threads"] == 2
        assert data["summary"]["total_messages"] == 5
        assert data["top_words"][0] == {"word": "hello", "count": 3}
        assert len(data["errors"]) == 1

    def test_top_limit(self, client):
        data = client.get("/api/data", params={"top": 2}).json()
        assert len(data["top_words"]) == 2

    def test_invalid_top(self, client):
        assert client.get("/api/data", params={"top": 0}).status_code == 422


class TestThreads:
    def test_list(self, client):
        threads = client.get("/api/threads").json()
        assert threads == [
            {"index": 0, "participants": "Alice Smith, Bob Jones", "message_count": 3},
            {"index": 1, "participants": "Bob Jones, Alice Smith", "message_count": 2},
        ]

    def test_lookup_exact(self, client):
        response = client.get("/api/threads/lookup", params={"participants": "Alice Smith, Bob Jones"})
        assert response.status_code == 200
        body = response.json()
        assert body["message_count"] == 3
        assert body["avg_reply_gap_seconds"] == {"value": 90, "error": None}
        assert body["reply_gaps"]["longest_seconds"] == 120

    def test_lookup_not_found(self, client):
        response = client.get("/api/threads/lookup", params={"participants": "Alice Smith"})
        assert response.status_code == 404

    def test_average_gap(self, client):
        assert client.get("/api/threads/1/average-gap").json() == {"value": 1800, "error": None}

    def test_average_gap_unknown_index(self, client):
        assert client.get("/api/threads/9/average-gap").status_code == 404


class TestWords:
    def test_ranked(self, client):
        words = client.get("/api/words", params={"limit": 3}).json()
        assert words[0] == {"word": "hello", "count": 3}
        assert len(words) == 3

    def test_occurrences(self, client):
        assert client.get("/api/occurrences", params={"word": "Hello"}).json() == {
            "word": "Hello",
            "count": 3,
        }


# ── Caching ──────────────────────────


class TestCache:
    def test_store_loaded_once(self, client):
        import app as app_module

        client.get("/api/threads")
        client.get("/api/words")
        assert app_module.load_store.call_count == 1

    def test_refresh_rebuilds(self, client):
        import app as app_module

        client.get("/api/threads")
        response = client.get("/api/refresh")
        assert response.json() == {"status": "refreshed", "threads": 2, "errors": 1}
        assert app_module.load_store.call_count == 2

    def test_missing_archive(self):
        import app as app_module

        with patch.object(app_module, "_cache", {"store": None, "built_at": 0.0}):
            with patch("app.load_store", side_effect=FileNotFoundError("missing")):
                with pytest.raises(HTTPException) as exc_info:
                    app_module._get_cached_store()
        assert exc_info.value.status_code == 500
