"""FastAPI service for Facebook Messages statistics.

Serves JSON statistics over a cached, fully built ConversationStore
(1-hour TTL since the archive only changes on a new Facebook download).

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query

from analytics import (
    TOP_WORDS_LIMIT,
    average_gap_between_replies,
    build_store_payload,
    reply_gap_stats,
    summarize_thread,
)
from conversation_store import ConversationStore
from exceptions import ArchiveError, NotFound

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
ARCHIVE_PATH = Path(__file__).parent / "messages.htm"
CACHE_TTL_SECONDS = 3600  # 1 hour

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Facebook Messages Statistics",
    root_path="/messenger_stats",
)

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "store": None,
    "built_at": 0.0,
}


def load_store(path: Path = ARCHIVE_PATH) -> ConversationStore:
    """Build a store from the archive on disk."""
    return ConversationStore.from_file(path)


def _get_cached_store(force_refresh: bool = False) -> ConversationStore:
    """Return the cached store, rebuilding if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["store"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["store"]

    try:
        store = load_store()
    except FileNotFoundError:
        raise HTTPException(status_code=500, detail="Archive not found")

    with _cache_lock:
        _cache["store"] = store
        _cache["built_at"] = time.monotonic()

    return store


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/data")
def api_data(top: int = Query(TOP_WORDS_LIMIT, ge=1)):
    """Return the full statistics payload."""
    return build_store_payload(_get_cached_store(), top_words=top)


@app.get("/api/refresh")
def api_refresh():
    """Force a rebuild of the store from the archive."""
    store = _get_cached_store(force_refresh=True)
    return {
        "status": "refreshed",
        "threads": store.thread_count(),
        "errors": len(store.errors),
    }


@app.get("/api/threads")
def api_threads():
    """List every thread with its message count."""
    store = _get_cached_store()
    return [
        {"index": i, "participants": t.participants, "message_count": t.message_count()}
        for i, t in enumerate(store.threads)
    ]


@app.get("/api/threads/lookup")
def api_thread_lookup(participants: str):
    """Return statistics for the thread whose participant text matches exactly."""
    store = _get_cached_store()
    try:
        thread = store.lookup_thread(participants)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    summary = summarize_thread(thread)
    try:
        summary["reply_gaps"] = reply_gap_stats(thread)
    except ArchiveError as e:
        summary["reply_gaps"] = {"error": type(e).__name__}
    return summary


@app.get("/api/threads/{index}/average-gap")
def api_thread_average_gap(index: int):
    """Return the average reply gap of the thread at *index*, in seconds."""
    store = _get_cached_store()
    try:
        thread = store.thread_at(index)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        gap = average_gap_between_replies(thread)
    except ArchiveError as e:
        return {"value": None, "error": type(e).__name__}
    return {"value": int(gap.total_seconds()), "error": None}


@app.get("/api/words")
def api_words(limit: int = Query(20, ge=1)):
    """Return the most frequent words, highest count first."""
    store = _get_cached_store()
    return [{"word": w, "count": c} for w, c in store.ranked_words(limit=limit)]


@app.get("/api/occurrences")
def api_occurrences(word: str):
    """Return how often *word* occurs across the archive (case-insensitive)."""
    store = _get_cached_store()
    return {"word": word, "count": store.occurrences(word)}
