"""Save and reload a built ``ConversationStore`` as a JSON snapshot.

Re-extracting a large archive is slow, so a built store can be written to
disk and loaded back.  Parsed timestamps are re-derived from their
normalized text on load, so reloaded messages compare equal to the originals
(including the zone abbreviation carried by ``tzinfo``).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from conversation_store import ConversationStore
from exceptions import StructuralError, TimestampParseError
from extraction import parse_timestamp
from models import Message, Thread

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_PATH = "messenger_snapshot.json"
SNAPSHOT_VERSION = 1


def _message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "sender": message.sender,
        "sent_at": message.sent_at.isoformat() if message.sent_at else None,
        "sent_at_raw": message.sent_at_raw,
        "body": message.body,
    }


def _message_from_dict(data: dict[str, Any]) -> Message:
    sent_at = None
    if data.get("sent_at") is not None:
        try:
            sent_at = parse_timestamp(data["sent_at_raw"])
        except TimestampParseError:
            logger.warning("Snapshot timestamp %r no longer parses", data["sent_at_raw"])
    return Message(
        sender=data["sender"],
        sent_at=sent_at,
        sent_at_raw=data["sent_at_raw"],
        body=data["body"],
    )


def store_to_dict(store: ConversationStore) -> dict[str, Any]:
    """Serialize a store (threads and recorded errors) to plain JSON types."""
    return {
        "version": SNAPSHOT_VERSION,
        "threads": [
            {
                "participants": t.participants,
                "messages": [_message_to_dict(m) for m in t.messages],
            }
            for t in store.threads
        ],
        "errors": [
            {
                "type": type(e).__name__,
                "detail": str(e),
                "thread_index": getattr(e, "thread_index", None),
                "participants": getattr(e, "participants", None),
                "raw": getattr(e, "raw", None),
                "reason": getattr(e, "reason", None),
            }
            for e in store.errors
        ],
    }


def _error_from_dict(data: dict[str, Any]) -> StructuralError | TimestampParseError:
    if data["type"] == "TimestampParseError":
        reason = data.get("reason") or "unrecognised timestamp"
        return TimestampParseError(data.get("raw") or "", reason)
    return StructuralError(data["detail"], data.get("thread_index"), data.get("participants"))


def store_from_dict(data: dict[str, Any]) -> ConversationStore:
    """Rebuild a store from ``store_to_dict`` output.

    Raises:
        ValueError: If the snapshot version is not supported.
    """
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}")
    threads = [
        Thread(
            participants=t["participants"],
            messages=tuple(_message_from_dict(m) for m in t["messages"]),
        )
        for t in data["threads"]
    ]
    errors = [_error_from_dict(e) for e in data.get("errors", [])]
    return ConversationStore(threads, errors)


def save_snapshot(store: ConversationStore, path: str | Path = DEFAULT_SNAPSHOT_PATH) -> None:
    """Write *store* to *path*, overwriting any existing file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(store_to_dict(store), f, ensure_ascii=False)


def load_snapshot(path: str | Path = DEFAULT_SNAPSHOT_PATH) -> ConversationStore:
    """Load a store previously written by ``save_snapshot``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the snapshot version is not supported.
    """
    with open(path, "r", encoding="utf-8") as f:
        return store_from_dict(json.load(f))
