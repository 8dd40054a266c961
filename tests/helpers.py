"""Shared test helpers for messenger_stats tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

import html
from datetime import datetime, timedelta, timezone

from archive_markup import parse_document
from conversation_store import ConversationStore
from models import Message, Thread

EST = timezone(timedelta(hours=-5), "EST")


def fb_timestamp(dt: datetime, zone: str = "EST") -> str:
    """Format *dt* the way the archive prints it (lowercase am/pm)."""
    hour = dt.hour % 12 or 12
    meridiem = "am" if dt.hour < 12 else "pm"
    return f"{dt:%A, %B} {dt.day}, {dt.year} at {hour}:{dt:%M}{meridiem} {zone}"


def message_html(user: str, meta: str, body: str) -> str:
    """Build one metadata block followed by its body block."""
    return (
        '<div class="message"><div class="message_header">'
        f'<span class="user">{html.escape(user)}</span>'
        f'<span class="meta">{html.escape(meta)}</span>'
        "</div></div>"
        f"<p>{html.escape(body)}</p>"
    )


def thread_html(participants: str, messages: list[tuple[str, str, str]]) -> str:
    """Build a thread container from (user, meta, body) tuples."""
    inner = "".join(message_html(u, m, b) for u, m, b in messages)
    return f'<div class="thread">{html.escape(participants)}{inner}</div>'


def archive_html(threads: list[str]) -> str:
    """Wrap thread containers in a minimal messages.htm page."""
    return (
        "<html><head><title>Messages</title></head><body>"
        '<div class="contents"><h1>Test User</h1><div>'
        + "".join(threads)
        + "</div></div></body></html>"
    )


def build_store(threads: list[str], strict: bool = False) -> ConversationStore:
    """Parse thread containers into a ConversationStore."""
    return ConversationStore.build(parse_document(archive_html(threads)), strict=strict)


def make_thread(participants: str, messages: list[tuple[str, datetime | None, str]]) -> Thread:
    """Build a Thread directly from (sender, sent_at, body) tuples."""
    return Thread(
        participants=participants,
        messages=tuple(
            Message(
                sender=sender,
                sent_at=sent_at,
                sent_at_raw=fb_timestamp(sent_at).replace("am", "AM").replace("pm", "PM") if sent_at else "",
                body=body,
            )
            for sender, sent_at, body in messages
        ),
    )
