"""Shared fixtures for messenger_stats tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import archive_html, build_store, thread_html


# ── Sample archive ──
#
# Thread 0: "Alice Smith, Bob Jones", 3 messages, 60s and 120s apart.
# Thread 1: "Bob Jones, Alice Smith", 2 messages, 30 minutes apart.
# Thread 2: "Carol White", a lone metadata block with no body (malformed).

ALICE_BOB_MESSAGES = [
    ("Alice Smith", "Thursday, March 3, 2016 at 9:14pm EST", "Hello, world!"),
    ("Bob Jones", "Thursday, March 3, 2016 at 9:15pm EST", "Hi Alice. How are you?"),
    ("Alice Smith", "Thursday, March 3, 2016 at 9:17pm EST", "Great, thanks! Hello again."),
]

BOB_ALICE_MESSAGES = [
    ("Alice Smith", "Friday, March 4, 2016 at 10:00am EST", "ok"),
    ("Bob Jones", "Friday, March 4, 2016 at 10:30am EST", "hello Bob here"),
]

MALFORMED_THREAD = (
    '<div class="thread">Carol White'
    '<div class="message"><div class="message_header">'
    '<span class="user">Carol White</span>'
    '<span class="meta">Friday, March 4, 2016 at 11:00am EST</span>'
    "</div></div></div>"
)


def _sample_threads() -> list[str]:
    return [
        thread_html("Alice Smith, Bob Jones", ALICE_BOB_MESSAGES),
        thread_html("Bob Jones, Alice Smith", BOB_ALICE_MESSAGES),
        MALFORMED_THREAD,
    ]


@pytest.fixture()
def sample_html() -> str:
    """Full messages.htm text for the sample archive."""
    return archive_html(_sample_threads())


@pytest.fixture()
def sample_store():
    """ConversationStore built (non-strict) from the sample archive."""
    return build_store(_sample_threads())


@pytest.fixture()
def archive_file(tmp_path, sample_html):
    """The sample archive written to disk as messages.htm."""
    path = tmp_path / "messages.htm"
    path.write_text(sample_html, encoding="utf-8")
    return path


@pytest.fixture()
def client(sample_store):
    """TestClient for app.py with the sample store.

    Patches load_store so no messages.htm is needed.
    Resets the module-level cache between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"store": None, "built_at": 0.0}
    ):
        with patch(
            "app.load_store", return_value=sample_store
        ):
            with TestClient(app_module.app) as tc:
                yield tc
