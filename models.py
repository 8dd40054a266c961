"""Conversation data model: messages, threads and word tokenization."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from exceptions import NotFound

# Punctuation stripped from the edges of a token (never from its middle).
TOKEN_PUNCTUATION = ",.:;?![]"


def tokenize(text: str) -> Iterator[str]:
    """Yield lowercased word tokens from *text*.

    Splits on whitespace, then strips ``,.:;?![]`` from both ends of each
    token.  Tokens made only of punctuation are dropped.

    Example:
        >>> list(tokenize("Hello, world!"))
        ['hello', 'world']
    """
    for raw in text.split():
        token = raw.strip(TOKEN_PUNCTUATION)
        if token:
            yield token.lower()


def _normalize_word(word: str) -> str:
    return word.strip().strip(TOKEN_PUNCTUATION).lower()


@dataclass(frozen=True)
class Message:
    """A single message as printed in the archive.

    Attributes:
        sender: Display name of the author.
        sent_at: Parsed, timezone-aware send time, or None when the raw
            timestamp could not be parsed.
        sent_at_raw: Normalized timestamp text the value was parsed from.
        body: Full text of the message.
    """

    sender: str
    sent_at: datetime | None
    sent_at_raw: str
    body: str

    def word_count(self) -> int:
        return len(self.body.split())

    def occurrences(self, word: str) -> int:
        """Count case-insensitive exact-token matches of *word* in the body."""
        target = _normalize_word(word)
        if not target:
            return 0
        return sum(1 for token in tokenize(self.body) if token == target)

    def contains_word(self, word: str) -> bool:
        return self.occurrences(word) > 0

    def is_between(self, start: datetime, end: datetime) -> bool:
        """Return True if the message was sent strictly between *start* and *end*.

        Messages without a parsed timestamp are never between anything.
        """
        if self.sent_at is None:
            return False
        return start < self.sent_at < end


@dataclass(frozen=True)
class Thread:
    """An ordered conversation between a fixed set of participants.

    ``participants`` is the literal name list as authored in the archive and
    is compared verbatim: "Alice, Bob" and "Bob, Alice" are different threads.
    ``messages`` keep document order and are never re-sorted by time.
    """

    participants: str
    messages: tuple[Message, ...] = ()

    def __len__(self) -> int:
        return len(self.messages)

    def message_count(self, user: str | None = None) -> int:
        if user is None:
            return len(self.messages)
        return sum(1 for m in self.messages if m.sender == user)

    def word_count(self) -> int:
        return sum(m.word_count() for m in self.messages)

    def occurrences(self, word: str) -> int:
        return sum(m.occurrences(word) for m in self.messages)

    def contains_word(self, word: str) -> bool:
        return any(m.contains_word(word) for m in self.messages)

    def messages_with_word(self, word: str) -> list[Message]:
        return [m for m in self.messages if m.contains_word(word)]

    def messages_between(self, start: datetime, end: datetime) -> list[Message]:
        return [m for m in self.messages if m.is_between(start, end)]

    def message_at(self, index: int) -> Message:
        """Return the message at *index*.

        Raises:
            NotFound: If *index* is outside the thread.
        """
        if not 0 <= index < len(self.messages):
            raise NotFound(f"no message at index {index} in thread {self.participants!r}")
        return self.messages[index]

    def first_message(self) -> Message:
        return self.message_at(0)

    def last_message(self) -> Message:
        """Return the last stored message (index ``count - 1``).

        Raises:
            NotFound: If the thread is empty.
        """
        return self.message_at(len(self.messages) - 1)
