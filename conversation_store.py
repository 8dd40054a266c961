"""Top-level collection of threads extracted from one message archive."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from archive_markup import Fragment, load_document
from exceptions import ArchiveError, NotFound, StructuralError, TimestampParseError
from extraction import extract_thread
from models import Message, Thread, tokenize

logger = logging.getLogger(__name__)

THREAD_CLASS = "thread"


class ConversationStore:
    """Threads of an archive plus cross-thread aggregation.

    The store is built once and not mutated afterwards.  The only lazily
    computed state is the word-frequency table, which is built at most once
    under a lock and then shared by every caller.

    Attributes:
        threads: Threads in document order.
        errors: Recoverable errors recorded while building, in the order they
            were encountered.
    """

    def __init__(
        self,
        threads: Iterable[Thread] = (),
        errors: Iterable[ArchiveError] = (),
    ) -> None:
        self.threads: list[Thread] = list(threads)
        self.errors: list[ArchiveError] = list(errors)
        self._word_frequency: Mapping[str, int] | None = None
        self._frequency_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"ConversationStore(threads={len(self.threads)}, errors={len(self.errors)})"

    # -- construction --------------------------------------------------------

    @classmethod
    def build(cls, document: Fragment, strict: bool = False) -> ConversationStore:
        """Extract every ``thread`` region of *document* into a new store.

        Args:
            document: Parsed archive document.
            strict: If True, the first ``StructuralError`` propagates.  If
                False (default), malformed threads are skipped and their
                errors recorded on ``store.errors``.

        Returns:
            The built store.

        Raises:
            StructuralError: Only when *strict* is True.
        """
        threads: list[Thread] = []
        errors: list[ArchiveError] = []

        regions = document.select_by_class(THREAD_CLASS)
        if not regions:
            logger.warning("No '%s' elements found; is this a message archive?", THREAD_CLASS)

        for index, region in enumerate(regions):
            try:
                threads.append(extract_thread(region, errors))
            except StructuralError as e:
                error = e.with_context(index, e.participants or region.own_text())
                if strict:
                    raise error from e
                logger.warning("Skipping thread %d (%r): %s", index, error.participants, e)
                errors.append(error)

        store = cls(threads, errors)
        skipped = store.structural_errors()
        if regions and not threads:
            logger.warning(
                "Found %d threads but none could be extracted. "
                "The archive format may have changed.",
                len(regions),
            )
        elif skipped or store.timestamp_errors():
            logger.info(
                "Built %d threads (%d skipped, %d unparseable timestamps)",
                len(threads), len(skipped), len(store.timestamp_errors()),
            )
        return store

    @classmethod
    def from_file(cls, path: str | Path, strict: bool = False) -> ConversationStore:
        """Load and build a store from an archive file such as ``messages.htm``.

        Raises:
            FileNotFoundError: If the archive does not exist.
            OSError: If the archive cannot be read.
        """
        return cls.build(load_document(path), strict=strict)

    def structural_errors(self) -> list[StructuralError]:
        return [e for e in self.errors if isinstance(e, StructuralError)]

    def timestamp_errors(self) -> list[TimestampParseError]:
        return [e for e in self.errors if isinstance(e, TimestampParseError)]

    # -- threads -------------------------------------------------------------

    def thread_count(self) -> int:
        return len(self.threads)

    def thread_at(self, index: int) -> Thread:
        if not 0 <= index < len(self.threads):
            raise NotFound(f"no thread at index {index}")
        return self.threads[index]

    def lookup_thread(self, participants: str) -> Thread:
        """Return the first thread whose participant text equals *participants*.

        The comparison is exact: ordering, spacing and case all matter.

        Raises:
            NotFound: If no thread matches.
        """
        for thread in self.threads:
            if thread.participants == participants:
                return thread
        raise NotFound(f"no thread with participants {participants!r}")

    def threads_with_last_reply_by(self, user: str) -> list[Thread]:
        """Return threads whose last stored message was sent by *user*.

        Uses document order, not parsed timestamps.  Empty threads are skipped.
        """
        return [t for t in self.threads if t.messages and t.messages[-1].sender == user]

    def threads_containing(self, word: str) -> list[Thread]:
        return [t for t in self.threads if t.contains_word(word)]

    def iter_messages(self) -> Iterator[Message]:
        for thread in self.threads:
            yield from thread.messages

    # -- counts --------------------------------------------------------------

    def total_messages(self, user: str | None = None) -> int:
        return sum(t.message_count(user) for t in self.threads)

    def total_words(self) -> int:
        return sum(t.word_count() for t in self.threads)

    def occurrences(self, word: str) -> int:
        """Count case-insensitive token matches of *word* across every message."""
        return sum(t.occurrences(word) for t in self.threads)

    # -- word frequency ------------------------------------------------------

    def word_frequency(self) -> Mapping[str, int]:
        """Return token counts ranked by descending count.

        Ties keep the order in which tokens were first seen.  The table is
        computed on first use and cached; later calls return the same
        read-only view.
        """
        if self._word_frequency is None:
            with self._frequency_lock:
                if self._word_frequency is None:
                    self._word_frequency = MappingProxyType(self._compute_word_frequency())
        return self._word_frequency

    def ranked_words(self, limit: int | None = None) -> list[tuple[str, int]]:
        ranked = list(self.word_frequency().items())
        return ranked if limit is None else ranked[:limit]

    def _compute_word_frequency(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for message in self.iter_messages():
            counts.update(tokenize(message.body))
        # sorted() is stable, so equal counts keep first-seen order
        return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))
