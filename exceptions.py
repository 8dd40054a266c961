"""Exception types raised while extracting and analysing a message archive.

Per-unit failures (one message, one thread) are recorded on the
``ConversationStore`` instead of aborting the build.  Statistics functions
raise the remaining types for empty or incomplete populations.
"""

from __future__ import annotations


class ArchiveError(Exception):
    """Base class for every archive extraction or statistics failure."""


class StructuralError(ArchiveError, ValueError):
    """A thread or message fragment does not have the expected shape.

    Args:
        message: Human-readable description of the problem.
        thread_index: Position of the offending thread in the document,
            if known.
        participants: Participant text of the offending thread, if known.
    """

    def __init__(
        self,
        message: str,
        thread_index: int | None = None,
        participants: str | None = None,
    ) -> None:
        super().__init__(message)
        self.thread_index = thread_index
        self.participants = participants

    def with_context(self, thread_index: int, participants: str | None) -> StructuralError:
        """Return a copy of this error annotated with its thread position."""
        return StructuralError(str(self), thread_index, participants)


class TimestampParseError(ArchiveError, ValueError):
    """Raw timestamp text did not match the archive's date pattern."""

    def __init__(self, raw: str, reason: str = "unrecognised timestamp") -> None:
        super().__init__(f"{reason}: {raw!r}")
        self.raw = raw
        self.reason = reason


class DivisionUndefined(ArchiveError, ZeroDivisionError):
    """A statistic was requested over an empty or singleton population."""


class MissingTimestamp(ArchiveError):
    """A temporal statistic needs a message whose timestamp did not parse."""


class NotFound(ArchiveError, LookupError):
    """A lookup by participants, index or word had no match."""
