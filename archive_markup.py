"""Markup access for Facebook message archives.

The extractors only rely on the small ``Fragment`` protocol below.
``SoupFragment`` satisfies it on top of BeautifulSoup, which is the only
place the parsing library is touched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

HTML_PARSER = "html.parser"


def _collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


class Fragment(Protocol):
    """Navigable element of an archive document."""

    def select_by_class(self, class_name: str) -> list[Fragment]: ...

    def children(self) -> list[Fragment]: ...

    def own_text(self) -> str: ...

    def text(self) -> str: ...


class SoupFragment:
    """``Fragment`` implementation wrapping a BeautifulSoup ``Tag``."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def __repr__(self) -> str:
        return f"SoupFragment(<{self._tag.name}>)"

    def select_by_class(self, class_name: str) -> list[SoupFragment]:
        """Return this element (if it carries the class) and all matching descendants."""
        matches = []
        if class_name in (self._tag.get("class") or []):
            matches.append(self)
        matches.extend(SoupFragment(t) for t in self._tag.find_all(class_=class_name))
        return matches

    def children(self) -> list[SoupFragment]:
        """Return direct child elements, skipping text nodes."""
        return [SoupFragment(c) for c in self._tag.children if isinstance(c, Tag)]

    def own_text(self) -> str:
        """Return text belonging to this element only, excluding descendant elements."""
        parts = [
            _collapse_whitespace(str(c))
            for c in self._tag.children
            if isinstance(c, NavigableString) and not isinstance(c, Comment)
        ]
        return " ".join(p for p in parts if p)

    def text(self) -> str:
        """Return the combined text of this element and all its descendants."""
        return _collapse_whitespace(self._tag.get_text())


class MarkupDocument(SoupFragment):
    """A whole parsed archive document."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MarkupDocument()"


def parse_document(markup: str | bytes) -> MarkupDocument:
    """Parse archive markup into a navigable document.

    Args:
        markup: Raw HTML text or bytes.  Bytes are decoded by
            BeautifulSoup's encoding detection.

    Returns:
        The parsed ``MarkupDocument``.
    """
    return MarkupDocument(BeautifulSoup(markup, HTML_PARSER))


def load_document(path: str | Path) -> MarkupDocument:
    """Read and parse an archive file such as ``messages.htm``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        OSError: If the file cannot be read.
    """
    with open(path, "rb") as f:
        return parse_document(f.read())
