"""Turn archive markup fragments into ``Message`` and ``Thread`` records.

A Facebook archive thread looks like::

    <div class="thread">Alice, Bob
      <div class="message">
        <div class="message_header">
          <span class="user">Alice</span>
          <span class="meta">Thursday, March 3, 2016 at 9:14pm EST</span>
        </div>
      </div>
      <p>Hello!</p>
      ...
    </div>

Children of the thread alternate between a metadata block and a body block.
Timestamps are printed in English with a zone abbreviation and must be
normalized before they can be parsed.
"""

from __future__ import annotations

import functools
import logging
import re
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from archive_markup import Fragment
from exceptions import ArchiveError, StructuralError, TimestampParseError
from models import Message, Thread

logger = logging.getLogger(__name__)

USER_CLASS = "user"
META_CLASS = "meta"

# strptime pattern for everything before the zone abbreviation, e.g.
# "Thursday, March 3, 2016 at 9:14PM".  %Z only accepts UTC/GMT and the
# local zone names, so the abbreviation is handled separately.
TIMESTAMP_FORMAT = "%A, %B %d, %Y at %I:%M%p"

TIMESTAMP_RE = re.compile(
    r"^(?P<weekday>[A-Za-z]+), (?P<month>[A-Za-z]+) (?P<day>\d{1,2}), (?P<year>\d{4})"
    r" at (?P<hour>\d{1,2}):(?P<minute>\d{2})(?P<meridiem>AM|PM) (?P<zone>\S+)$"
)
MERIDIEM_RE = re.compile(r"(?<=\d)(am|pm)\b", re.IGNORECASE)
UTC_OFFSET_RE = re.compile(r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$")

# Offsets in hours for zone abbreviations Facebook prints.  Abbreviations
# shared by several regions (CST, IST, BST) resolve to the zone Facebook's
# English locale means by them.
ZONE_OFFSETS: dict[str, float] = {
    "UTC": 0,
    "GMT": 0,
    "WET": 0,
    "WEST": 1,
    "BST": 1,
    "IST": 5.5,
    "CET": 1,
    "CEST": 2,
    "EET": 2,
    "EEST": 3,
    "MSK": 3,
    "SAST": 2,
    "HKT": 8,
    "SGT": 8,
    "AWST": 8,
    "JST": 9,
    "KST": 9,
    "ACST": 9.5,
    "ACDT": 10.5,
    "AEST": 10,
    "AEDT": 11,
    "NZST": 12,
    "NZDT": 13,
    "AST": -4,
    "ADT": -3,
    "NST": -3.5,
    "NDT": -2.5,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
    "AKST": -9,
    "AKDT": -8,
    "HST": -10,
}

# Instants at which every database zone is sampled for its abbreviations.
_ZONE_SAMPLE_INSTANTS = tuple(
    datetime(year, month, 15, 12, tzinfo=timezone.utc)
    for year in (2008, 2012, 2016, 2020)
    for month in (1, 7)
)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def normalize_timestamp(raw: str) -> str:
    """Upper-case the am/pm marker so the text matches the parse pattern.

    Only a marker directly following a digit is touched, so words that
    happen to contain "am" or "pm" are left alone.

    Args:
        raw: Timestamp text as printed in the archive, e.g.
            "Thursday, March 3, 2016 at 9:14pm EST".

    Returns:
        The normalized text, e.g. "Thursday, March 3, 2016 at 9:14PM EST".
    """
    return MERIDIEM_RE.sub(lambda m: m.group(1).upper(), raw.strip())


@functools.lru_cache(maxsize=None)
def tz_database_offsets() -> dict[str, timedelta]:
    """Map zone abbreviations found in the IANA time zone database to offsets.

    Every zone is sampled in winter and summer of several years.  An
    abbreviation seen with more than one offset is ambiguous and left out.
    """
    offsets: dict[str, set[timedelta]] = defaultdict(set)
    for key in available_timezones():
        try:
            zone = ZoneInfo(key)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.debug("Skipping time zone %s: %s", key, e)
            continue
        for instant in _ZONE_SAMPLE_INSTANTS:
            local = instant.astimezone(zone)
            name = local.tzname()
            if name and name.isalpha():
                offsets[name].add(local.utcoffset())
    return {name: seen.pop() for name, seen in offsets.items() if len(seen) == 1}


def zone_for_abbreviation(abbreviation: str) -> timezone:
    """Return a fixed-offset timezone named after *abbreviation*.

    Accepts the names in ``ZONE_OFFSETS``, any unambiguous abbreviation from
    the system time zone database, and numeric forms such as "UTC+01" or
    "UTC-03:30".

    Raises:
        TimestampParseError: If the abbreviation is not recognised.
    """
    if abbreviation in ZONE_OFFSETS:
        offset = timedelta(hours=ZONE_OFFSETS[abbreviation])
        return timezone(offset, abbreviation)

    database_offset = tz_database_offsets().get(abbreviation)
    if database_offset is not None:
        return timezone(database_offset, abbreviation)

    match = UTC_OFFSET_RE.match(abbreviation)
    if match is None:
        raise TimestampParseError(abbreviation, "unknown time zone")
    offset = timedelta(hours=int(match["hours"]), minutes=int(match["minutes"] or 0))
    if match["sign"] == "-":
        offset = -offset
    if abs(offset) >= timedelta(hours=24):
        raise TimestampParseError(abbreviation, "time zone offset out of range")
    return timezone(offset, abbreviation)


def parse_timestamp(text: str) -> datetime:
    """Parse a normalized archive timestamp into an aware datetime.

    Args:
        text: Normalized timestamp text (see ``normalize_timestamp``).

    Returns:
        A datetime whose tzinfo is named after the printed abbreviation.

    Raises:
        TimestampParseError: If the text does not match the pattern, names an
            unknown zone, or its weekday contradicts the date.
    """
    match = TIMESTAMP_RE.match(text)
    if match is None:
        raise TimestampParseError(text)

    local_part = text[: match.start("zone")].rstrip()
    try:
        parsed = datetime.strptime(local_part, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise TimestampParseError(text, str(e)) from e

    if parsed.strftime("%A") != match["weekday"]:
        raise TimestampParseError(text, "weekday does not match date")

    try:
        zone = zone_for_abbreviation(match["zone"])
    except TimestampParseError as e:
        raise TimestampParseError(text, e.reason) from e
    return parsed.replace(tzinfo=zone)


def format_timestamp(value: datetime) -> str:
    """Format a parsed timestamp back into the archive's display pattern.

    Inverse of ``parse_timestamp``: ``format_timestamp(parse_timestamp(s)) == s``
    for any normalized archive string *s*.
    """
    hour = value.hour % 12 or 12
    zone = value.tzname() or "UTC"
    return (
        f"{value:%A, %B} {value.day}, {value.year} at "
        f"{hour}:{value:%M}{'AM' if value.hour < 12 else 'PM'} {zone}"
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def _region_text(header: Fragment, class_name: str) -> str:
    regions = header.select_by_class(class_name)
    if not regions:
        raise StructuralError(f"message header has no '{class_name}' region")
    # Repeated regions are read as one, space separated.
    return " ".join(text for text in (r.text() for r in regions) if text)


def extract_message(
    metadata: Fragment,
    body: Fragment,
    errors: list[ArchiveError] | None = None,
) -> Message:
    """Build a ``Message`` from a metadata block and its body block.

    The first child of *metadata* is the message header holding the
    ``user`` and ``meta`` regions.  A timestamp that fails to parse does not
    stop extraction: the message is returned with ``sent_at=None`` and the
    ``TimestampParseError`` is appended to *errors*.

    Args:
        metadata: The ``message`` block preceding the body.
        body: The block holding the message text.
        errors: Optional collector for recoverable errors.

    Returns:
        The extracted message.

    Raises:
        StructuralError: If the header or one of its regions is missing.
    """
    header_candidates = metadata.children()
    if not header_candidates:
        raise StructuralError("message metadata has no header element")
    header = header_candidates[0]

    sender = _region_text(header, USER_CLASS)
    sent_at_raw = normalize_timestamp(_region_text(header, META_CLASS))

    sent_at: datetime | None
    try:
        sent_at = parse_timestamp(sent_at_raw)
    except TimestampParseError as e:
        logger.debug("Unparseable timestamp for message from %s: %s", sender, e)
        if errors is not None:
            errors.append(e)
        sent_at = None

    return Message(sender=sender, sent_at=sent_at, sent_at_raw=sent_at_raw, body=body.text())


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

def extract_thread(
    container: Fragment,
    errors: list[ArchiveError] | None = None,
) -> Thread:
    """Build a ``Thread`` from a ``thread`` container element.

    Children alternate metadata, body, metadata, body, ...  The pairs are
    only built once the whole sequence has been validated, so a malformed
    container never yields a partial thread.

    Args:
        container: The element marked with the ``thread`` class.
        errors: Optional collector for recoverable per-message errors.

    Returns:
        The thread, with one message per metadata/body pair in document order.

    Raises:
        StructuralError: If the container has no children, an odd number of
            children, or a message is missing a required region.
    """
    participants = container.own_text()
    children = container.children()

    if not children:
        raise StructuralError("thread has no messages", participants=participants)
    if len(children) % 2:
        raise StructuralError(
            f"thread has an odd number of elements ({len(children)}); "
            "expected metadata/body pairs",
            participants=participants,
        )

    message_errors: list[ArchiveError] = []
    messages = tuple(
        extract_message(children[i], children[i + 1], message_errors)
        for i in range(0, len(children), 2)
    )
    if errors is not None:
        errors.extend(message_errors)
    return Thread(participants=participants, messages=messages)
