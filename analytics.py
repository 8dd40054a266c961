"""Statistics over an extracted Facebook message archive.

Pure functions over ``Thread`` and ``ConversationStore``: counts, word
ranking and temporal gap analysis.  Used by both the CLI
(messenger_summary.py) and the JSON service (app.py).

Core statistics raise ``DivisionUndefined``, ``MissingTimestamp`` or
``NotFound`` for populations they cannot be computed over.  The summary and
payload builders turn those into explicit ``{"value": None, "error": ...}``
indicators so report consumers never have to catch them.
"""

from __future__ import annotations

import csv
import json
import logging
import os
import statistics
from datetime import datetime, timedelta
from typing import Any, Callable

from conversation_store import ConversationStore
from exceptions import ArchiveError, DivisionUndefined, MissingTimestamp
from models import Message, Thread

logger = logging.getLogger(__name__)

TOP_WORDS_LIMIT = 50


# ---------------------------------------------------------------------------
# Per-thread statistics
# ---------------------------------------------------------------------------

def time_between_messages(first: Message, last: Message) -> timedelta:
    """Return the absolute time between two messages.

    Raises:
        MissingTimestamp: If either message has no parsed timestamp.
    """
    for message in (first, last):
        if message.sent_at is None:
            raise MissingTimestamp(
                f"message from {message.sender} has no parsed timestamp "
                f"({message.sent_at_raw!r})"
            )
    return abs(last.sent_at - first.sent_at)


def average_words_per_message(thread: Thread) -> float:
    """Return the mean number of words per message in *thread*.

    Raises:
        DivisionUndefined: If the thread has no messages.
    """
    count = thread.message_count()
    if count == 0:
        raise DivisionUndefined(f"thread {thread.participants!r} has no messages")
    return thread.word_count() / count


def reply_gaps(thread: Thread) -> list[timedelta]:
    """Return the gap between each message and its predecessor, in stored order.

    Raises:
        DivisionUndefined: If the thread has fewer than two messages.
        MissingTimestamp: If any message lacks a parsed timestamp.
    """
    messages = thread.messages
    if len(messages) < 2:
        raise DivisionUndefined(
            f"thread {thread.participants!r} needs at least two messages for reply gaps"
        )
    return [time_between_messages(messages[i - 1], messages[i]) for i in range(1, len(messages))]


def average_gap_between_replies(thread: Thread) -> timedelta:
    """Return the mean reply gap of *thread*, truncated to whole seconds.

    Averages over all ``message_count - 1`` gaps.

    Raises:
        DivisionUndefined: If the thread has fewer than two messages.
        MissingTimestamp: If any message lacks a parsed timestamp.
    """
    gaps = reply_gaps(thread)
    total_seconds = int(sum(gaps, timedelta()).total_seconds())
    return timedelta(seconds=total_seconds // len(gaps))


def reply_gap_stats(thread: Thread) -> dict[str, int]:
    """Return average, median, longest and shortest reply gaps in seconds.

    Raises:
        DivisionUndefined: If the thread has fewer than two messages.
        MissingTimestamp: If any message lacks a parsed timestamp.
    """
    seconds = [int(g.total_seconds()) for g in reply_gaps(thread)]
    return {
        "average_seconds": sum(seconds) // len(seconds),
        "median_seconds": int(statistics.median(seconds)),
        "longest_seconds": max(seconds),
        "shortest_seconds": min(seconds),
    }


def total_thread_duration(thread: Thread) -> timedelta:
    """Return the time between the first and last stored message.

    Raises:
        NotFound: If the thread is empty.
        MissingTimestamp: If either end lacks a parsed timestamp.
    """
    return time_between_messages(thread.first_message(), thread.last_message())


def is_chronological(thread: Thread) -> bool:
    """Return True if the parsed timestamps of *thread* never go backwards.

    Messages without a timestamp are ignored.  Stored order is what every
    other statistic trusts; this only reports whether that trust holds.
    """
    stamps = [m.sent_at for m in thread.messages if m.sent_at is not None]
    return all(a <= b for a, b in zip(stamps, stamps[1:]))


# ---------------------------------------------------------------------------
# Store-wide statistics
# ---------------------------------------------------------------------------

def most_common_word(store: ConversationStore) -> tuple[str, int] | None:
    """Return the top ``(word, count)`` of the store, or None for an empty corpus."""
    ranked = store.ranked_words(limit=1)
    return ranked[0] if ranked else None


def compute_user_activity(store: ConversationStore) -> list[dict]:
    """Aggregate per-sender activity across every thread.

    Returns:
        List of dicts with keys sender, messages, words, threads (threads the
        sender posted in) and last_replies (threads where the sender wrote the
        last stored message), sorted by descending message count.  Ties keep
        first-seen order.
    """
    activity: dict[str, dict] = {}
    for thread in store.threads:
        seen_in_thread: set[str] = set()
        for message in thread.messages:
            row = activity.setdefault(
                message.sender,
                {"sender": message.sender, "messages": 0, "words": 0, "threads": 0, "last_replies": 0},
            )
            row["messages"] += 1
            row["words"] += message.word_count()
            if message.sender not in seen_in_thread:
                seen_in_thread.add(message.sender)
                row["threads"] += 1
        if thread.messages:
            activity[thread.messages[-1].sender]["last_replies"] += 1

    return sorted(activity.values(), key=lambda r: r["messages"], reverse=True)


def compute_hourly_data(store: ConversationStore) -> dict[str, Any]:
    """Compute hour-of-day x day-of-week activity grid from parsed timestamps.

    Hours are the wall-clock time printed in the archive, in each message's
    own zone.  Messages without a parsed timestamp are not counted.

    Returns:
        Dict with keys:
            - heatmap: 7x24 nested list (heatmap[weekday][hour]) of message
              counts, where weekday 0 is Monday.
            - hourly_totals: list of 24 ints, total messages per hour.
            - weekday_totals: list of 7 ints, total messages per weekday.
    """
    heatmap = [[0] * 24 for _ in range(7)]  # [weekday][hour]
    hourly_totals = [0] * 24
    weekday_totals = [0] * 7

    for message in store.iter_messages():
        if message.sent_at is None:
            continue
        weekday = message.sent_at.weekday()
        hour = message.sent_at.hour
        heatmap[weekday][hour] += 1
        hourly_totals[hour] += 1
        weekday_totals[weekday] += 1

    return {
        "heatmap": heatmap,
        "hourly_totals": hourly_totals,
        "weekday_totals": weekday_totals,
    }


_LENGTH_BUCKETS = [
    ("1-10", 1, 10),
    ("11-50", 11, 50),
    ("51-200", 51, 200),
    ("201-1000", 201, 1000),
    ("1000+", 1001, float("inf")),
]


def compute_length_distribution(store: ConversationStore) -> dict[str, Any]:
    """Bucket thread lengths (message counts) into a histogram."""
    counts = [0] * len(_LENGTH_BUCKETS)
    for thread in store.threads:
        mc = thread.message_count()
        for i, (_, lo, hi) in enumerate(_LENGTH_BUCKETS):
            if lo <= mc <= hi:
                counts[i] += 1
                break
    return {
        "buckets": [b[0] for b in _LENGTH_BUCKETS],
        "counts": counts,
    }


# ---------------------------------------------------------------------------
# Summaries with explicit failure indicators
# ---------------------------------------------------------------------------

def _metric(fn: Callable[[Thread], Any], thread: Thread) -> dict[str, Any]:
    """Run a statistic, returning ``{"value": ..., "error": None | name}``.

    Timedeltas are reported as whole seconds and floats rounded to 2 places.
    """
    try:
        value = fn(thread)
    except ArchiveError as e:
        return {"value": None, "error": type(e).__name__}
    if isinstance(value, timedelta):
        value = int(value.total_seconds())
    elif isinstance(value, float):
        value = round(value, 2)
    return {"value": value, "error": None}


def summarize_thread(thread: Thread) -> dict[str, Any]:
    """Summarize one thread for reports.

    Returns:
        Dict with keys participants, message_count, word_count,
        first_message_at, last_message_at (raw timestamp text or None),
        last_sender, chronological, and the metric dicts
        avg_words_per_message, avg_reply_gap_seconds, duration_seconds.
    """
    first = thread.messages[0] if thread.messages else None
    last = thread.messages[-1] if thread.messages else None
    return {
        "participants": thread.participants,
        "message_count": thread.message_count(),
        "word_count": thread.word_count(),
        "first_message_at": first.sent_at_raw if first else None,
        "last_message_at": last.sent_at_raw if last else None,
        "last_sender": last.sender if last else None,
        "chronological": is_chronological(thread),
        "avg_words_per_message": _metric(average_words_per_message, thread),
        "avg_reply_gap_seconds": _metric(average_gap_between_replies, thread),
        "duration_seconds": _metric(total_thread_duration, thread),
    }


def compute_summary_stats(store: ConversationStore) -> dict[str, Any]:
    """Compute high-level totals and the date range of the archive.

    Returns:
        Dict with keys total_threads, total_messages, total_words,
        first_date, last_date (ISO date strings or None), years_span,
        most_common_word ({"word", "count"} or None), skipped_threads and
        unparsed_timestamps.
    """
    stamps = [m.sent_at for m in store.iter_messages() if m.sent_at is not None]
    first_date = None
    last_date = None
    years_span = 0.0
    if stamps:
        earliest, latest = min(stamps), max(stamps)
        first_date = earliest.date().isoformat()
        last_date = latest.date().isoformat()
        years_span = round((latest - earliest).days / 365.25, 2)

    top = most_common_word(store)
    return {
        "total_threads": store.thread_count(),
        "total_messages": store.total_messages(),
        "total_words": store.total_words(),
        "first_date": first_date,
        "last_date": last_date,
        "years_span": years_span,
        "most_common_word": {"word": top[0], "count": top[1]} if top else None,
        "skipped_threads": len(store.structural_errors()),
        "unparsed_timestamps": len(store.timestamp_errors()),
    }


def build_store_payload(
    store: ConversationStore,
    top_words: int = TOP_WORDS_LIMIT,
) -> dict[str, Any]:
    """Run every analytics computation over an already built store."""
    return {
        "generated_at": datetime.now().isoformat(),
        "summary": compute_summary_stats(store),
        "top_words": [{"word": w, "count": c} for w, c in store.ranked_words(limit=top_words)],
        "user_activity": compute_user_activity(store),
        "threads": [summarize_thread(t) for t in store.threads],
        "hourly": compute_hourly_data(store),
        "length_distribution": compute_length_distribution(store),
        "errors": [
            {"type": type(e).__name__, "detail": str(e), "thread_index": getattr(e, "thread_index", None)}
            for e in store.errors
        ],
    }


def build_dashboard_payload(
    path: str = "messages.htm",
    top_words: int = TOP_WORDS_LIMIT,
    strict: bool = False,
) -> dict[str, Any]:
    """One-call entry point: load, extract and compute all stats.

    Args:
        path: Filesystem path to the archive's messages.htm.
        top_words: Number of ranked words to include.
        strict: Abort on the first malformed thread instead of skipping it.

    Returns:
        Dict with keys: generated_at, summary, top_words, user_activity,
        threads, hourly, length_distribution, errors.

    Raises:
        FileNotFoundError: If the archive does not exist.
    """
    store = ConversationStore.from_file(path, strict=strict)
    logger.info("Loaded %s: %d threads, %d messages", path, store.thread_count(), store.total_messages())
    return build_store_payload(store, top_words=top_words)


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

_THREAD_CSV_FIELDS = [
    "participants",
    "message_count",
    "word_count",
    "first_message_at",
    "last_message_at",
    "last_sender",
    "avg_words_per_message",
    "avg_reply_gap_seconds",
    "duration_seconds",
]


def _flatten_thread_summary(summary: dict) -> dict:
    row = {k: summary.get(k) for k in _THREAD_CSV_FIELDS}
    for key in ("avg_words_per_message", "avg_reply_gap_seconds", "duration_seconds"):
        metric = summary[key]
        row[key] = metric["value"] if metric["error"] is None else ""
    return row


def save_analytics_files(
    payload: dict[str, Any],
    output_dir: str = "messenger_analytics",
) -> None:
    """Write CSV/JSON analytics files to output_dir.

    Creates the output directory if it doesn't exist and writes
    thread_summaries.json/csv, word_frequency.json/csv and
    user_activity.json/csv.

    Args:
        payload: Dict from ``build_dashboard_payload``.
        output_dir: Directory path for output files.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/thread_summaries.json", "w", encoding="utf-8") as f:
        json.dump(payload["threads"], f, indent=2, ensure_ascii=False)

    with open(f"{output_dir}/thread_summaries.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_THREAD_CSV_FIELDS)
        writer.writeheader()
        writer.writerows(_flatten_thread_summary(s) for s in payload["threads"])

    with open(f"{output_dir}/word_frequency.json", "w", encoding="utf-8") as f:
        json.dump(payload["top_words"], f, indent=2, ensure_ascii=False)

    with open(f"{output_dir}/word_frequency.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["word", "count"])
        writer.writeheader()
        writer.writerows(payload["top_words"])

    with open(f"{output_dir}/user_activity.json", "w", encoding="utf-8") as f:
        json.dump(payload["user_activity"], f, indent=2, ensure_ascii=False)

    with open(f"{output_dir}/user_activity.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(
            f, fieldnames=["sender", "messages", "words", "threads", "last_replies"]
        )
        writer.writeheader()
        writer.writerows(payload["user_activity"])


def _format_seconds(seconds: int) -> str:
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {secs}s"


def print_summary_report(payload: dict[str, Any], top: int = 10) -> None:
    """Print the CLI summary report to stdout.

    Args:
        payload: Dict from ``build_dashboard_payload``.
        top: Number of words, users and threads to list.
    """
    stats = payload["summary"]
    print(f"\n{'=' * 60}")
    print("Facebook Messages Summary")
    print(f"{'=' * 60}")
    print(f"Total Threads: {stats['total_threads']:,}")
    print(f"Total Messages: {stats['total_messages']:,}")
    print(f"Total Words: {stats['total_words']:,}")

    if stats["first_date"] and stats["last_date"]:
        print(f"First Message: {stats['first_date']}")
        print(f"Last Message: {stats['last_date']}")
        print(f"Time Span: {stats['years_span']:.2f} years")

    if stats["most_common_word"]:
        word = stats["most_common_word"]
        print(f"Most Common Word: {word['word']} ({word['count']:,} times)")

    if payload["top_words"]:
        print(f"\nTop {min(top, len(payload['top_words']))} Words:")
        for i, entry in enumerate(payload["top_words"][:top], 1):
            print(f"  {i:>3}. {entry['word']}: {entry['count']:,}")

    if payload["user_activity"]:
        print("\nMost Active Users:")
        for row in payload["user_activity"][:top]:
            print(
                f"  {row['sender']}: {row['messages']:,} messages, "
                f"{row['words']:,} words, last reply in {row['last_replies']:,} threads"
            )

    threads = sorted(payload["threads"], key=lambda t: t["message_count"], reverse=True)
    if threads:
        print(f"\n{'=' * 60}")
        print("Largest Threads")
        print(f"{'=' * 60}")
        for t in threads[:top]:
            gap = t["avg_reply_gap_seconds"]
            gap_str = _format_seconds(gap["value"]) if gap["error"] is None else f"n/a ({gap['error']})"
            print(f"  {t['participants']}: {t['message_count']:,} messages, avg reply gap {gap_str}")

    if stats["skipped_threads"] or stats["unparsed_timestamps"]:
        print(f"\nSkipped Threads: {stats['skipped_threads']:,}")
        print(f"Unparsed Timestamps: {stats['unparsed_timestamps']:,}")

    print(f"{'=' * 60}")
