"""
Exports message threads from a Facebook archive into a human-readable text
transcript. Each thread gets a header with its participants and date range,
followed by every message with its sender and timestamp.
"""

from __future__ import annotations

import os
from datetime import datetime

from conversation_store import ConversationStore
from models import Message, Thread

UNKNOWN_TIME = "Unknown time"


def format_message(message: Message) -> str:
    """Format one message as a transcript block.

    Args:
        message: The message to format.

    Returns:
        A header line with sender and timestamp, followed by the body
        indented by four spaces.
    """
    timestamp = message.sent_at_raw or UNKNOWN_TIME
    if message.sent_at is None and message.sent_at_raw:
        timestamp += " (unparsed)"
    return f">>> {message.sender} [{timestamp}]:\n    {message.body}\n"


def format_thread(thread: Thread, index: int | None = None) -> str:
    """Format a whole thread as a framed transcript.

    Args:
        thread: The thread to format.
        index: Optional position used to label the thread.

    Returns:
        The transcript text, ending with a separator line.
    """
    label = f" THREAD #{index}: " if index is not None else " THREAD: "
    lines = [
        "+" + "=" * 98 + "+",
        f"|{label + thread.participants :<98}|",
        f"|{' Messages: ' + str(thread.message_count()) :<98}|",
    ]
    if thread.messages:
        first, last = thread.messages[0], thread.messages[-1]
        lines.append(f"|{' From: ' + (first.sent_at_raw or UNKNOWN_TIME) :<98}|")
        lines.append(f"|{' To:   ' + (last.sent_at_raw or UNKNOWN_TIME) :<98}|")
    lines.append("+" + "=" * 98 + "+")
    lines.append("")

    for message in thread.messages:
        lines.append(format_message(message))

    lines.append("*" * 100)
    return "\n".join(lines) + "\n"


def format_timestamps(thread: Thread) -> str:
    """List every message timestamp of *thread*, one per line."""
    return "\n".join(m.sent_at_raw for m in thread.messages)


def export_threads(
    store: ConversationStore,
    output_file: str,
    participants: list[str] | None = None,
) -> int:
    """Write selected threads of *store* to a text transcript.

    Args:
        store: The built conversation store.
        output_file: Destination file path. Parent dirs created automatically.
        participants: Exact participant keys of the threads to export, in
            the order to export them. None exports every thread.

    Returns:
        The number of threads written.

    Raises:
        NotFound: If a requested participant key has no thread.
    """
    if participants is None:
        selected = list(store.threads)
    else:
        selected = [store.lookup_thread(p) for p in participants]

    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write("FACEBOOK MESSAGES EXPORT\n")
        f.write(f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"Contains {len(selected)} threads\n")
        f.write("=" * 100 + "\n\n")
        for i, thread in enumerate(selected, 1):
            f.write(format_thread(thread, i))
            f.write("\n")

    return len(selected)
