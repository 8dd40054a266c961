"""messenger_summary.py

Summarize a Facebook message archive (messages.htm) from the command line.

Extracts every thread, prints a usage report and writes CSV/JSON analytics
files for messenger_viz.py.  Optionally saves a JSON snapshot of the
extracted threads for fast reloads, or writes a plain-text transcript.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from analytics import build_store_payload, print_summary_report, save_analytics_files
from conversation_store import ConversationStore
from exceptions import NotFound, StructuralError
from snapshot import load_snapshot, save_snapshot
from thread_export import export_threads

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE = "messages.htm"
DEFAULT_OUTPUT_DIR = "messenger_analytics"


def load_store(path: str, strict: bool = False, from_snapshot: bool = False) -> ConversationStore:
    """Load a store from an archive file, or from a snapshot if requested."""
    if from_snapshot:
        return load_snapshot(path)
    return ConversationStore.from_file(path, strict=strict)


def main(
    path: str = DEFAULT_ARCHIVE,
    output_dir: str = DEFAULT_OUTPUT_DIR,
    strict: bool = False,
    top: int = 10,
    from_snapshot: bool = False,
    snapshot_out: str | None = None,
    export_file: str | None = None,
) -> None:
    """Run the summary: load, report, and write analytics files.

    Exits with status 1 if the input cannot be read or, in strict mode,
    contains a malformed thread.
    """
    try:
        store = load_store(path, strict=strict, from_snapshot=from_snapshot)
    except FileNotFoundError:
        print(f"Error: File '{path}' not found.")
        sys.exit(1)
    except StructuralError as e:
        print(f"Error: malformed thread {e.thread_index} ({e.participants!r}): {e}")
        sys.exit(1)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: could not read '{path}': {e}")
        sys.exit(1)
    logger.debug("Loaded %d threads from %s", store.thread_count(), path)

    payload = build_store_payload(store)
    save_analytics_files(payload, output_dir)
    print_summary_report(payload, top=top)

    if snapshot_out:
        save_snapshot(store, snapshot_out)
        print(f"\nSnapshot saved to {snapshot_out}")

    if export_file:
        try:
            count = export_threads(store, export_file)
        except NotFound as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"Exported {count} threads to {export_file}")

    print(f"\nAnalytics data has been saved to the '{output_dir}' directory:")
    print("1. thread_summaries.json/csv - Per-thread statistics")
    print("2. word_frequency.json/csv - Most frequent words")
    print("3. user_activity.json/csv - Messages and words per user")


def cli(argv: list[str] | None = None) -> None:
    """Parse command-line arguments and run ``main``."""
    parser = argparse.ArgumentParser(description="Summarize a Facebook messages.htm archive")
    parser.add_argument("path", nargs="?", default=DEFAULT_ARCHIVE,
                        help=f"Path to messages.htm (default: {DEFAULT_ARCHIVE})")
    parser.add_argument("--output-dir", "-o", default=DEFAULT_OUTPUT_DIR,
                        help=f"Directory for analytics files (default: {DEFAULT_OUTPUT_DIR})")
    parser.add_argument("--strict", action="store_true",
                        help="Fail on the first malformed thread instead of skipping it")
    parser.add_argument("--top", type=int, default=10,
                        help="Number of words, users and threads to list (default: 10)")
    parser.add_argument("--from-snapshot", action="store_true",
                        help="Treat PATH as a snapshot written by --save-snapshot")
    parser.add_argument("--save-snapshot", dest="snapshot_out",
                        help="Write a JSON snapshot of the extracted threads")
    parser.add_argument("--export", dest="export_file",
                        help="Write a plain-text transcript of every thread")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    main(
        args.path,
        output_dir=args.output_dir,
        strict=args.strict,
        top=args.top,
        from_snapshot=args.from_snapshot,
        snapshot_out=args.snapshot_out,
        export_file=args.export_file,
    )


if __name__ == "__main__":
    cli()
