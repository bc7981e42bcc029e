#!/usr/bin/env python
"""Main entry point for the quicknotes command line."""
import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import List, Optional

from quicknotes import __version__
from quicknotes.config import NoteConfig, load_config
from quicknotes.exceptions import QuicknotesError
from quicknotes.models.schema import NoteKind
from quicknotes.observability import Diagnostics, configure_logging
from quicknotes.services.editor import CommandEditor
from quicknotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

_FAILURE_MESSAGES = {
    "new": "could not create note",
    "daily": "could not open daily note",
    "open": "could not open note",
    "list": "could not list notes",
    "index": "could not index notes",
    "reset-index": "could not reset index",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="quicknotes", description="Quick plain-text notes")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--root-dir",
        help="Directory holding notes/, daily/ and the index (QUICKNOTES_ROOT_DIR)",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--editor",
        help="Editor command to open notes with (QUICKNOTES_EDITOR, then EDITOR)",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--log-level",
        help="Console logging level (QUICKNOTES_LOG_LEVEL)",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    new_parser = subparsers.add_parser("new", help="Create a new note")
    new_parser.add_argument(
        "title",
        nargs="+",
        help="Title of the note; spaces may be typed directly",
    )
    subparsers.add_parser("daily", help="Open or create today's daily note")
    open_parser = subparsers.add_parser("open", help="Open an existing note")
    open_parser.add_argument("path", help="Path of the note file")
    list_parser = subparsers.add_parser("list", help="List indexed notes")
    list_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in NoteKind],
        default=None,
        help="Only list notes of this kind",
    )
    subparsers.add_parser(
        "index",
        help="Index the notes directory",
        description=(
            "Scan the notes directory, and add the notes there to the index. "
            "This generally should not be necessary, as opening a note adds it "
            "to the index automatically, but if notes are edited outside of "
            "quicknotes or deleted, then this can be useful."
        ),
    )
    subparsers.add_parser("reset-index", help="Remove every entry from the index")

    return parser.parse_args(argv)


def _now() -> datetime.datetime:
    return datetime.datetime.now().astimezone()


def run_command(
    args: argparse.Namespace, config: NoteConfig, diagnostics: Diagnostics
) -> int:
    """Dispatch a parsed command. Returns the process exit status."""
    service = NoteService(config, diagnostics)
    editor = CommandEditor(config.editor_command)

    if args.command == "new":
        path = service.make_note(editor, " ".join(args.title), _now())
        if path is not None:
            print(path)
    elif args.command == "daily":
        path = service.make_or_open_daily(editor, _now())
        if path is not None:
            print(path)
    elif args.command == "open":
        service.open_note(editor, Path(args.path))
    elif args.command == "list":
        if args.kind:
            entries = service.indexed_notes_with_kind(NoteKind(args.kind))
        else:
            entries = service.indexed_notes()
        for path, entry in sorted(entries.items(), key=lambda item: item[1].title):
            print(f"{entry.title}\t{path}")
    elif args.command == "index":
        summary = service.index_notes()
        print(f"Indexed {summary.indexed} notes ({summary.failed} could not be indexed)")
    elif args.command == "reset-index":
        service.reset_index()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the quicknotes command line."""
    args = parse_args(argv)

    try:
        config = load_config(
            root_dir=Path(args.root_dir).expanduser().absolute() if args.root_dir else None,
            editor_command=args.editor,
            log_level=args.log_level,
        )
    except QuicknotesError as e:
        print(f"error: could not load configuration - {e}", file=sys.stderr)
        return 1

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, config.log_level.upper(), logging.WARNING)
    try:
        configure_logging(level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logger.warning(f"Failed to configure file logging: {e}")

    try:
        return run_command(args, config, Diagnostics())
    except QuicknotesError as e:
        logger.error(f"{_FAILURE_MESSAGES[args.command]} - {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
