"""Keeping the index in step with the note files on disk."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from quicknotes.config import NoteConfig
from quicknotes.exceptions import (
    IndexDeleteError,
    IndexInsertError,
    NoteReadError,
    PreambleError,
)
from quicknotes.models.schema import NoteKind
from quicknotes.observability import Diagnostics, timed_operation
from quicknotes.storage.index_store import IndexStore
from quicknotes.storage.preamble import extract

logger = logging.getLogger(__name__)


@dataclass
class IndexSummary:
    """Outcome of rebuilding the index from disk."""

    indexed: int = 0
    failures: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


def index_note(store: IndexStore, path: Union[str, Path], kind: NoteKind) -> None:
    """Read the preamble of the note at ``path`` and upsert it into ``store``.

    Raises:
        NoteReadError: If the file cannot be opened or read.
        PreambleError: If the file has no valid preamble.
        IndexInsertError: If the entry cannot be stored.
    """
    path = Path(path)
    try:
        note_file = open(path, "rb")
    except OSError as e:
        raise NoteReadError(path, e) from e

    with note_file:
        try:
            preamble = extract(note_file)
        except OSError as e:
            raise NoteReadError(path, e) from e

    store.add(preamble, kind, path)


def reindex_edited_note(
    store: IndexStore,
    path: Union[str, Path],
    kind: NoteKind,
    diagnostics: Diagnostics,
) -> None:
    """Reindex a note after the user edited it.

    If the edit broke the preamble, the note's old entry would now be wrong,
    so it is removed and a warning is reported instead of raising.

    Raises:
        NoteReadError: If the file cannot be read.
        IndexInsertError: If the entry cannot be stored.
    """
    try:
        index_note(store, path, kind)
    except PreambleError as err:
        try:
            store.delete(path)
        except IndexDeleteError as delete_err:
            diagnostics.warning(
                "After editing, the note could not be reindexed. There was a "
                "subsequent failure that prevented it from being removed from the "
                "index, so there is now a stale entry. You can fix this by running "
                f"`quicknotes index`. Original error: {err}; Delete error: {delete_err}"
            )
            return

        diagnostics.warning(
            "After editing, the note could not be reindexed. It has been removed "
            f"from the index. Original error: {err}"
        )


def _walk_files(directory: Path, diagnostics: Diagnostics) -> Iterator[Path]:
    def on_error(err: OSError) -> None:
        where = err.filename if err.filename else directory
        diagnostics.warning(f"Cannot traverse {where}: {err.strerror or err}")

    for dirpath, dirnames, filenames in os.walk(directory, onerror=on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            yield Path(dirpath) / filename


def walk_note_files(
    config: NoteConfig, diagnostics: Diagnostics
) -> Iterator[Tuple[NoteKind, Path]]:
    """Yield every note file under the notes and daily directories.

    Directories that cannot be read are reported and skipped so the rest of
    the tree is still visited.
    """
    for kind, directory in (
        (NoteKind.NOTE, config.notes_directory_path()),
        (NoteKind.DAILY, config.daily_directory_path()),
    ):
        for path in _walk_files(directory, diagnostics):
            yield kind, path


def index_all_notes(
    store: IndexStore, config: NoteConfig, diagnostics: Diagnostics
) -> IndexSummary:
    """Rebuild the index from the files on disk.

    The index is emptied first, which also drops entries for deleted files.
    Notes that cannot be indexed are reported and skipped. The whole rebuild
    is a single transaction, so a failure leaves the previous index intact.

    Raises:
        IndexResetError: If the index cannot be emptied.
    """
    summary = IndexSummary()
    with timed_operation("index_all_notes", root=config.root_dir) as op:
        with store.transaction():
            store.reset()
            for kind, path in walk_note_files(config, diagnostics):
                try:
                    index_note(store, path, kind)
                except (NoteReadError, PreambleError, IndexInsertError) as err:
                    diagnostics.warning(f"could not index note at {path}: {err}")
                    summary.failures.append((path, str(err)))
                    continue
                summary.indexed += 1
        op["indexed"] = summary.indexed
        op["failed"] = summary.failed

    logger.info(f"Indexed {summary.indexed} notes ({summary.failed} failed)")
    return summary
