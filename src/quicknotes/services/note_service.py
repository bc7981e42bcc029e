"""Service layer for note operations.

Each operation stages, edits, commits and indexes a note end to end. The
index database is opened only after the editor has exited, so no connection
is held while the user is typing.
"""
import datetime
import logging
import os
import stat
from pathlib import Path
from typing import Dict, Optional, Union

from quicknotes.config import NoteConfig
from quicknotes.exceptions import EditorError, NoteLookupError
from quicknotes.models.schema import IndexEntry, NoteKind, Preamble
from quicknotes.observability import Diagnostics, timed_operation
from quicknotes.services.editor import Editor
from quicknotes.services.indexing import (
    IndexSummary,
    index_all_notes,
    index_note,
    reindex_edited_note,
)
from quicknotes.storage.diff_gate import store_if_different
from quicknotes.storage.index_store import IndexStore, reset_index_file
from quicknotes.storage.preamble import render_note
from quicknotes.storage.staging import StagedNote
from quicknotes.storage.strategies import StoreAt, StoreIn, StoreStrategy
from quicknotes.utils import date_stem, filename_for_date, title_to_stem

logger = logging.getLogger(__name__)


def _note_exists(path: Path) -> bool:
    """Whether a note file exists at ``path``.

    Raises:
        NoteLookupError: If the path cannot be inspected, or is a directory.
    """
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        return False
    except OSError as e:
        raise NoteLookupError(path, e) from e

    if stat.S_ISDIR(mode):
        raise NoteLookupError(path, IsADirectoryError(f"{path} is a directory"))
    return True


class NoteService:
    """Creates, opens and indexes notes under ``config.root_dir``.

    Args:
        config: Where notes live and how they are named.
        diagnostics: Receives user-facing warnings. Defaults to the
            ``quicknotes`` logger and stderr.
    """

    def __init__(self, config: NoteConfig, diagnostics: Optional[Diagnostics] = None):
        self.config = config
        self.diagnostics = diagnostics or Diagnostics()

    def _open_index(self) -> IndexStore:
        self.config.root_dir.mkdir(parents=True, exist_ok=True)
        return IndexStore.open(self.config.index_db_path())

    def _run_editor(self, editor: Editor, path: Path) -> bool:
        try:
            return editor.edit(path)
        except OSError as e:
            raise EditorError(editor.name, e) from e

    def _kind_for_path(self, path: Path) -> NoteKind:
        daily_dir = self.config.daily_directory_path()
        try:
            Path(os.path.abspath(path)).relative_to(os.path.abspath(daily_dir))
        except ValueError:
            return NoteKind.NOTE
        return NoteKind.DAILY

    def _make_note_with(
        self,
        editor: Editor,
        title: str,
        creation_time: datetime.datetime,
        strategy: StoreStrategy,
        kind: NoteKind,
    ) -> Optional[Path]:
        initial_text = render_note(Preamble(title=title, created_at=creation_time))

        staged = StagedNote.create(
            self.config.file_extension, self.config.temp_root_override
        )
        with staged:
            staged.write(initial_text)
            if not self._run_editor(editor, staged.path):
                self.diagnostics.warning(
                    f"Editor '{editor.name}' did not exit successfully, not saving note"
                )
                return None

            # The editor may have replaced the file, so read it afresh
            staged.open()
            stored_path = store_if_different(
                strategy, staged, initial_text, self.diagnostics
            )

        if stored_path is None:
            logger.info(f"Note '{title}' was not changed, nothing stored")
            return None

        with self._open_index() as store:
            index_note(store, stored_path, kind)
        return stored_path

    def _open_existing(self, editor: Editor, path: Path, kind: NoteKind) -> Optional[Path]:
        if not self._run_editor(editor, path):
            self.diagnostics.warning(
                f"Editor '{editor.name}' did not exit successfully, not reindexing {path}"
            )
            return None

        with self._open_index() as store:
            reindex_edited_note(store, path, kind, self.diagnostics)
        return path

    def make_note(
        self,
        editor: Editor,
        title: str,
        creation_time: datetime.datetime,
    ) -> Optional[Path]:
        """Create a note in the notes directory and open it in the editor.

        The file is named after the title; if that name is taken a numbered
        variant is used. Nothing is stored if the user leaves the note exactly
        as it was generated, or if the editor fails.

        Returns:
            The path the note was stored at, or None if nothing was stored.

        Raises:
            EditorError: If the editor could not be started.
            StoreNoteError: If the note could not be committed. Its content is
                preserved and the error says where.
            NoteLostError: If committing failed and the content could not be
                preserved either.
            IndexStoreError: If the index could not be opened or updated.
        """
        with timed_operation("make_note", title=title):
            self.config.ensure_directories()
            strategy = StoreIn(
                self.config.notes_directory_path(),
                title_to_stem(title),
                self.config.file_extension,
            )
            return self._make_note_with(
                editor, title, creation_time, strategy, NoteKind.NOTE
            )

    def make_or_open_daily(
        self,
        editor: Editor,
        creation_time: datetime.datetime,
    ) -> Optional[Path]:
        """Open the daily note for ``creation_time``'s date, creating it if needed.

        The date is taken in ``creation_time``'s own timezone. A new daily
        note is titled with that date and stored at exactly
        ``daily/YYYY-MM-DD<ext>``.

        Returns:
            The daily note's path, or None if nothing was stored.

        Raises:
            NoteLookupError: If the daily note's path cannot be inspected or is
                a directory.
            EditorError: If the editor could not be started.
            StoreNoteError: If a new note could not be committed.
            IndexStoreError: If the index could not be opened or updated.
        """
        date = creation_time.date()
        with timed_operation("make_or_open_daily", date=date):
            self.config.ensure_directories()
            destination = self.config.daily_directory_path() / filename_for_date(
                date, self.config.file_extension
            )

            if _note_exists(destination):
                return self._open_existing(editor, destination, NoteKind.DAILY)

            return self._make_note_with(
                editor,
                date_stem(date),
                creation_time,
                StoreAt(destination),
                NoteKind.DAILY,
            )

    def open_note(self, editor: Editor, path: Union[str, Path]) -> Optional[Path]:
        """Open an existing note in the editor and reindex it afterwards.

        If the edit leaves the note without a valid preamble, it is removed
        from the index and a warning is reported.

        Returns:
            ``path``, or None if the editor failed and nothing was reindexed.

        Raises:
            NoteLookupError: If there is no note file at ``path``.
            EditorError: If the editor could not be started.
            IndexStoreError: If the index could not be opened or updated.
        """
        # The index is keyed by absolute path.
        path = Path(os.path.abspath(path))
        with timed_operation("open_note", path=path):
            if not _note_exists(path):
                raise NoteLookupError(
                    path, FileNotFoundError(f"no such file: {path}")
                )
            return self._open_existing(editor, path, self._kind_for_path(path))

    def index_notes(self) -> IndexSummary:
        """Rebuild the index from every note on disk.

        Raises:
            IndexStoreError: If the index could not be opened or reset.
        """
        self.config.ensure_directories()
        with self._open_index() as store:
            return index_all_notes(store, self.config, self.diagnostics)

    def indexed_notes(self) -> Dict[Path, IndexEntry]:
        """Every note in the index, keyed by path.

        Raises:
            IndexStoreError: If the index could not be opened or queried.
        """
        with self._open_index() as store:
            return store.all()

    def indexed_notes_with_kind(self, kind: NoteKind) -> Dict[Path, IndexEntry]:
        """The notes of one kind in the index, keyed by path.

        Raises:
            IndexStoreError: If the index could not be opened or queried.
        """
        with self._open_index() as store:
            return store.all_of_kind(kind)

    def reset_index(self) -> None:
        """Empty the index. A missing index database is left missing.

        Raises:
            IndexStoreError: If the index exists but could not be reset.
        """
        reset_index_file(self.config.index_db_path())
