"""Scratch files that hold a note while it is being edited.

A ``StagedNote`` owns its temporary file until something consumes it: a
commit strategy (the file is deleted after a successful copy), the
content-diff gate (deleted when nothing changed), or preservation (kept as a
permanent file). A staged note that is never consumed is removed when it is
garbage collected or when its ``with`` block exits.
"""
import logging
import os
import tempfile
import weakref
from pathlib import Path
from typing import BinaryIO, Optional, Union

from quicknotes.exceptions import StagedNoteConsumedError
from quicknotes.utils import normalize_extension

logger = logging.getLogger(__name__)

STAGING_PREFIX = "quicknote-"


def _remove_staged_file(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove staged note {path}: {e}")


class StagedNote:
    """A private scratch file plus its path.

    Args:
        path: Path of an existing file that this object takes ownership of.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._reader: Optional[BinaryIO] = None
        self._consumed = False
        self._finalizer = weakref.finalize(self, _remove_staged_file, str(self.path))

    @classmethod
    def create(
        cls,
        extension: str,
        temp_root: Optional[Union[str, Path]] = None,
    ) -> "StagedNote":
        """Allocate a uniquely named, empty scratch file.

        Args:
            extension: File extension of the note, so editors pick the right mode.
            temp_root: Directory to create the file in; the system temp
                directory when None.

        Raises:
            OSError: If the file cannot be created.
        """
        fd, name = tempfile.mkstemp(
            suffix=normalize_extension(extension),
            prefix=STAGING_PREFIX,
            dir=str(temp_root) if temp_root is not None else None,
        )
        os.close(fd)
        logger.debug(f"Staged note at {name}")
        return cls(name)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def ensure_live(self) -> None:
        """Raise StagedNoteConsumedError if this note was already committed or preserved."""
        if self._consumed:
            raise StagedNoteConsumedError(self.path)

    def write(self, text: str) -> None:
        """Replace the file's content with ``text`` (UTF-8, newlines untouched)."""
        self.ensure_live()
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(text)

    def open(self) -> BinaryIO:
        """(Re)open the read handle.

        Call this after the editor has exited: some editors replace the file
        rather than writing into it, and a handle opened earlier would still
        see the old content.
        """
        self.ensure_live()
        self._close_reader()
        self._reader = open(self.path, "rb")
        return self._reader

    @property
    def reader(self) -> BinaryIO:
        if self._reader is None:
            return self.open()
        return self._reader

    def read_text(self) -> str:
        """Read the whole file, regardless of the reader's position.

        Line endings are returned as written.
        """
        with open(self.path, encoding="utf-8", newline="") as f:
            return f.read()

    def discard(self) -> None:
        """Consume the note and delete its file."""
        self.ensure_live()
        self._consumed = True
        self._close_reader()
        self._finalizer()

    def keep(self) -> Path:
        """Consume the note and make its file permanent.

        Returns:
            The path the content can be recovered from.

        Raises:
            StagedNoteConsumedError: If the note was already consumed.
            OSError: If the file no longer exists or cannot be inspected. The
                file is then still removed on cleanup.
        """
        self.ensure_live()
        self._consumed = True
        self._close_reader()
        os.stat(self.path)
        self._finalizer.detach()
        logger.info(f"Kept staged note at {self.path}")
        return self.path

    def _close_reader(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def __enter__(self) -> "StagedNote":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._consumed:
            self.discard()

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "live"
        return f"<StagedNote(path='{self.path}', {state})>"
