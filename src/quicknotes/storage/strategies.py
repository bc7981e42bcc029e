"""Policies for moving a staged note to its permanent location.

There are exactly two: ``StoreAt`` writes to one exact path and fails if
anything is already there, ``StoreIn`` writes into a directory and picks a
numbered name when the preferred one is taken. Neither ever overwrites an
existing file; the filesystem's exclusive create decides who gets a name.

Notes are copied rather than renamed because the staging directory and the
notes directory may be on different filesystems.
"""
import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from quicknotes.exceptions import (
    NoteClobberPreventedError,
    NoteClobberPreventionError,
    NoteCopyError,
)
from quicknotes.observability import Diagnostics
from quicknotes.storage.preservation import try_preserve_note
from quicknotes.storage.staging import StagedNote
from quicknotes.utils import normalize_extension

logger = logging.getLogger(__name__)


def copy_to_destination(source: BinaryIO, destination: Path) -> None:
    """Copy ``source`` into a file that must not exist yet.

    Raises:
        FileExistsError: If ``destination`` already exists. Nothing is written.
        OSError: If creating or writing the file fails. A partially written
            destination is removed first.
    """
    out = open(destination, "xb")
    try:
        with out:
            shutil.copyfileobj(source, out)
            out.flush()
            os.fsync(out.fileno())
    except OSError:
        try:
            destination.unlink()
        except OSError as cleanup_error:
            logger.warning(
                f"Could not remove partially written note {destination}: {cleanup_error}"
            )
        raise


def find_next_destination(directory: Path, stem: str, extension: str) -> Path:
    """Pick ``stem-N.ext`` with N one past the largest suffix already in ``directory``.

    Matching is exact and case-sensitive. The whole directory is scanned on
    every call.

    Raises:
        OSError: If the directory cannot be listed.
    """
    extension = normalize_extension(extension)
    pattern = re.compile(rf"{re.escape(stem)}-(\d+){re.escape(extension)}")

    highest = 0
    with os.scandir(directory) as entries:
        for entry in entries:
            match = pattern.fullmatch(entry.name)
            if match:
                highest = max(highest, int(match.group(1)))

    return directory / f"{stem}-{highest + 1}{extension}"


@dataclass(frozen=True)
class StoreAt:
    """Store the note at exactly ``destination``.

    The destination was chosen by the user, so a collision is never redirected
    to another name: it is an error, and the staged content is preserved.
    """

    destination: Path

    def store(self, staged: StagedNote, diagnostics: Diagnostics) -> Path:
        """Commit the staged note and delete the scratch file.

        Raises:
            NoteClobberPreventedError: If a file already exists at the destination.
            NoteCopyError: If the copy fails for any other reason.
            NoteLostError: If the content could not be preserved after a failure.
        """
        staged.ensure_live()
        destination = Path(self.destination)
        try:
            copy_to_destination(staged.reader, destination)
        except FileExistsError:
            rescued = try_preserve_note(staged, diagnostics)
            raise NoteClobberPreventedError(destination, rescued)
        except OSError as e:
            rescued = try_preserve_note(staged, diagnostics)
            raise NoteCopyError(destination, rescued, e) from e

        staged.discard()
        logger.info(f"Stored note at {destination}")
        return destination


@dataclass(frozen=True)
class StoreIn:
    """Store the note in ``storage_directory``, preferably as ``stem + extension``.

    When the preferred name is taken, ``stem-1``, ``stem-2``... are tried,
    continuing after the largest number already present. The retry loop only
    ends on success or failure; a process that keeps creating exactly the
    candidate name could keep it spinning.
    """

    storage_directory: Path
    preferred_file_stem: str
    file_extension: str

    @property
    def preferred_destination(self) -> Path:
        extension = normalize_extension(self.file_extension)
        return Path(self.storage_directory) / f"{self.preferred_file_stem}{extension}"

    def store(self, staged: StagedNote, diagnostics: Diagnostics) -> Path:
        """Commit the staged note and delete the scratch file.

        Returns:
            The path the note was actually written to.

        Raises:
            NoteClobberPreventionError: If a new name was needed but the
                directory could not be scanned for one.
            NoteCopyError: If the copy fails for any other reason.
            NoteLostError: If the content could not be preserved after a failure.
        """
        staged.ensure_live()
        destination = self.preferred_destination

        while True:
            try:
                copy_to_destination(staged.reader, destination)
                break
            except FileExistsError:
                diagnostics.warning(
                    f"Note already exists at {destination}, generating new filename..."
                )
            except OSError as e:
                rescued = try_preserve_note(staged, diagnostics)
                raise NoteCopyError(destination, rescued, e) from e

            try:
                destination = find_next_destination(
                    Path(self.storage_directory),
                    self.preferred_file_stem,
                    self.file_extension,
                )
            except OSError as e:
                rescued = try_preserve_note(staged, diagnostics)
                raise NoteClobberPreventionError(destination, rescued, e) from e

        staged.discard()
        logger.info(f"Stored note at {destination}")
        return destination


StoreStrategy = Union[StoreAt, StoreIn]
