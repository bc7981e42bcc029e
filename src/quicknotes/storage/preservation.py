"""Last-resort handling for staged notes that could not be committed."""
import logging
from pathlib import Path
from typing import Optional

from quicknotes.exceptions import NoteLostError
from quicknotes.observability import Diagnostics
from quicknotes.storage.staging import StagedNote

logger = logging.getLogger(__name__)


def try_preserve_note(staged: StagedNote, diagnostics: Diagnostics) -> Optional[Path]:
    """Make sure the content of a doomed staged note survives.

    The staged file is first kept where it is, so the user can recover it from
    the returned path. If that fails, its content is dumped to the diagnostics
    stream instead and None is returned.

    Raises:
        NoteLostError: If the file could neither be kept nor read. This is the
            only case in which the note's content is lost.
    """
    path = staged.path
    try:
        return staged.keep()
    except OSError as keep_error:
        logger.error(f"Could not keep staged note at {path}: {keep_error}")
        try:
            contents = path.read_bytes().decode("utf-8", errors="replace")
        except OSError as read_error:
            raise NoteLostError(path, keep_error, read_error) from read_error

        diagnostics.warning(
            "Your note could not be saved due to an error. Here are its contents"
        )
        diagnostics.dump(contents)
        return None
