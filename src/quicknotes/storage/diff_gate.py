"""Skip committing notes the user did not change."""
import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from quicknotes.exceptions import NoteCheckError
from quicknotes.observability import Diagnostics
from quicknotes.storage.preservation import try_preserve_note
from quicknotes.storage.staging import StagedNote
from quicknotes.storage.strategies import StoreStrategy

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def _digest_stream(stream: BinaryIO) -> bytes:
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.digest()


def store_if_different(
    strategy: StoreStrategy,
    staged: StagedNote,
    against: str,
    diagnostics: Diagnostics,
) -> Optional[Path]:
    """Commit ``staged`` with ``strategy`` unless its content equals ``against``.

    Returns:
        The committed path, or None if the content was unchanged and the
        staged note was discarded.

    Raises:
        NoteCheckError: If the staged content could not be read for comparison.
            The note is preserved first.
        StoreNoteError: Any failure raised by the strategy.
    """
    staged.ensure_live()
    reader = staged.reader
    try:
        reader.seek(0)
        staged_digest = _digest_stream(reader)
        reader.seek(0)
    except OSError as e:
        rescued = try_preserve_note(staged, diagnostics)
        raise NoteCheckError(staged.path, rescued, e) from e

    if staged_digest == hashlib.sha256(against.encode("utf-8")).digest():
        logger.info(f"Note at {staged.path} is unchanged, not storing it")
        staged.discard()
        return None

    return strategy.store(staged, diagnostics)
