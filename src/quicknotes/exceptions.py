"""Custom exceptions for quicknotes.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

PathLike = Union[str, Path]


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Preamble errors (1xxx)
    PREAMBLE_MALFORMED_FENCE = 1001
    PREAMBLE_UNTERMINATED_FENCE = 1002
    PREAMBLE_DESERIALIZE_FAILED = 1003
    PREAMBLE_SERIALIZE_FAILED = 1004

    # Storage errors (2xxx)
    NOTE_COPY_FAILED = 2001
    NOTE_CLOBBER_PREVENTED = 2002
    NOTE_CLOBBER_PREVENTION_FAILED = 2003
    NOTE_CHECK_FAILED = 2004
    NOTE_LOST = 2005
    NOTE_READ_FAILED = 2006
    NOTE_LOOKUP_FAILED = 2007
    STAGED_NOTE_CONSUMED = 2008

    # Index errors (3xxx)
    INDEX_OPEN_FAILED = 3001
    INDEX_LOOKUP_FAILED = 3002
    INDEX_INSERT_FAILED = 3003
    INDEX_BAD_PATH = 3004
    INDEX_DELETE_FAILED = 3005
    INDEX_RESET_FAILED = 3006

    # Editor errors (4xxx)
    EDITOR_FAILED = 4001

    # Configuration errors (5xxx)
    CONFIG_INVALID = 5001


class QuicknotesError(Exception):
    """Base exception for all quicknotes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
        original_error: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"{self.message}: {self.original_error}"
        return self.message


# ---------------------------------------------------------------------------
# Preamble
# ---------------------------------------------------------------------------


class PreambleError(QuicknotesError):
    """Raised when a note's preamble cannot be read or written."""


class MalformedFenceError(PreambleError):
    """The note does not start with a preamble fence."""

    def __init__(self, first_line: str):
        super().__init__(
            "note does not start with a preamble fence",
            code=ErrorCode.PREAMBLE_MALFORMED_FENCE,
            details={"first_line": first_line[:100]},
        )
        self.first_line = first_line


class UnterminatedFenceError(PreambleError):
    """The preamble fence was opened but never closed."""

    def __init__(self):
        super().__init__(
            "preamble fence is never closed",
            code=ErrorCode.PREAMBLE_UNTERMINATED_FENCE,
        )


class PreambleDeserializeError(PreambleError):
    """The preamble block does not describe a valid preamble."""

    def __init__(self, reason: str, original_error: Optional[BaseException] = None):
        super().__init__(
            f"invalid preamble: {reason}",
            code=ErrorCode.PREAMBLE_DESERIALIZE_FAILED,
            original_error=original_error,
        )
        self.reason = reason


class PreambleSerializeError(PreambleError):
    """A preamble could not be encoded."""

    def __init__(self, reason: str):
        super().__init__(
            f"could not serialize preamble: {reason}",
            code=ErrorCode.PREAMBLE_SERIALIZE_FAILED,
        )
        self.reason = reason


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class NoteLostError(QuicknotesError):
    """Raised when a staged note could neither be kept nor read back.

    This is the only failure in which note content is actually lost.
    """

    def __init__(self, path: PathLike, keep_error: BaseException, read_error: BaseException):
        super().__init__(
            f"note was unable to be preserved ({keep_error}), "
            f"and then could not be read for you ({read_error})",
            code=ErrorCode.NOTE_LOST,
            details={"path": str(path)},
            original_error=keep_error,
        )
        self.path = Path(path)
        self.keep_error = keep_error
        self.read_error = read_error

    def __str__(self) -> str:
        return self.message


class StagedNoteConsumedError(QuicknotesError):
    """Raised when a staged note is used after it was committed or preserved."""

    def __init__(self, path: PathLike):
        super().__init__(
            f"staged note at {path} has already been consumed",
            code=ErrorCode.STAGED_NOTE_CONSUMED,
            details={"path": str(path)},
        )
        self.path = Path(path)


class StoreNoteError(QuicknotesError):
    """Base class for failures to commit a staged note.

    Attributes:
        destination: Where the note was meant to go
        rescued_path: Where the staged content was preserved, if it was kept
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        destination: PathLike,
        rescued_path: Optional[PathLike],
        original_error: Optional[BaseException] = None,
    ):
        details = {"destination": str(destination)}
        if rescued_path is not None:
            details["rescued_path"] = str(rescued_path)
            message = f"{message}. It still exists at {rescued_path}"
        super().__init__(
            message, code=code, details=details, original_error=original_error
        )
        self.destination = Path(destination)
        self.rescued_path = Path(rescued_path) if rescued_path is not None else None


class NoteCopyError(StoreNoteError):
    """Copying the staged note to its destination failed."""

    def __init__(
        self,
        destination: PathLike,
        rescued_path: Optional[PathLike],
        original_error: BaseException,
    ):
        super().__init__(
            f"could not store note at {destination}",
            code=ErrorCode.NOTE_COPY_FAILED,
            destination=destination,
            rescued_path=rescued_path,
            original_error=original_error,
        )


class NoteClobberPreventedError(StoreNoteError):
    """A file already exists at an exact destination; nothing was overwritten."""

    def __init__(self, destination: PathLike, rescued_path: Optional[PathLike]):
        super().__init__(
            f"refusing to overwrite existing file at {destination}",
            code=ErrorCode.NOTE_CLOBBER_PREVENTED,
            destination=destination,
            rescued_path=rescued_path,
        )


class NoteClobberPreventionError(StoreNoteError):
    """A file exists with the same name and no alternative name could be generated."""

    def __init__(
        self,
        destination: PathLike,
        rescued_path: Optional[PathLike],
        original_error: BaseException,
    ):
        super().__init__(
            f"could not store note at {destination}; file exists with the same "
            "name, and could not generate new filename for note",
            code=ErrorCode.NOTE_CLOBBER_PREVENTION_FAILED,
            destination=destination,
            rescued_path=rescued_path,
            original_error=original_error,
        )


class NoteCheckError(StoreNoteError):
    """The staged note could not be compared against its baseline."""

    def __init__(
        self,
        path: PathLike,
        rescued_path: Optional[PathLike],
        original_error: BaseException,
    ):
        super().__init__(
            "could not check note before storing it",
            code=ErrorCode.NOTE_CHECK_FAILED,
            destination=path,
            rescued_path=rescued_path,
            original_error=original_error,
        )


class NoteReadError(QuicknotesError):
    """A note file could not be opened for reading."""

    def __init__(self, path: PathLike, original_error: BaseException):
        super().__init__(
            f"could not open note at {path}",
            code=ErrorCode.NOTE_READ_FAILED,
            details={"path": str(path)},
            original_error=original_error,
        )
        self.path = Path(path)


class NoteLookupError(QuicknotesError):
    """An existing note could not be located."""

    def __init__(self, path: PathLike, original_error: BaseException):
        super().__init__(
            f"could not check if note exists at {path}",
            code=ErrorCode.NOTE_LOOKUP_FAILED,
            details={"path": str(path)},
            original_error=original_error,
        )
        self.path = Path(path)


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class IndexStoreError(QuicknotesError):
    """Base class for index database failures."""


class IndexOpenError(IndexStoreError):
    """The index database could not be opened or migrated."""

    def __init__(self, db_path: str, original_error: BaseException):
        super().__init__(
            f"could not open index database at {db_path}",
            code=ErrorCode.INDEX_OPEN_FAILED,
            details={"db_path": db_path},
            original_error=original_error,
        )
        self.db_path = db_path


class IndexLookupError(IndexStoreError):
    """The index database could not be queried."""

    def __init__(self, original_error: BaseException):
        super().__init__(
            "could not query index database",
            code=ErrorCode.INDEX_LOOKUP_FAILED,
            original_error=original_error,
        )


class IndexInsertError(IndexStoreError):
    """Base class for failures to upsert an index entry."""


class BadPathError(IndexInsertError):
    """The note path cannot be stored as text."""

    def __init__(self, path: PathLike, original_error: Optional[BaseException] = None):
        super().__init__(
            f"cannot insert a non-utf-8 path to the database: {path!r}",
            code=ErrorCode.INDEX_BAD_PATH,
            original_error=original_error,
        )
        self.path = Path(path)

    def __str__(self) -> str:
        return self.message


class IndexDatabaseError(IndexInsertError):
    """The upsert itself failed."""

    def __init__(self, path: PathLike, original_error: BaseException):
        super().__init__(
            "could not insert into index database",
            code=ErrorCode.INDEX_INSERT_FAILED,
            details={"path": str(path)},
            original_error=original_error,
        )
        self.path = Path(path)


class IndexDeleteError(IndexStoreError):
    """An index entry could not be removed."""

    def __init__(self, path: PathLike, original_error: BaseException):
        super().__init__(
            f"could not remove {path} from the index",
            code=ErrorCode.INDEX_DELETE_FAILED,
            details={"path": str(path)},
            original_error=original_error,
        )
        self.path = Path(path)


class IndexResetError(IndexStoreError):
    """The index could not be emptied."""

    def __init__(self, original_error: BaseException):
        super().__init__(
            "could not reset index database",
            code=ErrorCode.INDEX_RESET_FAILED,
            original_error=original_error,
        )


# ---------------------------------------------------------------------------
# Editor / configuration
# ---------------------------------------------------------------------------


class EditorError(QuicknotesError):
    """The editor could not be launched."""

    def __init__(self, editor: str, original_error: BaseException):
        super().__init__(
            f"could not spawn editor '{editor}'",
            code=ErrorCode.EDITOR_FAILED,
            details={"editor": editor},
            original_error=original_error,
        )
        self.editor = editor


class ConfigurationError(QuicknotesError):
    """Raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=ErrorCode.CONFIG_INVALID, details=details)
        self.config_key = config_key
