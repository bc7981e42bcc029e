"""SQLite-backed index of note metadata.

The index is a cache: every row can be rebuilt from the preamble of the file
it points at, so rows that fail to decode are skipped rather than fatal.
"""
import datetime
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quicknotes.exceptions import (
    BadPathError,
    IndexDatabaseError,
    IndexDeleteError,
    IndexLookupError,
    IndexOpenError,
    IndexResetError,
)
from quicknotes.models.db_models import (
    CREATED_AT_FORMAT,
    CREATED_AT_FORMAT_MICROSECONDS,
    DBNoteEntry,
    create_index_engine,
    get_session_factory,
    run_migrations,
)
from quicknotes.models.schema import IndexEntry, NoteKind, Preamble, offset_from_seconds

logger = logging.getLogger(__name__)

_UPDATED_COLUMNS = ("title", "created_at", "utc_offset_seconds", "kind")


def _format_created_at(created_at: datetime.datetime) -> str:
    # Wall time at the note's own offset; the offset is stored separately
    return created_at.replace(tzinfo=None).isoformat()


def _parse_created_at(value: str) -> datetime.datetime:
    for fmt in (CREATED_AT_FORMAT, CREATED_AT_FORMAT_MICROSECONDS):
        try:
            return datetime.datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized timestamp {value!r}")


def _entry_from_row(row) -> IndexEntry:
    """Rebuild an index entry; raises ValueError or TypeError on corrupt rows."""
    if not isinstance(row.created_at, str):
        raise TypeError(f"timestamp is not text: {row.created_at!r}")
    created_at = _parse_created_at(row.created_at).replace(
        tzinfo=offset_from_seconds(row.utc_offset_seconds)
    )
    return IndexEntry(
        path=Path(row.filepath),
        preamble=Preamble(title=row.title, created_at=created_at),
        kind=NoteKind(row.kind),
    )


def _encodable_path(path: Union[str, Path]) -> Optional[str]:
    filepath = str(path)
    try:
        filepath.encode("utf-8")
    except UnicodeEncodeError:
        return None
    return filepath


class IndexStore:
    """Upserts, queries and clears the ``notes`` table.

    Every operation runs in its own transaction unless it happens inside
    ``transaction()``, in which case all of them commit or roll back together.
    """

    def __init__(self, engine: Engine, location: str = ":memory:"):
        self.engine = engine
        self.location = location
        self.session_factory = get_session_factory(engine)
        self._session: Optional[Session] = None

    @classmethod
    def open(cls, db_path: Union[str, Path]) -> "IndexStore":
        """Open (creating if needed) the index database at ``db_path``.

        Raises:
            IndexOpenError: If the database cannot be opened or migrated.
        """
        db_path = Path(db_path)
        engine = create_index_engine(f"sqlite:///{db_path}")
        try:
            run_migrations(engine)
        except SQLAlchemyError as e:
            engine.dispose()
            raise IndexOpenError(str(db_path), e) from e
        return cls(engine, str(db_path))

    @classmethod
    def in_memory(cls) -> "IndexStore":
        """Open a private, empty in-memory index."""
        engine = create_index_engine()
        try:
            run_migrations(engine)
        except SQLAlchemyError as e:
            engine.dispose()
            raise IndexOpenError(":memory:", e) from e
        return cls(engine)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> "IndexStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator["IndexStore"]:
        """Group several operations into one atomic transaction."""
        if self._session is not None:
            yield self
            return

        with self.session_factory() as session, session.begin():
            self._session = session
            try:
                yield self
            finally:
                self._session = None

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return

        with self.session_factory() as session, session.begin():
            yield session

    def add(self, preamble: Preamble, kind: NoteKind, path: Union[str, Path]) -> None:
        """Insert or update the entry for ``path``.

        Raises:
            BadPathError: If the path cannot be stored as UTF-8 text.
            IndexDatabaseError: If the upsert fails.
        """
        filepath = _encodable_path(path)
        if filepath is None:
            raise BadPathError(path)

        values = {
            "filepath": filepath,
            "title": preamble.title,
            "created_at": _format_created_at(preamble.created_at),
            "utc_offset_seconds": preamble.utc_offset_seconds,
            "kind": NoteKind(kind).value,
        }
        stmt = sqlite_insert(DBNoteEntry.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["filepath"],
            set_={column: stmt.excluded[column] for column in _UPDATED_COLUMNS},
        )

        try:
            with self._session_scope() as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            raise IndexDatabaseError(path, e) from e
        logger.debug(f"Indexed {filepath} as {values['kind']}")

    def _select(self, kind: Optional[NoteKind] = None) -> Dict[Path, IndexEntry]:
        query = select(
            DBNoteEntry.filepath,
            DBNoteEntry.title,
            DBNoteEntry.created_at,
            DBNoteEntry.utc_offset_seconds,
            DBNoteEntry.kind,
        )
        if kind is not None:
            query = query.where(DBNoteEntry.kind == NoteKind(kind).value)

        try:
            with self._session_scope() as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as e:
            raise IndexLookupError(e) from e

        entries: Dict[Path, IndexEntry] = {}
        for row in rows:
            try:
                entry = _entry_from_row(row)
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping corrupt index entry for {row.filepath}: {e}")
                continue
            entries[entry.path] = entry
        return entries

    def all(self) -> Dict[Path, IndexEntry]:
        """Every readable entry, keyed by note path.

        Raises:
            IndexLookupError: If the table cannot be queried.
        """
        return self._select()

    def all_of_kind(self, kind: NoteKind) -> Dict[Path, IndexEntry]:
        """Every readable entry of one kind, keyed by note path.

        Raises:
            IndexLookupError: If the table cannot be queried.
        """
        return self._select(kind)

    def delete(self, path: Union[str, Path]) -> None:
        """Remove the entry for ``path``; a path that is not indexed is fine.

        Raises:
            IndexDeleteError: If the delete fails.
        """
        filepath = _encodable_path(path)
        if filepath is None:
            # Never insertable, so never indexed
            return

        try:
            with self._session_scope() as session:
                session.execute(
                    delete(DBNoteEntry.__table__).where(DBNoteEntry.filepath == filepath)
                )
        except SQLAlchemyError as e:
            raise IndexDeleteError(path, e) from e
        logger.debug(f"Removed {filepath} from index")

    def reset(self) -> None:
        """Remove every entry.

        Raises:
            IndexResetError: If the delete fails.
        """
        try:
            with self._session_scope() as session:
                session.execute(delete(DBNoteEntry.__table__))
        except SQLAlchemyError as e:
            raise IndexResetError(e) from e
        logger.info(f"Reset index at {self.location}")

    def __repr__(self) -> str:
        return f"<IndexStore(location='{self.location}')>"


def reset_index_file(db_path: Union[str, Path]) -> None:
    """Empty the index database at ``db_path``; a missing database is already empty.

    Raises:
        IndexOpenError: If the database exists but cannot be opened.
        IndexResetError: If the delete fails.
    """
    db_path = Path(db_path)
    if not db_path.exists():
        logger.info(f"No index at {db_path}, nothing to reset")
        return

    with IndexStore.open(db_path) as store:
        store.reset()
