"""SQLAlchemy models and schema migrations for the note index."""
import logging
from typing import Callable, List, Optional

from sqlalchemy import CheckConstraint, Column, Integer, Text, create_engine, event, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create base class for SQLAlchemy models
Base = declarative_base()

# Timestamps are stored without their offset; the offset has its own column
CREATED_AT_FORMAT = "%Y-%m-%dT%H:%M:%S"
CREATED_AT_FORMAT_MICROSECONDS = "%Y-%m-%dT%H:%M:%S.%f"


class DBNoteEntry(Base):
    """Database model for one indexed note file."""
    __tablename__ = "notes"
    filepath = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    utc_offset_seconds = Column(Integer, nullable=False)
    kind = Column(Text, nullable=False, default="note", server_default="note")

    __table_args__ = (
        CheckConstraint("kind IN ('note', 'daily')", name="known_note_kind"),
    )

    def __repr__(self) -> str:
        """Return string representation of index entry."""
        return f"<NoteEntry(filepath='{self.filepath}', kind='{self.kind}')>"


def _migrate_create_notes_table(conn: Connection) -> None:
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS notes (
            filepath TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL,
            utc_offset_seconds INTEGER NOT NULL
        )
    """))


def _migrate_add_kind_column(conn: Connection) -> None:
    """Migration: Add kind column to existing databases.

    SQLite doesn't support IF NOT EXISTS for ADD COLUMN, so we check
    the schema first. Existing rows become regular notes.
    """
    columns = [col["name"] for col in inspect(conn).get_columns("notes")]

    if "kind" not in columns:
        conn.execute(text(
            "ALTER TABLE notes ADD COLUMN kind TEXT NOT NULL DEFAULT 'note' "
            "CHECK (kind IN ('note', 'daily'))"
        ))
        conn.execute(text("UPDATE notes SET kind = 'note' WHERE kind IS NULL"))


# Applied in order; the database's user_version counts how many have run
MIGRATIONS: List[Callable[[Connection], None]] = [
    _migrate_create_notes_table,
    _migrate_add_kind_column,
]


def schema_version(conn: Connection) -> int:
    return int(conn.exec_driver_sql("PRAGMA user_version").scalar() or 0)


def run_migrations(engine: Engine) -> int:
    """Bring the schema up to date.

    Each pending migration runs in its own transaction together with the
    version bump, so an interrupted upgrade resumes where it stopped.

    Returns:
        The schema version after migrating.
    """
    with engine.begin() as conn:
        version = schema_version(conn)

    if version > len(MIGRATIONS):
        logger.warning(
            f"Index schema version {version} is newer than this program "
            f"({len(MIGRATIONS)}); continuing anyway"
        )
        return version

    for number, migration in enumerate(MIGRATIONS[version:], start=version + 1):
        with engine.begin() as conn:
            migration(conn)
            conn.exec_driver_sql(f"PRAGMA user_version = {number:d}")
        logger.info(f"Applied index migration {number} ({migration.__name__})")

    return len(MIGRATIONS)


def create_index_engine(db_url: Optional[str] = None) -> Engine:
    """Create an engine with the index's SQLite configuration.

    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode (good balance of safety vs speed)
    - A single shared connection for in-memory databases, which would
      otherwise be private to each connection

    Args:
        db_url: SQLAlchemy URL. An in-memory database when None.
    """
    if db_url is None:
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(db_url, pool_pre_ping=True)

    # Apply WAL mode and other PRAGMA settings on every connection
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Get a session factory for the index database."""
    return sessionmaker(bind=engine)
