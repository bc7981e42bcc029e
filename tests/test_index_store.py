"""Tests for the SQLite note index."""
import datetime
import logging
import os
import sqlite3
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from quicknotes.exceptions import (
    BadPathError,
    IndexInsertError,
    IndexLookupError,
    IndexOpenError,
)
from quicknotes.models.db_models import MIGRATIONS, schema_version
from quicknotes.models.schema import NoteKind, Preamble
from quicknotes.storage.index_store import IndexStore, reset_index_file
from tests.conftest import TEST_TIME


def _insert_raw(store, filepath, created_at, offset, kind="note", title="raw"):
    with store.engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO notes (filepath, title, created_at, utc_offset_seconds, kind) "
                "VALUES (:filepath, :title, :created_at, :offset, :kind)"
            ),
            {
                "filepath": filepath,
                "title": title,
                "created_at": created_at,
                "offset": offset,
                "kind": kind,
            },
        )


class TestAddAndQuery:
    """Tests for inserting and reading entries."""

    def test_add_then_all(self, index_store):
        preamble = Preamble(title="my note", created_at=TEST_TIME)
        index_store.add(preamble, NoteKind.NOTE, Path("/notes/my-note.txt"))

        entries = index_store.all()

        assert list(entries) == [Path("/notes/my-note.txt")]
        entry = entries[Path("/notes/my-note.txt")]
        assert entry.preamble == preamble
        assert entry.preamble.created_at.utcoffset() == datetime.timedelta(hours=-7)
        assert entry.kind == NoteKind.NOTE

    def test_created_at_stored_at_its_own_offset(self, index_store):
        index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/n.txt")

        with index_store.engine.connect() as conn:
            row = conn.execute(
                text("SELECT created_at, utc_offset_seconds FROM notes")
            ).one()

        assert row.created_at == "2015-10-21T07:28:00"
        assert row.utc_offset_seconds == -7 * 3600

    def test_microseconds_round_trip(self, index_store):
        created_at = TEST_TIME.replace(microsecond=123456)
        index_store.add(Preamble(title="x", created_at=created_at), NoteKind.NOTE, "/n.txt")

        assert index_store.all()[Path("/n.txt")].preamble.created_at == created_at

    def test_reinsert_updates_entry(self, index_store):
        path = Path("/notes/note.txt")
        index_store.add(Preamble(title="old title", created_at=TEST_TIME), NoteKind.NOTE, path)
        index_store.add(Preamble(title="new title", created_at=TEST_TIME), NoteKind.DAILY, path)

        entries = index_store.all()

        assert len(entries) == 1
        assert entries[path].title == "new title"
        assert entries[path].kind == NoteKind.DAILY

    def test_non_utf8_path_is_rejected(self, index_store):
        path = Path(os.fsdecode(b"/notes/\xff\xff.txt"))

        with pytest.raises(BadPathError) as exc_info:
            index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, path)

        assert isinstance(exc_info.value, IndexInsertError)
        assert index_store.all() == {}

    def test_all_of_kind(self, index_store):
        preamble = Preamble(title="x", created_at=TEST_TIME)
        index_store.add(preamble, NoteKind.NOTE, "/notes/a.txt")
        index_store.add(preamble, NoteKind.DAILY, "/daily/2015-10-21.txt")

        dailies = index_store.all_of_kind(NoteKind.DAILY)
        notes = index_store.all_of_kind(NoteKind.NOTE)

        assert list(dailies) == [Path("/daily/2015-10-21.txt")]
        assert list(notes) == [Path("/notes/a.txt")]


class TestCorruptRows:
    """Rows that cannot be decoded are skipped, not fatal."""

    def test_malformed_timestamp_is_skipped(self, index_store, caplog):
        index_store.add(Preamble(title="good", created_at=TEST_TIME), NoteKind.NOTE, "/good.txt")
        _insert_raw(index_store, "/bad.txt", "last tuesday", 0)

        with caplog.at_level(logging.WARNING):
            entries = index_store.all()

        assert list(entries) == [Path("/good.txt")]
        assert "/bad.txt" in caplog.text

    def test_impossible_offset_is_skipped(self, index_store):
        _insert_raw(index_store, "/bad.txt", "2015-10-21T07:28:00", 90000)
        assert index_store.all() == {}

    def test_unknown_kind_is_skipped(self, index_store):
        with index_store.engine.begin() as conn:
            conn.exec_driver_sql("PRAGMA ignore_check_constraints = ON")
        _insert_raw(index_store, "/odd.txt", "2015-10-21T07:28:00", 0, kind="weekly")
        with index_store.engine.begin() as conn:
            conn.exec_driver_sql("PRAGMA ignore_check_constraints = OFF")

        assert index_store.all() == {}

    def test_check_constraint_rejects_unknown_kind(self, index_store):
        with pytest.raises(IntegrityError):
            _insert_raw(index_store, "/odd.txt", "2015-10-21T07:28:00", 0, kind="weekly")


class TestDeleteAndReset:
    """Tests for removing entries."""

    def test_delete(self, index_store):
        index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/a.txt")
        index_store.add(Preamble(title="y", created_at=TEST_TIME), NoteKind.NOTE, "/b.txt")

        index_store.delete(Path("/a.txt"))

        assert list(index_store.all()) == [Path("/b.txt")]

    def test_delete_is_idempotent(self, index_store):
        index_store.delete("/never-indexed.txt")
        index_store.delete(os.fsdecode(b"/\xff.txt"))

    def test_reset(self, index_store):
        index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/a.txt")
        index_store.reset()
        assert index_store.all() == {}

    def test_reset_missing_file_creates_nothing(self, temp_dirs):
        db_path = temp_dirs[0] / "missing.sqlite3"
        reset_index_file(db_path)
        assert not db_path.exists()

    def test_reset_file(self, temp_dirs):
        db_path = temp_dirs[0] / ".index.sqlite3"
        with IndexStore.open(db_path) as store:
            store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/a.txt")

        reset_index_file(db_path)

        with IndexStore.open(db_path) as store:
            assert store.all() == {}


class TestTransactions:
    """Tests for grouping operations."""

    def test_transaction_commits(self, index_store):
        with index_store.transaction():
            index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/a.txt")
            index_store.add(Preamble(title="y", created_at=TEST_TIME), NoteKind.NOTE, "/b.txt")

        assert len(index_store.all()) == 2

    def test_transaction_rolls_back(self, index_store):
        index_store.add(Preamble(title="kept", created_at=TEST_TIME), NoteKind.NOTE, "/kept.txt")

        with pytest.raises(RuntimeError):
            with index_store.transaction():
                index_store.reset()
                index_store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.NOTE, "/a.txt")
                raise RuntimeError("abort")

        assert list(index_store.all()) == [Path("/kept.txt")]


class TestOpenAndMigrations:
    """Tests for opening databases and upgrading their schema."""

    def test_wal_mode_enabled(self, temp_dirs):
        with IndexStore.open(temp_dirs[0] / ".index.sqlite3") as store:
            with store.engine.connect() as conn:
                assert conn.exec_driver_sql("PRAGMA journal_mode").scalar().lower() == "wal"
                # NORMAL = 1
                assert conn.exec_driver_sql("PRAGMA synchronous").scalar() == 1

    def test_new_database_is_fully_migrated(self, temp_dirs):
        with IndexStore.open(temp_dirs[0] / ".index.sqlite3") as store:
            with store.engine.connect() as conn:
                assert schema_version(conn) == len(MIGRATIONS)

    def test_reopening_keeps_entries(self, temp_dirs):
        db_path = temp_dirs[0] / ".index.sqlite3"
        with IndexStore.open(db_path) as store:
            store.add(Preamble(title="x", created_at=TEST_TIME), NoteKind.DAILY, "/a.txt")

        with IndexStore.open(db_path) as store:
            assert store.all()[Path("/a.txt")].kind == NoteKind.DAILY

    def test_legacy_database_gains_kind_column(self, temp_dirs):
        db_path = temp_dirs[0] / ".index.sqlite3"
        conn = sqlite3.connect(db_path)
        conn.execute(
            "CREATE TABLE notes (filepath TEXT PRIMARY KEY, title TEXT NOT NULL, "
            "created_at TEXT NOT NULL, utc_offset_seconds INTEGER NOT NULL)"
        )
        conn.execute(
            "INSERT INTO notes VALUES ('/old.txt', 'old', '2015-10-21T07:28:00', -25200)"
        )
        conn.commit()
        conn.close()

        with IndexStore.open(db_path) as store:
            entries = store.all()

        assert entries[Path("/old.txt")].kind == NoteKind.NOTE
        assert entries[Path("/old.txt")].preamble.created_at == TEST_TIME

    def test_unopenable_database(self, temp_dirs):
        with pytest.raises(IndexOpenError):
            IndexStore.open(temp_dirs[0] / "no-such-dir" / ".index.sqlite3")

    def test_query_failure(self, index_store):
        with index_store.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE notes")

        with pytest.raises(IndexLookupError):
            index_store.all()
