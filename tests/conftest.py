"""Common test fixtures for quicknotes."""

import datetime
import io
import logging
import tempfile
from pathlib import Path

import pytest

from quicknotes.config import NoteConfig
from quicknotes.observability import Diagnostics
from quicknotes.services.note_service import NoteService
from quicknotes.storage.index_store import IndexStore

# 2015-10-21T07:28:00-07:00
TEST_TIME = datetime.datetime(
    2015, 10, 21, 7, 28, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=-7))
)


@pytest.fixture
def test_time():
    return TEST_TIME


@pytest.fixture
def temp_dirs():
    """Create temporary directories for the note root and staged notes."""
    with tempfile.TemporaryDirectory() as note_root:
        with tempfile.TemporaryDirectory() as temp_root:
            note_root = Path(note_root)
            (note_root / "notes").mkdir()
            (note_root / "daily").mkdir()
            yield note_root, Path(temp_root)


@pytest.fixture
def note_config(temp_dirs):
    """Configuration pointing at the temporary directories."""
    note_root, temp_root = temp_dirs
    return NoteConfig(
        root_dir=note_root,
        file_extension="txt",
        temp_root_override=temp_root,
        editor_command="true",
    )


@pytest.fixture
def dump_stream():
    """Receives note contents dumped when a note cannot be preserved."""
    return io.StringIO()


@pytest.fixture
def diagnostics(dump_stream):
    """Diagnostics that write dumps to ``dump_stream`` and warnings to the log."""
    return Diagnostics(logger=logging.getLogger("quicknotes.tests"), stream=dump_stream)


@pytest.fixture
def note_service(note_config, diagnostics):
    return NoteService(note_config, diagnostics)


@pytest.fixture
def index_store():
    """An empty in-memory index."""
    store = IndexStore.in_memory()
    yield store
    store.close()


@pytest.fixture
def index_db(note_config):
    """Open the on-disk index of ``note_config`` for inspection."""
    store = IndexStore.open(note_config.index_db_path())
    yield store
    store.close()
