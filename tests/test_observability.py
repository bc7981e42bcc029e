"""Tests for the observability module.

Tests for logging configuration, operation timing and the diagnostics observer.
"""
import io
import logging
from logging.handlers import RotatingFileHandler

import pytest

from quicknotes.observability import (
    ROOT_LOGGER_NAME,
    Diagnostics,
    configure_logging,
    timed_operation,
)


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers = handlers
    root_logger.setLevel(level)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_creates_log_file(self, tmp_path, restore_root_logger):
        log_dir = configure_logging(log_dir=tmp_path / "logs", console=False)

        logging.getLogger("quicknotes.test").info("hello log")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert log_dir == tmp_path / "logs"
        assert "hello log" in (log_dir / "quicknotes.log").read_text()

    def test_adds_rotating_handler(self, tmp_path, restore_root_logger):
        configure_logging(log_dir=tmp_path, max_bytes=1000, backup_count=2, console=False)

        handlers = [
            h for h in restore_root_logger.handlers if isinstance(h, RotatingFileHandler)
        ]
        assert handlers
        assert handlers[-1].maxBytes == 1000
        assert handlers[-1].backupCount == 2

    def test_console_format(self, tmp_path, restore_root_logger):
        configure_logging(log_dir=tmp_path, console=True)
        console = [
            h
            for h in restore_root_logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        ][-1]
        record = logging.LogRecord("quicknotes", logging.WARNING, __file__, 1, "careful", None, None)

        assert console.format(record) == "warning: careful"


class TestDiagnostics:
    """Tests for the diagnostics observer."""

    def test_warning_goes_to_logger(self, caplog):
        diagnostics = Diagnostics(logger=logging.getLogger("quicknotes.diag"))
        with caplog.at_level(logging.WARNING):
            diagnostics.warning("watch out")
        assert caplog.records[-1].getMessage() == "watch out"
        assert caplog.records[-1].name == "quicknotes.diag"

    def test_dump_adds_newline(self):
        stream = io.StringIO()
        Diagnostics(stream=stream).dump("note text")
        assert stream.getvalue() == "note text\n"

    def test_dump_keeps_existing_newline(self):
        stream = io.StringIO()
        Diagnostics(stream=stream).dump("note text\n")
        assert stream.getvalue() == "note text\n"


class TestTimedOperation:
    """Tests for the timed_operation context manager."""

    def test_logs_start_and_end(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="quicknotes.observability"):
            with timed_operation("index_all_notes", root="/notes") as op:
                op["indexed"] = 3

        messages = [r.getMessage() for r in caplog.records]
        assert any("START index_all_notes (root=/notes)" in m for m in messages)
        assert any("END index_all_notes" in m and "indexed=3" in m for m in messages)

    def test_reraises_and_records_error(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="quicknotes.observability"):
            with pytest.raises(ValueError):
                with timed_operation("failing"):
                    raise ValueError("boom")

        assert any("[ERROR: boom]" in r.getMessage() for r in caplog.records)
