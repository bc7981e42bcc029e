"""Observability utilities for quicknotes.

Provides persistent disk logging with rotation, operation timing, and the
``Diagnostics`` observer through which user-facing warnings are reported.
"""
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

logger = logging.getLogger(__name__)

# Default log directory (can be overridden via configure_logging)
DEFAULT_LOG_DIR = Path.home() / ".quicknotes" / "logs"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Console output is read by a person at a terminal
CONSOLE_FORMAT = "%(levelname_lower)s: %(message)s"

ROOT_LOGGER_NAME = "quicknotes"


class _ConsoleFormatter(logging.Formatter):
    """Formats records as ``warning: message``."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname_lower = record.levelname.lower()
        return super().format(record)


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.WARNING,
    max_bytes: int = 1024 * 1024,  # 1 MB per file
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Configure persistent file logging with rotation.

    Sets up a rotating file handler for the quicknotes logger hierarchy. The
    file always records INFO and above; the console shows ``level`` and above.

    Args:
        log_dir: Directory for log files. Defaults to ~/.quicknotes/logs/
        level: Console logging level (default: WARNING)
        max_bytes: Maximum size per log file before rotation (default: 1 MB)
        backup_count: Number of rotated files to keep (default: 3)
        console: Also log to stderr (default: True)

    Returns:
        Path to the log directory
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(min(level, logging.INFO))

    log_file = log_path / "quicknotes.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(min(level, logging.INFO))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(file_handler)

    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(_ConsoleFormatter(CONSOLE_FORMAT))
        root_logger.addHandler(console_handler)

    root_logger.debug(f"Logging configured: {log_file}")
    return log_path


class Diagnostics:
    """Receives the warnings and rescue output produced while storing notes.

    Passed down the call chain instead of living in a global, so callers (and
    tests) decide where warnings and dumped note contents end up.

    Args:
        logger: Logger that receives warnings. Defaults to ``quicknotes``.
        stream: Stream that receives dumped note contents. Defaults to the
            current ``sys.stderr``.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        stream: Optional[TextIO] = None,
    ):
        self.logger = logger or logging.getLogger(ROOT_LOGGER_NAME)
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def dump(self, text: str) -> None:
        """Write raw text (such as an unsaveable note) for the user to copy."""
        self.stream.write(text)
        if not text.endswith("\n"):
            self.stream.write("\n")
        self.stream.flush()


@contextmanager
def timed_operation(operation: str, **context):
    """Context manager for timing and logging operations.

    Args:
        operation: Name of the operation being performed
        **context: Additional context to include in log messages

    Yields:
        A dictionary where you can store result info (e.g., result_count)

    Example:
        with timed_operation('index_notes', root=config.root_dir) as op:
            summary = index_all_notes(...)
            op['indexed'] = summary.indexed
    """
    correlation_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {}

    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    status = "OK"
    try:
        yield result_info
    except Exception as e:
        status = f"ERROR: {e}"
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        result_str = ", ".join(f"{k}={v}" for k, v in result_info.items())
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )
