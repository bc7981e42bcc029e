"""Reading and writing the preamble fenced at the top of every note.

A note file starts with a TOML block between two ``---`` lines::

    ---
    title = "my cool note"
    created_at = 2015-10-21T07:28:00-07:00
    ---
    free-form body

The timestamp always carries an explicit UTC offset, never ``Z``.
"""
import datetime
import tomllib
from typing import IO, Any, Dict, Union

import tomli_w
from pydantic import ValidationError

from quicknotes.exceptions import (
    MalformedFenceError,
    PreambleDeserializeError,
    PreambleSerializeError,
    UnterminatedFenceError,
)
from quicknotes.models.schema import Preamble

FENCE = "---"


def _check_range(field: str, value: int, bits: int, signed: bool = False) -> None:
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        kind = "i" if signed else "u"
        raise PreambleSerializeError(f"{field} must fit into a {kind}{bits}")


def _toml_datetime(created_at: datetime.datetime) -> datetime.datetime:
    """Validate that a timestamp can be written as a TOML offset datetime."""
    _check_range("year", created_at.year, 16)
    _check_range("month", created_at.month, 8)
    _check_range("day", created_at.day, 8)
    _check_range("hour", created_at.hour, 8)
    _check_range("minute", created_at.minute, 8)
    _check_range("second", created_at.second, 8)

    offset_seconds = int(created_at.utcoffset().total_seconds())
    if offset_seconds % 60:
        raise PreambleSerializeError("utc offset must be a whole number of minutes")
    _check_range("utc offset minutes", offset_seconds // 60, 16, signed=True)

    return created_at


def serialize(preamble: Preamble) -> str:
    """Serialize a preamble, fences included, without a trailing newline.

    Raises:
        PreambleSerializeError: If a timestamp field is out of range.
    """
    created_at = _toml_datetime(preamble.created_at)
    try:
        title_line = tomli_w.dumps({"title": preamble.title}).rstrip()
    except (TypeError, ValueError) as e:
        raise PreambleSerializeError(str(e)) from e

    # tomli_w separates date and time with a space; notes use the RFC 3339 "T".
    created_at_line = f"created_at = {created_at.isoformat()}"
    return f"{FENCE}\n{title_line}\n{created_at_line}\n{FENCE}"


def render_note(preamble: Preamble) -> str:
    """The initial content of a new note: its preamble and a blank line."""
    return serialize(preamble) + "\n\n"


def _decode_line(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PreambleDeserializeError("preamble is not valid UTF-8", e) from e
    return raw.rstrip("\r\n")


def _read_block(stream: IO) -> str:
    """Read the fenced block, reporting a bad opening fence apart from a missing closing one."""
    first_line = stream.readline()
    if isinstance(first_line, bytes):
        first_line = first_line.decode("utf-8", errors="replace")
    if first_line.rstrip("\r\n") != FENCE:
        raise MalformedFenceError(first_line.rstrip("\r\n"))

    lines = []
    while True:
        raw = stream.readline()
        if not raw:
            raise UnterminatedFenceError()
        line = _decode_line(raw)
        if line == FENCE:
            return "\n".join(lines)
        lines.append(line)


def _preamble_from_document(document: Dict[str, Any]) -> Preamble:
    title = document.get("title")
    if title is None:
        raise PreambleDeserializeError("missing field `title`")
    if not isinstance(title, str):
        raise PreambleDeserializeError("`title` must be a string")

    created_at = document.get("created_at")
    if created_at is None:
        raise PreambleDeserializeError("missing field `created_at`")
    if not isinstance(created_at, datetime.datetime):
        raise PreambleDeserializeError("`created_at` must be a date and a time")
    if created_at.tzinfo is None:
        raise PreambleDeserializeError("`created_at` must include a UTC offset")

    try:
        return Preamble(title=title, created_at=created_at)
    except ValidationError as e:
        raise PreambleDeserializeError("invalid preamble fields", e) from e


def extract(stream: IO) -> Preamble:
    """Read the preamble from the start of a note.

    Only the fenced block is consumed; the stream is left positioned at the
    first body line. Binary and text streams are both accepted.

    Raises:
        MalformedFenceError: If the first line is not a bare fence.
        UnterminatedFenceError: If the stream ends before the closing fence.
        PreambleDeserializeError: If the block is not a valid preamble.
    """
    block = _read_block(stream)
    try:
        document = tomllib.loads(block)
    except tomllib.TOMLDecodeError as e:
        raise PreambleDeserializeError("preamble is not valid TOML", e) from e

    return _preamble_from_document(document)
