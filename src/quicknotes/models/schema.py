"""Data models for quicknotes."""

import datetime
from datetime import timedelta, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def fix_offset(dt_value: datetime.datetime) -> datetime.datetime:
    """Pin an aware datetime to the fixed UTC offset it is observed at.

    Zones with DST rules are collapsed to a plain ``timezone`` offset. A wall
    time that is ambiguous in its zone (a DST fold) resolves to the later of
    the two instants, which is the one with the smaller UTC offset.

    Raises:
        ValueError: If the datetime is naive.
    """
    if dt_value.tzinfo is None or dt_value.utcoffset() is None:
        raise ValueError("datetime must carry a UTC offset")
    if isinstance(dt_value.tzinfo, timezone):
        return dt_value

    earlier_offset = dt_value.replace(fold=0).utcoffset()
    later_offset = dt_value.replace(fold=1).utcoffset()
    offset = min(earlier_offset, later_offset)
    return dt_value.replace(tzinfo=timezone(offset), fold=0)


def offset_from_seconds(seconds: int) -> timezone:
    """Build a fixed offset, raising ValueError if it is a day or more."""
    return timezone(timedelta(seconds=seconds))


class NoteKind(str, Enum):
    """Kinds of indexed notes."""

    NOTE = "note"  # Manually titled note
    DAILY = "daily"  # Note keyed by calendar date


class Preamble(BaseModel):
    """Metadata header embedded at the top of every note file."""

    title: str = Field(..., description="Title of the note")
    created_at: datetime.datetime = Field(
        ..., description="Creation time, with the UTC offset it was written at"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("created_at")
    @classmethod
    def _pin_offset(cls, value: datetime.datetime) -> datetime.datetime:
        return fix_offset(value)

    @property
    def utc_offset_seconds(self) -> int:
        return int(self.created_at.utcoffset().total_seconds())


class IndexEntry(BaseModel):
    """A row of the note index."""

    path: Path = Field(..., description="Absolute path of the note file")
    preamble: Preamble
    kind: NoteKind = Field(default=NoteKind.NOTE)

    model_config = {"frozen": True}

    @property
    def title(self) -> str:
        return self.preamble.title
