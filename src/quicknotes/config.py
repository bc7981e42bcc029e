"""Configuration module for quicknotes."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from quicknotes.exceptions import ConfigurationError
from quicknotes.utils import normalize_extension

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: lives next to the logs
_USER_ENV = Path.home() / ".quicknotes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

NOTES_SUBDIR = "notes"
DAILY_SUBDIR = "daily"
INDEX_DB_NAME = ".index.sqlite3"


def _default_root_dir() -> Path:
    configured = os.getenv("QUICKNOTES_ROOT_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / "Documents" / "quicknotes"


def _default_editor() -> str:
    return os.getenv("QUICKNOTES_EDITOR") or os.getenv("EDITOR") or "nano"


class NoteConfig(BaseModel):
    """Configuration for the note store."""

    # Directory holding notes/, daily/ and the index database
    root_dir: Path = Field(default_factory=_default_root_dir)
    # Extension given to every note file, always with a leading dot
    file_extension: str = Field(
        default_factory=lambda: os.getenv("QUICKNOTES_FILE_EXTENSION", ".md")
    )
    # Where staged notes are created; None uses the system temp directory.
    # Useful for keeping staging on (or off) the notes filesystem.
    temp_root_override: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("QUICKNOTES_TEMP_DIR"))
            if os.getenv("QUICKNOTES_TEMP_DIR")
            else None
        )
    )
    editor_command: str = Field(default_factory=_default_editor)
    log_level: str = Field(
        default_factory=lambda: os.getenv("QUICKNOTES_LOG_LEVEL", "WARNING")
    )

    model_config = {"validate_assignment": True, "validate_default": True}

    @field_validator("root_dir")
    @classmethod
    def _require_absolute_root(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError("root_dir must be an absolute path")
        return value

    @field_validator("file_extension")
    @classmethod
    def _add_dot(cls, value: str) -> str:
        return normalize_extension(value)

    def notes_directory_path(self) -> Path:
        return self.root_dir / NOTES_SUBDIR

    def daily_directory_path(self) -> Path:
        return self.root_dir / DAILY_SUBDIR

    def index_db_path(self) -> Path:
        return self.root_dir / INDEX_DB_NAME

    def ensure_directories(self) -> None:
        """Create the root, notes and daily directories if they are missing."""
        for directory in (
            self.root_dir,
            self.notes_directory_path(),
            self.daily_directory_path(),
        ):
            directory.mkdir(parents=True, exist_ok=True)


def load_config(**overrides) -> NoteConfig:
    """Build the configuration from the environment plus explicit overrides.

    Overrides set to None are ignored so unset CLI flags fall through to the
    environment.

    Raises:
        ConfigurationError: If a setting is invalid.
    """
    try:
        return NoteConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"invalid configuration: {first.get('msg', e)}", config_key=key or None
        ) from e
