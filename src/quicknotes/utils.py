"""Utility functions for quicknotes."""
import datetime


def normalize_extension(extension: str) -> str:
    """Return the extension with exactly one leading dot.

    Examples:
        "md" -> ".md"
        ".txt" -> ".txt"
    """
    if not extension:
        return ""
    if extension.startswith("."):
        return extension
    return f".{extension}"


def _remove_specials(word: str) -> str:
    """Keep non-ASCII characters and ASCII alphanumerics, drop everything else."""
    return "".join(c for c in word if not c.isascii() or c.isalnum())


def title_to_stem(title: str) -> str:
    """Convert a note title into a filename stem.

    The title is lowercased, split on spaces, stripped of ASCII punctuation and
    joined with hyphens. Non-ASCII characters are kept as they are.

    Examples:
        "my awesome note" -> "my-awesome-note"
        "i'm a note" -> "im-a-note"
    """
    return "-".join(_remove_specials(word) for word in title.lower().split(" "))


def filename_for_title(title: str, extension: str) -> str:
    """Build the preferred filename for a note with the given title."""
    return title_to_stem(title) + normalize_extension(extension)


def date_stem(date: datetime.date) -> str:
    return f"{date.year:04d}-{date.month:02d}-{date.day:02d}"


def filename_for_date(date: datetime.date, extension: str) -> str:
    """Build the filename of the daily note for the given date."""
    return date_stem(date) + normalize_extension(extension)
