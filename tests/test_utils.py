"""Tests for note filename helpers."""
import datetime

import pytest

from quicknotes.utils import (
    filename_for_date,
    filename_for_title,
    normalize_extension,
    title_to_stem,
)


@pytest.mark.parametrize(
    "title,expected",
    [
        ("my awesome note", "my-awesome-note"),
        ("My Awesome Note", "my-awesome-note"),
        ("i'm a note", "im-a-note"),
        ("what? a note!", "what-a-note"),
        ("café notes", "café-notes"),
        ("two  spaces", "two--spaces"),
        ("日本語 メモ", "日本語-メモ"),
    ],
)
def test_title_to_stem(title, expected):
    assert title_to_stem(title) == expected


def test_filename_for_title():
    assert filename_for_title("my cool note", "txt") == "my-cool-note.txt"
    assert filename_for_title("my cool note", ".md") == "my-cool-note.md"


def test_filename_for_date():
    assert filename_for_date(datetime.date(2015, 10, 21), ".txt") == "2015-10-21.txt"
    assert filename_for_date(datetime.date(999, 1, 2), "md") == "0999-01-02.md"


@pytest.mark.parametrize(
    "extension,expected",
    [("md", ".md"), (".md", ".md"), ("", ""), ("tar.gz", ".tar.gz")],
)
def test_normalize_extension(extension, expected):
    assert normalize_extension(extension) == expected
