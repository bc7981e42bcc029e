"""
quicknotes - a plain-text note manager.
Notes are written in an external editor, committed into a notes directory
without ever clobbering an existing file, and recorded in a SQLite index
that can always be rebuilt from the files on disk.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("quicknotes")
except PackageNotFoundError:
    __version__ = "0.4.0"
