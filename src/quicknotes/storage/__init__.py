"""Storage layer for quicknotes."""

from quicknotes.storage.diff_gate import store_if_different
from quicknotes.storage.index_store import IndexStore, reset_index_file
from quicknotes.storage.staging import StagedNote
from quicknotes.storage.strategies import StoreAt, StoreIn, StoreStrategy

__all__ = [
    "IndexStore",
    "StagedNote",
    "StoreAt",
    "StoreIn",
    "StoreStrategy",
    "reset_index_file",
    "store_if_different",
]
