"""Storage layer for marknotes."""

from marknotes.storage.kv_store import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)
from marknotes.storage.note_store import NoteStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "NoteStore",
]
