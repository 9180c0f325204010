"""Keyed record persistence."""

from __future__ import annotations

from lubcore.persistence.store import (
    MemoryKeyedStore,
    RecordDB,
    SQLiteKeyedStore,
    memory_store_factory,
)

__all__ = [
    "MemoryKeyedStore",
    "RecordDB",
    "SQLiteKeyedStore",
    "memory_store_factory",
]
