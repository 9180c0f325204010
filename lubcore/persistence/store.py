"""Keyed record storage for ledger, challenge and detection state.

Services never touch dictionaries or SQL directly; they read and write
records through a :class:`~lubcore.types.KeyedStore`, so the backing
store can be swapped without changing service logic.

Two backends:

- :class:`MemoryKeyedStore` — process-lifetime dict, objects kept as-is.
- :class:`SQLiteKeyedStore` — one namespace inside a shared
  :class:`RecordDB`; records are serialized with ``to_dict()`` and
  rebuilt with the namespace's ``decode`` callable.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from lubcore.db import SQLiteStore
from lubcore.types import Record


class MemoryKeyedStore[T: Record]:
    """In-process keyed store."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def get(self, key: str) -> T | None:
        return self._items.get(key)

    def put(self, key: str, value: T) -> None:
        self._items[key] = value

    def delete(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def scan(self) -> Iterator[tuple[str, T]]:
        # Snapshot so callers may delete while iterating
        yield from list(self._items.items())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items


class RecordDB(SQLiteStore):
    """SQLite database holding every namespace's records in one table."""

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS records (
            namespace   TEXT NOT NULL,
            key         TEXT NOT NULL,
            payload     TEXT NOT NULL,
            updated_at  REAL NOT NULL,
            PRIMARY KEY (namespace, key)
        );

        CREATE INDEX IF NOT EXISTS idx_records_ns
            ON records(namespace);
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        super().__init__(db_path)

    def namespace[T: Record](
        self, name: str, decode: Callable[[dict[str, Any]], T]
    ) -> SQLiteKeyedStore[T]:
        """Return a keyed view over one namespace."""
        return SQLiteKeyedStore(self, name, decode)

    def namespaces(self) -> dict[str, int]:
        """Return record counts per namespace."""
        rows = self.query("SELECT namespace, COUNT(*) FROM records GROUP BY namespace")
        return {ns: int(count) for ns, count in rows}


class SQLiteKeyedStore[T: Record]:
    """Keyed store persisted as JSON rows in a :class:`RecordDB`."""

    def __init__(
        self,
        db: RecordDB,
        namespace: str,
        decode: Callable[[dict[str, Any]], T],
    ) -> None:
        self._db = db
        self._ns = namespace
        self._decode = decode

    @property
    def namespace(self) -> str:
        return self._ns

    def get(self, key: str) -> T | None:
        rows = self._db.query(
            "SELECT payload FROM records WHERE namespace = ? AND key = ?",
            (self._ns, key),
        )
        if not rows:
            return None
        return self._decode(json.loads(rows[0][0]))

    def put(self, key: str, value: T) -> None:
        payload = json.dumps(value.to_dict(), separators=(",", ":"))
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO records"
                " (namespace, key, payload, updated_at)"
                " VALUES (?, ?, ?, ?)",
                (self._ns, key, payload, time.time()),
            )

    def delete(self, key: str) -> bool:
        with self._db.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM records WHERE namespace = ? AND key = ?",
                (self._ns, key),
            )
        return cur.rowcount > 0

    def scan(self) -> Iterator[tuple[str, T]]:
        rows = self._db.query(
            "SELECT key, payload FROM records WHERE namespace = ? ORDER BY key",
            (self._ns,),
        )
        for key, payload in rows:
            yield key, self._decode(json.loads(payload))

    def __len__(self) -> int:
        rows = self._db.query(
            "SELECT COUNT(*) FROM records WHERE namespace = ?", (self._ns,)
        )
        return int(rows[0][0])

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        rows = self._db.query(
            "SELECT 1 FROM records WHERE namespace = ? AND key = ?", (self._ns, key)
        )
        return bool(rows)


def memory_store_factory[T: Record](
    namespace: str, decode: Callable[[dict[str, Any]], T]
) -> MemoryKeyedStore[T]:
    """:class:`~lubcore.types.StoreFactory` for in-process stores."""
    return MemoryKeyedStore()
