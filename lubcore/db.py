"""Shared SQLite plumbing for durable LubCore state.

Subclasses of :class:`SQLiteStore` declare a ``_SCHEMA`` script and
reach the database only through :meth:`SQLiteStore.query` for reads and
:meth:`SQLiteStore.transaction` for writes.  Both hold the store's
re-entrant lock, so a single instance is shared by every worker thread.

Usage::

    class RecordDB(SQLiteStore):
        _SCHEMA = "CREATE TABLE IF NOT EXISTS records (...);"

    with RecordDB("/tmp/lubcore.db") as db:
        with db.transaction() as conn:
            conn.execute("INSERT INTO records VALUES (?, ?, ?, ?)", row)
        keys = db.query("SELECT key FROM records WHERE namespace = ?", ("ns",))
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

MEMORY_PATH = ":memory:"
DEFAULT_BUSY_TIMEOUT_MS = 5000


class SQLiteStore:
    """One locked SQLite connection in WAL mode with a declared schema.

    *db_path* of ``None`` opens a private in-memory database; otherwise
    the parent directory is created on demand.
    """

    _SCHEMA: str = ""

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        target = MEMORY_PATH if db_path is None else str(db_path)
        if target != MEMORY_PATH:
            Path(target).parent.mkdir(parents=True, exist_ok=True)

        self._db_path = target
        self._closed = False
        self._lock = threading.RLock()
        # Shared across threads, serialized by self._lock
        self._conn = sqlite3.connect(target, check_same_thread=False)
        for pragma in (
            "journal_mode=WAL",
            "synchronous=NORMAL",
            f"busy_timeout={int(busy_timeout_ms)}",
        ):
            self._conn.execute(f"PRAGMA {pragma}")
        if self._SCHEMA:
            with self.transaction() as conn:
                conn.executescript(self._SCHEMA)

        logger.debug("sqlite_opened", store=type(self).__name__, db=target)

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        """Run a read statement and return every row."""
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for a write; commit on success, roll back on error."""
        with self._lock:
            try:
                yield self._conn
            except BaseException:
                self._conn.rollback()
                raise
            self._conn.commit()

    def close(self) -> None:
        """Close the connection.  Later calls are no-ops."""
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True
        logger.debug("sqlite_closed", store=type(self).__name__, db=self._db_path)

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
