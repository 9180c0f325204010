"""Per-key locking for check-then-record sequences.

A fixed pool of re-entrant locks ("stripes") is shared by all keys; a
key always maps to the same stripe.  Memory stays bounded no matter how
many actors or challenges pass through, and two keys only contend when
they hash to the same stripe.

Usage::

    locks = StripedLock(64)
    with locks.hold(actor_id):
        decision = ledger.can_create_challenge(actor_id, target_id)
        if decision.action is ModerationAction.ALLOW:
            ledger.record_activity(actor_id, detail)
"""

from __future__ import annotations

import threading
import zlib
from collections.abc import Iterator
from contextlib import contextmanager

DEFAULT_STRIPES = 64


class StripedLock:
    """Fixed-size pool of :class:`threading.RLock` keyed by hash."""

    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError(f"stripes must be positive, got {stripes}")
        self._locks = [threading.RLock() for _ in range(stripes)]

    @property
    def stripes(self) -> int:
        return len(self._locks)

    def _index(self, key: object) -> int:
        # crc32 rather than hash(): stable across processes and PYTHONHASHSEED
        return zlib.crc32(str(key).encode("utf-8")) % len(self._locks)

    def lock_for(self, key: object) -> threading.RLock:
        """Return the lock guarding *key*."""
        return self._locks[self._index(key)]

    @contextmanager
    def hold(self, key: object) -> Iterator[None]:
        """Hold *key*'s stripe for the duration of the block."""
        lock = self.lock_for(key)
        with lock:
            yield
