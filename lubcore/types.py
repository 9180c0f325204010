"""Shared Protocol types for LubCore.

Defines structural interfaces (PEP 544 Protocols) at the seams where the
reward services meet their storage and their external collaborators.
Services depend on these Protocols — never on concrete implementations —
so tests and host applications can plug in their own.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from lubcore.viral.types import ViralDetection

# ── Records & storage ───────────────────────────────────────────────


@runtime_checkable
class Record(Protocol):
    """Anything a keyed store can persist."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation."""
        ...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Rebuild the record from :meth:`to_dict` output."""
        ...


class KeyedStore[T](Protocol):
    """Structural interface for a keyed get/put/delete/scan store."""

    def get(self, key: str) -> T | None:
        """Return the record under *key*, or ``None``."""
        ...

    def put(self, key: str, value: T) -> None:
        """Insert or replace the record under *key*."""
        ...

    def delete(self, key: str) -> bool:
        """Remove *key*; return ``True`` if it existed."""
        ...

    def scan(self) -> Iterator[tuple[str, T]]:
        """Iterate over a snapshot of all ``(key, record)`` pairs."""
        ...

    def __len__(self) -> int: ...  # noqa: D105


class StoreFactory(Protocol):
    """Builds the keyed store for one namespace."""

    def __call__[T: Record](
        self, namespace: str, decode: Callable[[dict[str, Any]], T]
    ) -> KeyedStore[T]: ...  # noqa: D102


# ── External collaborators ─────────────────────────────────────────


@runtime_checkable
class RewardDistributor(Protocol):
    """Hands a verified detection's payout to the token-transfer layer.

    Implementations must be idempotent on ``detection.id``: the core may
    call again for the same detection during manual reconciliation.
    """

    def distribute(self, detection: ViralDetection) -> None:
        """Distribute the reward; raise on failure."""
        ...


@runtime_checkable
class CommunityScorer(Protocol):
    """Community verification signal for a viral detection (0–100)."""

    def score(self, detection: ViralDetection) -> float:
        """Return the community score for *detection*."""
        ...
