"""Shared test fixtures."""

from __future__ import annotations

import random
from collections.abc import Generator
from pathlib import Path

import pytest

from lubcore.antispam.ledger import ReputationLedger
from lubcore.challenges.engine import ChallengeEngine
from lubcore.locking import StripedLock
from lubcore.social import SocialActor
from lubcore.viral.detector import ViralDetector
from lubcore.viral.types import ViralDetection

# Fixed "now" for deterministic time arithmetic
NOW = 1_760_000_000.0


class RecordingDistributor:
    """Distributor double that remembers every payout."""

    def __init__(self) -> None:
        self.paid: list[str] = []

    def distribute(self, detection: ViralDetection) -> None:
        self.paid.append(detection.id)


class FailingDistributor:
    """Distributor double that always raises."""

    def __init__(self) -> None:
        self.calls = 0

    def distribute(self, detection: ViralDetection) -> None:
        self.calls += 1
        raise RuntimeError("token service unavailable")


@pytest.fixture
def now() -> float:
    return NOW


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory for tests."""
    data_dir = tmp_path / ".lubcore"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def locks() -> StripedLock:
    return StripedLock(16)


@pytest.fixture
def ledger(locks: StripedLock) -> ReputationLedger:
    """In-memory reputation ledger."""
    return ReputationLedger(locks=locks)


@pytest.fixture
def distributor() -> RecordingDistributor:
    return RecordingDistributor()


@pytest.fixture
def failing_distributor() -> FailingDistributor:
    return FailingDistributor()


@pytest.fixture
def detector(
    ledger: ReputationLedger, locks: StripedLock, distributor: RecordingDistributor
) -> ViralDetector:
    """In-memory viral detector paying into a recording distributor."""
    return ViralDetector(ledger, locks=locks, distributor=distributor)


@pytest.fixture
def engine(ledger: ReputationLedger, locks: StripedLock) -> ChallengeEngine:
    """In-memory challenge engine with a seeded RNG."""
    return ChallengeEngine(ledger, locks=locks, rng=random.Random(7))


@pytest.fixture
def nano() -> SocialActor:
    return SocialActor(fid=101, username="sprout", follower_count=250)


@pytest.fixture
def whale() -> SocialActor:
    return SocialActor(fid=202, username="bigfin", follower_count=15_000)


@pytest.fixture
def mega_whale() -> SocialActor:
    return SocialActor(fid=303, username="leviathan", follower_count=60_000)


@pytest.fixture
def env_clean(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Strip LUBCORE_* variables so host settings cannot leak into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("LUBCORE_"):
            monkeypatch.delenv(key)
    yield
