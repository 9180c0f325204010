"""Service layer — wires the ledger, detector and engine from one Config.

Host applications (and the CLI) build a single :class:`RewardCore` and
pass it around; nothing in LubCore is a module-level singleton.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import LedgerCleanupReport
from lubcore.challenges.engine import ChallengeEngine
from lubcore.config import Config, StorageBackend, load_config
from lubcore.locking import StripedLock
from lubcore.persistence import RecordDB, memory_store_factory
from lubcore.types import CommunityScorer, RewardDistributor, StoreFactory
from lubcore.viral.detector import ViralDetector
from lubcore.viral.distribution import (
    LoggingRewardDistributor,
    WebhookRewardDistributor,
)
from lubcore.viral.types import ViralCleanupReport

logger = structlog.get_logger()


@dataclass(frozen=True)
class CoreCleanupReport:
    """Combined result of every service's cleanup pass."""

    ledger: LedgerCleanupReport
    viral: ViralCleanupReport
    challenges_expired: int


def default_distributor(config: Config) -> RewardDistributor:
    """Webhook distributor when a URL is configured, else the logging one."""
    dist = config.distribution
    if dist.webhook_url:
        return WebhookRewardDistributor(
            dist.webhook_url,
            timeout=dist.timeout,
            token_symbol=dist.token_symbol,
        )
    return LoggingRewardDistributor(dist.token_symbol)


class RewardCore:
    """Ledger, viral detector and challenge engine sharing one store.

    Usage::

        with build_core(config) as core:
            challenge = core.engine.generate_challenge(target, "hard")
            core.cleanup()
    """

    def __init__(
        self,
        config: Config,
        *,
        store_factory: StoreFactory,
        db: RecordDB | None = None,
        distributor: RewardDistributor | None = None,
        community_scorer: CommunityScorer | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.db = db
        self.locks = StripedLock(config.node.lock_stripes)
        self.distributor = distributor or default_distributor(config)

        self.ledger = ReputationLedger(
            config.antispam,
            store_factory=store_factory,
            locks=self.locks,
        )
        self.detector = ViralDetector(
            self.ledger,
            config.viral,
            store_factory=store_factory,
            locks=self.locks,
            distributor=self.distributor,
            community_scorer=community_scorer,
        )
        self.engine = ChallengeEngine(
            self.ledger,
            config.challenges,
            store_factory=store_factory,
            locks=self.locks,
            rng=rng,
        )

    def cleanup(self, now: float | None = None) -> CoreCleanupReport:
        """Run every service's cleanup pass at the same instant."""
        if now is None:
            now = time.time()
        report = CoreCleanupReport(
            ledger=self.ledger.cleanup(now=now),
            viral=self.detector.cleanup(now=now),
            challenges_expired=self.engine.cleanup_expired_challenges(now=now),
        )
        logger.info("core_cleanup", challenges_expired=report.challenges_expired)
        return report

    def close(self) -> None:
        """Release the record database and any HTTP client."""
        if isinstance(self.distributor, WebhookRewardDistributor):
            self.distributor.close()
        if self.db is not None:
            self.db.close()
            self.db = None

    def __enter__(self) -> RewardCore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def build_core(
    config: Config | None = None,
    *,
    db_path: Path | str | None = None,
    distributor: RewardDistributor | None = None,
    community_scorer: CommunityScorer | None = None,
    rng: random.Random | None = None,
) -> RewardCore:
    """Build a :class:`RewardCore` on the configured storage backend.

    An explicit *db_path* always selects SQLite.
    """
    config = config or load_config()
    db: RecordDB | None = None
    factory: StoreFactory = memory_store_factory

    if db_path is not None or config.node.storage == StorageBackend.SQLITE:
        db = RecordDB(db_path or config.db_path)
        factory = db.namespace

    logger.debug(
        "core_built",
        storage="sqlite" if db else "memory",
        db=db.db_path if db else None,
    )
    return RewardCore(
        config,
        store_factory=factory,
        db=db,
        distributor=distributor,
        community_scorer=community_scorer,
        rng=rng,
    )
