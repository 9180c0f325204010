"""Tests for lubcore.services — wiring, persistence and concurrency."""

from __future__ import annotations

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from lubcore.config import AntiSpamConfig, Config, DistributionConfig, NodeConfig
from lubcore.errors import ChallengeBlockedError
from lubcore.persistence import MemoryKeyedStore
from lubcore.services import RewardCore, build_core, default_distributor
from lubcore.social import SocialActor
from lubcore.viral.distribution import (
    LoggingRewardDistributor,
    WebhookRewardDistributor,
)
from lubcore.viral.types import DistributionStatus, ViralDetection

HYPE_POST = "Loving the $LUB challenge today, so much fun with everyone!"


class GatedDistributor:
    """Distributor that blocks until the test releases it."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.paid: list[str] = []

    def distribute(self, detection: ViralDetection) -> None:
        self.entered.set()
        self.release.wait(10)
        self.paid.append(detection.id)


class TestDefaultDistributor:
    def test_logging_without_url(self) -> None:
        assert isinstance(default_distributor(Config()), LoggingRewardDistributor)

    def test_webhook_with_url(self) -> None:
        config = Config(
            distribution=DistributionConfig(webhook_url="https://payouts.test/hook")
        )
        dist = default_distributor(config)
        assert isinstance(dist, WebhookRewardDistributor)
        dist.close()


class TestBuildCore:
    def test_memory_by_default(self) -> None:
        with build_core(Config()) as core:
            assert isinstance(core, RewardCore)
            assert core.db is None

    def test_sqlite_storage_setting(self, tmp_data_dir: Path) -> None:
        config = Config(node=NodeConfig(data_dir=tmp_data_dir, storage="sqlite"))
        with build_core(config) as core:
            assert core.db is not None
        assert (tmp_data_dir / "lubcore.db").exists()

    def test_explicit_db_path(self, tmp_path: Path) -> None:
        db_path = tmp_path / "core.db"
        core = build_core(Config(), db_path=db_path)
        assert core.db is not None
        core.close()
        assert core.db is None
        assert db_path.exists()

    def test_services_share_one_ledger(self) -> None:
        with build_core(Config()) as core:
            assert core.detector._ledger is core.ledger
            assert core.engine._ledger is core.ledger

    def test_memory_store_is_default_factory(self) -> None:
        with build_core(Config()) as core:
            assert isinstance(core.ledger._actors, MemoryKeyedStore)


class TestPersistence:
    def test_state_survives_reopen(
        self, tmp_path: Path, whale: SocialActor, mega_whale: SocialActor, now: float
    ) -> None:
        db_path = tmp_path / "core.db"
        with build_core(Config(), db_path=db_path, rng=random.Random(3)) as core:
            challenge = core.engine.generate_challenge(
                whale, "hard", creator_actor_id=5, now=now
            )
            done = core.engine.generate_challenge(whale, "hard", now=now)
            result = core.engine.complete_challenge(done.id, True, now=now + 60)
            detection = core.detector.detect_viral_mention(
                challenge.id, mega_whale, HYPE_POST, now=now
            )
            assert detection is not None
            assert core.detector.verify_detection(detection.id)
            report = core.ledger.submit_report(1, 2, "spam", "bot posts", now=now)

        with build_core(Config(), db_path=db_path) as core:
            assert core.engine.get_challenge(challenge.id) == challenge
            assert core.engine.get_challenge_history() == [result]

            stored = core.detector.get_detection(detection.id)
            assert stored is not None
            assert stored.verified
            assert stored.distribution_status.value == "distributed"

            creator = core.ledger.get_actor(5)
            assert creator is not None
            assert creator.challenges_created == 1
            assert core.ledger.can_create_challenge(5, whale.fid, now=now + 1).is_spam

            assert report.report_id is not None
            assert core.ledger.get_report(report.report_id) is not None
            assert core.detector.recent_rewards(mega_whale.fid, now=now) == 74


class TestCoreCleanup:
    def test_runs_every_pass(self, nano: SocialActor, now: float) -> None:
        with build_core(Config()) as core:
            challenge = core.engine.generate_challenge(
                nano, "easy", creator_actor_id=9, now=now
            )
            core.detector.detect_viral_mention("c1", nano, HYPE_POST, now=now)

            report = core.cleanup(now=challenge.deadline + 40 * 86400)
            assert report.challenges_expired == 1
            assert report.viral.counters_cleared == 1
            assert report.viral.rewards_pruned == 1
            assert report.ledger.actors_evicted == 2
            assert core.engine.get_active_challenges() == []


class TestConcurrency:
    def test_hourly_limit_holds_under_contention(
        self, whale: SocialActor, now: float
    ) -> None:
        config = Config(antispam=AntiSpamConfig(challenge_cooldown=0.0))
        with build_core(config) as core:

            def attempt(_: int) -> bool:
                try:
                    core.engine.generate_challenge(
                        whale, "hard", creator_actor_id=11, now=now
                    )
                except ChallengeBlockedError:
                    return False
                return True

            with ThreadPoolExecutor(max_workers=8) as pool:
                outcomes = list(pool.map(attempt, range(40)))

            assert sum(outcomes) == 5
            actor = core.ledger.get_actor(11)
            assert actor is not None
            assert actor.challenges_created == 5
            assert len(core.engine.get_active_challenges()) == 5

    def test_viral_cap_holds_under_contention(
        self, nano: SocialActor, now: float
    ) -> None:
        with build_core(Config()) as core:

            def attempt(_: int) -> bool:
                return (
                    core.detector.detect_viral_mention("c1", nano, HYPE_POST, now=now)
                    is not None
                )

            with ThreadPoolExecutor(max_workers=8) as pool:
                outcomes = list(pool.map(attempt, range(20)))

            assert sum(outcomes) == 1
            assert len(core.detector.list_detections()) == 1

    def test_slow_payout_does_not_block_other_actors(
        self, mega_whale: SocialActor, whale: SocialActor, now: float
    ) -> None:
        gate = GatedDistributor()
        # One stripe: detection and actor keys share a single lock
        config = Config(node=NodeConfig(lock_stripes=1))
        with build_core(config, distributor=gate) as core:
            detection = core.detector.detect_viral_mention(
                "c1", mega_whale, HYPE_POST, now=now
            )
            assert detection is not None

            with ThreadPoolExecutor(max_workers=2) as pool:
                verifying = pool.submit(core.detector.verify_detection, detection.id)
                try:
                    assert gate.entered.wait(5)
                    in_flight = core.detector.get_detection(detection.id)
                    assert in_flight is not None
                    assert in_flight.distribution_status is DistributionStatus.PENDING
                    assert core.detector.retry_failed_distributions() == 0

                    creating = pool.submit(
                        core.engine.generate_challenge,
                        whale,
                        "hard",
                        creator_actor_id=77,
                        now=now,
                    )
                    assert creating.result(timeout=5).total_reward == 5000
                finally:
                    gate.release.set()
                assert verifying.result(timeout=5) is True

            settled = core.detector.get_detection(detection.id)
            assert settled is not None
            assert settled.distribution_status is DistributionStatus.DISTRIBUTED
            assert gate.paid == [detection.id]
