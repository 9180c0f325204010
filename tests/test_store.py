"""Tests for lubcore.persistence — keyed record stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from lubcore.antispam.types import (
    ActivityEvent,
    ActorActivity,
    ChallengeCreated,
    CommunityReport,
    ReportCategory,
    ReportFiled,
    ReportStatus,
    ViralDetected,
    WarningIssued,
)
from lubcore.challenges.types import (
    Challenge,
    ChallengeBonuses,
    ChallengeResult,
    Difficulty,
)
from lubcore.persistence import MemoryKeyedStore, RecordDB
from lubcore.social import SocialActor
from lubcore.types import Record
from lubcore.viral.types import (
    DetectionCounter,
    DetectionType,
    DistributionStatus,
    RewardBonuses,
    RewardEntry,
    RewardHistory,
    ViralDetection,
)

ACTOR = SocialActor(fid=7, username="seven", follower_count=12_345, display_name="Se")


def _samples() -> list[tuple[str, Record]]:
    activity = ActorActivity(
        actor_id=7,
        reputation_score=55,
        challenges_created=1,
        viral_detections=1,
        reports_filed=1,
        warnings=1,
        last_challenge_at=10.0,
        last_viral_detection_at=11.0,
        last_report_at=12.0,
        banned_until=99.0,
        activity_history=[
            ActivityEvent(10.0, ChallengeCreated("c1", 8, "hard", 10.0)),
            ActivityEvent(11.0, ViralDetected("v1", "c1", "lub_mention", 85.0, 42)),
            ActivityEvent(12.0, ReportFiled("r1", 9, "spam")),
            ActivityEvent(13.0, WarningIssued("auto_action", "5 reports", 25, 99.0)),
        ],
    )
    report = CommunityReport(
        report_id="r1",
        reporter_id=7,
        target_id=9,
        category=ReportCategory.ABUSE,
        description="rude",
        timestamp=12.0,
        status=ReportStatus.REVIEWED,
        evidence="https://example.com/cast",
        moderator_notes="checked",
        reviewed_at=20.0,
    )
    challenge = Challenge(
        id="c1",
        type_id="whale_attention",
        target=ACTOR,
        difficulty=Difficulty.HARD,
        prompt="Challenge: ...",
        base_reward=500,
        whale_multiplier=10.0,
        total_reward=5000,
        time_limit=720,
        created_at=10.0,
        deadline=43_210.0,
        success_criteria=("Any response from whale",),
        created_by="alice",
        creator_actor_id=1,
    )
    result = ChallengeResult(
        challenge_id="c1",
        success=True,
        completed_at=50.0,
        viral_detected=True,
        actual_reward=9375,
        bonuses=ChallengeBonuses(whale=4500, viral=1250, speed=3125),
        evidence="proof",
    )
    detection = ViralDetection(
        id="v1",
        challenge_id="c1",
        actor=ACTOR,
        detected_at=11.0,
        content="Loving the $LUB game",
        detection_type=DetectionType.LUB_MENTION,
        confidence=85.0,
        reward=42,
        bonuses=RewardBonuses(whale=21, speed=0, engagement=0),
        verified=True,
        verification_score=71.5,
        distribution_status=DistributionStatus.FAILED,
        distribution_error="boom",
    )
    counter = DetectionCounter(actor_id=7, timestamps=[11.0, 400.0])
    rewards = RewardHistory(actor_id=7, entries=[RewardEntry(42, 11.0)])
    return [
        ("actors", activity),
        ("reports", report),
        ("challenges", challenge),
        ("challenge_history", result),
        ("detections", detection),
        ("detection_counters", counter),
        ("reward_history", rewards),
    ]


class TestMemoryKeyedStore:
    def test_put_get_delete(self) -> None:
        store: MemoryKeyedStore[DetectionCounter] = MemoryKeyedStore()
        store.put("a", DetectionCounter(actor_id=1))
        assert "a" in store
        assert len(store) == 1
        assert store.get("a") == DetectionCounter(actor_id=1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_scan_allows_delete(self) -> None:
        store: MemoryKeyedStore[DetectionCounter] = MemoryKeyedStore()
        for i in range(3):
            store.put(str(i), DetectionCounter(actor_id=i))
        for key, _ in store.scan():
            store.delete(key)
        assert len(store) == 0


class TestSQLiteKeyedStore:
    @pytest.mark.parametrize(
        ("namespace", "record"), _samples(), ids=[ns for ns, _ in _samples()]
    )
    def test_round_trip_across_reopen(
        self, tmp_data_dir: Path, namespace: str, record: Record
    ) -> None:
        path = tmp_data_dir / "records.db"
        with RecordDB(path) as db:
            db.namespace(namespace, type(record).from_dict).put("k", record)

        with RecordDB(path) as db:
            loaded = db.namespace(namespace, type(record).from_dict).get("k")
        assert loaded == record

    def test_namespaces_are_isolated(self) -> None:
        db = RecordDB()
        try:
            a = db.namespace("a", DetectionCounter.from_dict)
            b = db.namespace("b", DetectionCounter.from_dict)
            a.put("1", DetectionCounter(actor_id=1))
            assert b.get("1") is None
            assert len(a) == 1
            assert len(b) == 0
            assert db.namespaces() == {"a": 1}
        finally:
            db.close()

    def test_put_replaces_and_delete(self) -> None:
        db = RecordDB()
        try:
            store = db.namespace("c", DetectionCounter.from_dict)
            store.put("1", DetectionCounter(actor_id=1, timestamps=[1.0]))
            store.put("1", DetectionCounter(actor_id=1, timestamps=[1.0, 2.0]))
            assert store.get("1") == DetectionCounter(actor_id=1, timestamps=[1.0, 2.0])
            assert "1" in store
            assert store.delete("1") is True
            assert store.delete("1") is False
            assert "1" not in store
        finally:
            db.close()

    def test_scan_returns_copies(self) -> None:
        db = RecordDB()
        try:
            store = db.namespace("c", DetectionCounter.from_dict)
            store.put("1", DetectionCounter(actor_id=1))
            for _, counter in store.scan():
                counter.timestamps.append(5.0)
            assert store.get("1") == DetectionCounter(actor_id=1)
        finally:
            db.close()

    def test_creates_parent_dir(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "deeper" / "lubcore.db"
        with RecordDB(path):
            pass
        assert path.exists()


class TestRecordDB:
    def test_transaction_rolls_back_on_error(self) -> None:
        db = RecordDB()
        try:
            with pytest.raises(RuntimeError), db.transaction() as conn:
                conn.execute(
                    "INSERT INTO records (namespace, key, payload, updated_at)"
                    " VALUES ('x', 'k', '{}', 0)"
                )
                raise RuntimeError("abort")
            assert db.namespaces() == {}
        finally:
            db.close()

    def test_close_is_idempotent(self) -> None:
        db = RecordDB()
        db.close()
        db.close()
        assert db.closed
