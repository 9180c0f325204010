"""Tests for lubcore.viral — pattern analysis, rewards and detection."""

from __future__ import annotations

import pytest

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import WarningIssued
from lubcore.config import ViralConfig
from lubcore.errors import InvalidInputError
from lubcore.social import SocialActor
from lubcore.viral.detector import ViralDetector, calculate_viral_reward
from lubcore.viral.patterns import analyze_viral_patterns, count_emoji
from lubcore.viral.types import DetectionType, DistributionStatus, Engagement

DAY = 86400.0

LUB_POST = "Just bought some $LUB today"
HYPE_POST = "Loving the $LUB challenge today, so much fun with everyone!"


class TestPatterns:
    def test_lub_mention(self) -> None:
        result = analyze_viral_patterns(LUB_POST)
        assert result.detected
        assert result.detection_type is DetectionType.LUB_MENTION
        assert result.confidence == 40

    def test_mention_beats_keyword_for_type(self) -> None:
        result = analyze_viral_patterns(HYPE_POST)
        assert result.detection_type is DetectionType.LUB_MENTION
        assert result.confidence == 75
        assert "keyword:challenge" in result.signals
        assert "positive:fun" in result.signals

    def test_keyword_family_counts_once(self) -> None:
        result = analyze_viral_patterns("This valentine game is wild")
        assert result.detection_type is DetectionType.CHALLENGE_REFERENCE
        assert result.confidence == 30
        assert result.detected

    def test_positive_words_alone_too_weak(self) -> None:
        result = analyze_viral_patterns("This is so cool and fun and great")
        assert result.confidence == 15
        assert not result.detected
        assert result.detection_type is DetectionType.ORGANIC_SHARE

    def test_no_signal(self) -> None:
        result = analyze_viral_patterns("Nice weather outside today")
        assert result.confidence == 0
        assert result.signals == []

    def test_emoji_bonus_capped(self) -> None:
        assert count_emoji("💝🚀") == 2
        assert analyze_viral_patterns("#lub 💝🚀").confidence == 46
        assert analyze_viral_patterns("#lub " + "💝" * 10).confidence == 55

    def test_case_insensitive(self) -> None:
        assert analyze_viral_patterns("LUB TOKEN").confidence == 40

    def test_confidence_capped(self) -> None:
        text = "$lub lub token #lub challenge love fun amazing cool awesome great 💝💝💝💝💝"
        assert analyze_viral_patterns(text).confidence == 100


class TestRewardMath:
    def test_base(self, nano: SocialActor) -> None:
        reward, bonuses = calculate_viral_reward(nano, DetectionType.LUB_MENTION, 40)
        assert reward == 20
        assert bonuses.whale == bonuses.speed == bonuses.engagement == 0

    def test_type_multipliers(self, nano: SocialActor) -> None:
        assert calculate_viral_reward(nano, DetectionType.ORGANIC_SHARE, 100)[0] == 25
        assert (
            calculate_viral_reward(nano, DetectionType.CHALLENGE_REFERENCE, 30)[0] == 11
        )

    def test_whale_bonus(self, whale: SocialActor) -> None:
        reward, bonuses = calculate_viral_reward(whale, DetectionType.LUB_MENTION, 75)
        assert bonuses.whale == 37
        assert reward == 74

    def test_speed_bonus(self, nano: SocialActor) -> None:
        reward, bonuses = calculate_viral_reward(
            nano, DetectionType.LUB_MENTION, 40, speed_eligible=True
        )
        assert bonuses.speed == 10
        assert reward == 30

    def test_engagement_bonus(self, nano: SocialActor) -> None:
        reward, bonuses = calculate_viral_reward(
            nano,
            DetectionType.LUB_MENTION,
            40,
            Engagement(likes=10, recasts=3, replies=2),
        )
        assert bonuses.engagement == 30
        assert reward == 50

    def test_negative_engagement_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            Engagement(likes=-1)


class TestDetect:
    def test_detection_stored(
        self, detector: ViralDetector, ledger: ReputationLedger, nano: SocialActor, now: float
    ) -> None:
        detection = detector.detect_viral_mention("c1", nano, LUB_POST, now=now)
        assert detection is not None
        assert detection.id.startswith("viral_")
        assert detection.reward == 20
        assert not detection.verified
        assert detection.distribution_status is DistributionStatus.NOT_ELIGIBLE
        assert detector.get_detection(detection.id) == detection

        actor = ledger.get_actor(nano.fid)
        assert actor is not None
        assert actor.viral_detections == 1
        assert actor.last_viral_detection_at == now

    def test_weak_post_ignored(
        self, detector: ViralDetector, nano: SocialActor, now: float
    ) -> None:
        assert detector.detect_viral_mention("c1", nano, "Nice weather outside today", now=now) is None
        assert detector.list_detections() == []

    def test_spam_rejected_without_side_effects(
        self,
        detector: ViralDetector,
        ledger: ReputationLedger,
        nano: SocialActor,
        now: float,
    ) -> None:
        assert detector.detect_viral_mention("c1", nano, "AAAAAAAAAA $LUB!!!", now=now) is None
        assert detector.list_detections() == []
        assert ledger.get_actor(nano.fid) is None
        # Spam does not consume the cooldown
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now + 1) is not None

    def test_cooldown(self, detector: ViralDetector, nano: SocialActor, now: float) -> None:
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now) is not None
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now + 60) is None
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now + 300) is not None

    def test_daily_cap(self, detector: ViralDetector, nano: SocialActor, now: float) -> None:
        for i in range(3):
            assert (
                detector.detect_viral_mention("c1", nano, LUB_POST, now=now + i * 300)
                is not None
            )
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now + 900) is None
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now + 2 * DAY) is not None

    def test_banned_actor_rejected(
        self,
        detector: ViralDetector,
        ledger: ReputationLedger,
        nano: SocialActor,
        now: float,
    ) -> None:
        ledger.record_activity(
            nano.fid,
            WarningIssued(reason="manual", penalty=0, banned_until=now + DAY),
            now=now,
        )
        assert detector.detect_viral_mention("c1", nano, HYPE_POST, now=now + 10) is None
        assert detector.list_detections() == []
        assert detector.recent_rewards(nano.fid, now=now + 10) == 0
        actor = ledger.get_actor(nano.fid)
        assert actor is not None
        assert actor.viral_detections == 0

        after = detector.detect_viral_mention("c1", nano, HYPE_POST, now=now + DAY + 1)
        assert after is not None

    def test_explicit_epoch_is_honored(
        self, detector: ViralDetector, nano: SocialActor
    ) -> None:
        detection = detector.detect_viral_mention("c1", nano, LUB_POST, now=0.0)
        assert detection is not None
        assert detection.detected_at == 0.0
        assert detector.recent_rewards(nano.fid, now=0.0) == 20

    def test_rate_limit_is_per_actor(
        self, detector: ViralDetector, nano: SocialActor, whale: SocialActor, now: float
    ) -> None:
        assert detector.detect_viral_mention("c1", nano, LUB_POST, now=now) is not None
        assert detector.detect_viral_mention("c1", whale, LUB_POST, now=now) is not None

    def test_speed_window(self, detector: ViralDetector, now: float) -> None:
        early = SocialActor(fid=1, username="early", follower_count=10)
        late = SocialActor(fid=2, username="late", follower_count=10)
        future = SocialActor(fid=3, username="future", follower_count=10)
        fast = detector.detect_viral_mention(
            "c1", early, LUB_POST, challenge_started_at=now - 30 * 60, now=now
        )
        slow = detector.detect_viral_mention(
            "c1", late, LUB_POST, challenge_started_at=now - 61 * 60, now=now
        )
        odd = detector.detect_viral_mention(
            "c1", future, LUB_POST, challenge_started_at=now + 10, now=now
        )
        assert fast is not None and slow is not None and odd is not None
        assert fast.bonuses.speed == 10
        assert slow.bonuses.speed == 0
        assert odd.bonuses.speed == 0

    def test_recent_rewards(self, detector: ViralDetector, nano: SocialActor, now: float) -> None:
        detector.detect_viral_mention("c1", nano, LUB_POST, now=now)
        assert detector.recent_rewards(nano.fid, now=now) == 20
        assert detector.recent_rewards(nano.fid, now=now + 2 * DAY) == 0
        assert detector.recent_rewards(999, now=now) == 0


class TestDetectionStats:
    def test_empty(self, detector: ViralDetector) -> None:
        stats = detector.get_detection_stats()
        assert stats.total_detections == 0
        assert stats.average_confidence == 0
        assert stats.top_detectors == []

    def test_average_rounds_half_up(
        self, detector: ViralDetector, nano: SocialActor, whale: SocialActor, now: float
    ) -> None:
        detector.detect_viral_mention("c1", nano, LUB_POST, now=now)
        detector.detect_viral_mention("c1", whale, HYPE_POST, now=now)
        stats = detector.get_detection_stats()
        assert stats.total_detections == 2
        assert stats.verified_detections == 0
        assert stats.total_rewards == 0
        assert stats.average_confidence == 58

    def test_idempotent(
        self, detector: ViralDetector, nano: SocialActor, now: float
    ) -> None:
        detector.detect_viral_mention("c1", nano, LUB_POST, now=now)
        assert detector.get_detection_stats() == detector.get_detection_stats()


class TestViralCleanup:
    def test_caps_detections_and_prunes(self, ledger: ReputationLedger, now: float) -> None:
        detector = ViralDetector(ledger, ViralConfig(max_detections=2))
        actors = [SocialActor(fid=i, username=f"a{i}", follower_count=10) for i in range(3)]
        for i, actor in enumerate(actors):
            detector.detect_viral_mention("c1", actor, LUB_POST, now=now + i)

        report = detector.cleanup(now=now + 3)
        assert report.detections_removed == 1
        assert report.counters_cleared == 0
        remaining = detector.list_detections()
        assert [d.actor.fid for d in remaining] == [2, 1]

        report = detector.cleanup(now=now + 2 * DAY)
        assert report.detections_removed == 0
        assert report.counters_cleared == 3
        assert report.rewards_pruned == 3
        assert detector.recent_rewards(2, now=now + 2 * DAY) == 0
