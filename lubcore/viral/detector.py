"""Viral mention detection, verification and payout hand-off.

Pipeline for one candidate post:

1. Content screening by the ledger; spam is dropped with no side effects.
2. Per-actor rate check: a cooldown between detections and a cap on
   detections in the trailing 24 hours.
3. Pattern analysis (see :mod:`lubcore.viral.patterns`).
4. Reward: ``base × type multiplier × confidence/100`` plus whale, speed
   and engagement bonuses, floored.
5. Persist the unverified detection, bump counters, record the activity.

Steps 1–5 run under the actor's ledger lock.

Verification is a separate call that blends an automated score with a
pluggable community score; verified detections are handed to the
:class:`~lubcore.types.RewardDistributor` and their payout state is
tracked on the detection itself.
"""

from __future__ import annotations

import math
import time
import uuid
from collections import defaultdict

import structlog

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import ViralDetected
from lubcore.config import ViralConfig
from lubcore.locking import StripedLock
from lubcore.persistence import memory_store_factory
from lubcore.social import SocialActor
from lubcore.types import (
    CommunityScorer,
    KeyedStore,
    RewardDistributor,
    StoreFactory,
)
from lubcore.viral.distribution import LoggingRewardDistributor, NeutralCommunityScorer
from lubcore.viral.patterns import analyze_viral_patterns
from lubcore.viral.types import (
    TYPE_MULTIPLIERS,
    DetectionCounter,
    DetectionStats,
    DetectionType,
    DistributionStatus,
    Engagement,
    RewardBonuses,
    RewardEntry,
    RewardHistory,
    TopDetector,
    ViralCleanupReport,
    ViralDetection,
)

logger = structlog.get_logger()

HOUR = 3600.0

# Automated verification weights
CONFIDENCE_WEIGHT = 0.4
MAX_FOLLOWER_SCORE = 30.0
FOLLOWERS_PER_POINT = 1000.0
IDEAL_LENGTH = (50, 200)
IDEAL_LENGTH_SCORE = 30.0
OTHER_LENGTH_SCORE = 15.0

# Blend of automated vs community score
AUTOMATED_WEIGHT = 0.7
COMMUNITY_WEIGHT = 0.3

TOP_DETECTORS = 10


def calculate_viral_reward(
    actor: SocialActor,
    detection_type: DetectionType,
    confidence: float,
    engagement: Engagement | None = None,
    *,
    speed_eligible: bool = False,
    config: ViralConfig | None = None,
) -> tuple[int, RewardBonuses]:
    """Compute a detection's total reward and its bonus breakdown."""
    cfg = config or ViralConfig()
    base = cfg.base_reward * TYPE_MULTIPLIERS[detection_type] * (confidence / 100)

    whale = 0
    if actor.follower_count >= cfg.whale_follower_threshold:
        whale = math.floor(base * (cfg.whale_multiplier - 1))

    speed = math.floor(base * (cfg.speed_multiplier - 1)) if speed_eligible else 0

    engagement_bonus = 0
    if engagement is not None:
        engagement_bonus = math.floor(engagement.total * cfg.engagement_reward)

    bonuses = RewardBonuses(whale=whale, speed=speed, engagement=engagement_bonus)
    return math.floor(base + whale + speed + engagement_bonus), bonuses


def automated_verification_score(detection: ViralDetection) -> float:
    """Automated credibility score (0–100) for a detection.

    40% of the detection confidence, up to 30 points for followers
    (one per thousand), and 30 points for content of ideal length
    (15 otherwise).
    """
    score = detection.confidence * CONFIDENCE_WEIGHT
    score += min(detection.actor.follower_count / FOLLOWERS_PER_POINT, MAX_FOLLOWER_SCORE)
    lo, hi = IDEAL_LENGTH
    length = len(detection.content)
    score += IDEAL_LENGTH_SCORE if lo <= length <= hi else OTHER_LENGTH_SCORE
    return min(score, 100.0)


class ViralDetector:
    """Detects, verifies and pays out viral mentions.

    Args:
        ledger: Reputation ledger used for content screening, the actor
            lock and activity recording.
        config: Detection and reward settings.
        store_factory: Builds the ``detections``, ``detection_counters``
            and ``reward_history`` stores.
        locks: Lock pool for per-detection verification.
        distributor: Receives verified payouts.  Defaults to
            :class:`LoggingRewardDistributor`.
        community_scorer: Community verification signal.  Defaults to
            :class:`NeutralCommunityScorer`.
    """

    def __init__(
        self,
        ledger: ReputationLedger,
        config: ViralConfig | None = None,
        *,
        store_factory: StoreFactory | None = None,
        locks: StripedLock | None = None,
        distributor: RewardDistributor | None = None,
        community_scorer: CommunityScorer | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config or ViralConfig()
        factory = store_factory or memory_store_factory
        self._detections: KeyedStore[ViralDetection] = factory(
            "detections", ViralDetection.from_dict
        )
        self._counters: KeyedStore[DetectionCounter] = factory(
            "detection_counters", DetectionCounter.from_dict
        )
        self._rewards: KeyedStore[RewardHistory] = factory(
            "reward_history", RewardHistory.from_dict
        )
        self._locks = locks or StripedLock()
        self._distributor = distributor or LoggingRewardDistributor()
        self._scorer = community_scorer or NeutralCommunityScorer()

    @property
    def config(self) -> ViralConfig:
        return self._config

    # --- Detection ---------------------------------------------------------

    def _rate_limited(self, actor_id: int, now: float) -> bool:
        actor = self._ledger.get_actor(actor_id)
        if actor is not None and actor.is_banned(now):
            logger.info("viral_rate_limited", actor_id=actor_id, reason="banned")
            return True
        counter = self._counters.get(str(actor_id))
        if counter is None:
            return False
        cfg = self._config
        if now - counter.last_detection < cfg.cooldown:
            logger.info("viral_rate_limited", actor_id=actor_id, reason="cooldown")
            return True
        window = cfg.counter_window_hours * HOUR
        if counter.count_since(now - window) >= cfg.max_detections_per_day:
            logger.info("viral_rate_limited", actor_id=actor_id, reason="daily_limit")
            return True
        return False

    def detect_viral_mention(
        self,
        challenge_id: str,
        actor: SocialActor,
        post_content: str,
        engagement: Engagement | None = None,
        *,
        challenge_started_at: float | None = None,
        now: float | None = None,
    ) -> ViralDetection | None:
        """Score a candidate post; return the stored detection or ``None``.

        ``None`` means the post was rejected: flagged as spam, rate
        limited, or too weak a signal.
        """
        if now is None:
            now = time.time()
        cfg = self._config

        with self._ledger.actor_lock(actor.fid):
            quality = self._ledger.validate_content_quality(post_content, actor.fid)
            if quality.is_spam:
                logger.info(
                    "viral_content_rejected",
                    actor_id=actor.fid,
                    reasons=quality.reasons,
                )
                return None

            if self._rate_limited(actor.fid, now):
                return None

            analysis = analyze_viral_patterns(post_content, cfg)
            if not analysis.detected:
                logger.debug(
                    "viral_not_detected",
                    actor_id=actor.fid,
                    confidence=analysis.confidence,
                )
                return None

            speed_eligible = (
                challenge_started_at is not None
                and 0 <= now - challenge_started_at <= cfg.speed_window_minutes * 60
            )
            reward, bonuses = calculate_viral_reward(
                actor,
                analysis.detection_type,
                analysis.confidence,
                engagement,
                speed_eligible=speed_eligible,
                config=cfg,
            )

            detection = ViralDetection(
                id=f"viral_{uuid.uuid4().hex[:12]}",
                challenge_id=challenge_id,
                actor=actor,
                detected_at=now,
                content=post_content,
                detection_type=analysis.detection_type,
                confidence=analysis.confidence,
                reward=reward,
                bonuses=bonuses,
            )
            self._detections.put(detection.id, detection)

            key = str(actor.fid)
            counter = self._counters.get(key) or DetectionCounter(actor_id=actor.fid)
            counter.timestamps.append(now)
            self._counters.put(key, counter)

            history = self._rewards.get(key) or RewardHistory(actor_id=actor.fid)
            history.entries.append(RewardEntry(amount=reward, timestamp=now))
            self._rewards.put(key, history)

            self._ledger.record_activity(
                actor.fid,
                ViralDetected(
                    detection_id=detection.id,
                    challenge_id=challenge_id,
                    detection_type=analysis.detection_type.value,
                    confidence=analysis.confidence,
                    reward=reward,
                ),
                now=now,
            )

        logger.info(
            "viral_detected",
            detection_id=detection.id,
            actor=actor.username,
            type=detection.detection_type.value,
            confidence=detection.confidence,
            reward=reward,
        )
        return detection

    # --- Verification & payout ---------------------------------------------

    def verify_detection(self, detection_id: str) -> bool:
        """Run verification; distribute the reward when it passes.

        Returns ``False`` for unknown ids and failed verification.  An
        already-verified detection returns ``True`` without paying out
        again.  A distributor failure is logged and recorded as
        ``failed``; the detection stays verified.
        """
        with self._locks.hold(f"detection:{detection_id}"):
            detection = self._detections.get(detection_id)
            if detection is None:
                return False
            if detection.verified:
                return True

            automated = automated_verification_score(detection)
            community = self._scorer.score(detection)
            total = automated * AUTOMATED_WEIGHT + community * COMMUNITY_WEIGHT
            detection.verification_score = round(total, 2)
            detection.verified = total >= self._config.verification_threshold

            if not detection.verified:
                self._detections.put(detection_id, detection)
                logger.info(
                    "viral_verification_failed",
                    detection_id=detection_id,
                    score=detection.verification_score,
                )
                return False

            detection.distribution_status = DistributionStatus.PENDING
            self._detections.put(detection_id, detection)
            logger.info(
                "viral_verified",
                detection_id=detection_id,
                score=detection.verification_score,
            )
        self._distribute(detection)
        return True

    def _distribute(self, detection: ViralDetection) -> bool:
        """Send a ``pending`` payout, then record the outcome.

        Called with no lock held so a slow distributor never stalls the
        stripe it shares with actor and challenge keys.  The caller has
        already stored the detection as ``pending``, which keeps a
        concurrent retry from sending it twice.
        """
        error: str | None = None
        try:
            self._distributor.distribute(detection)
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__
            logger.warning(
                "reward_distribution_failed",
                detection_id=detection.id,
                amount=detection.reward,
                error=error,
            )

        with self._locks.hold(f"detection:{detection.id}"):
            stored = self._detections.get(detection.id)
            if stored is not None:
                stored.distribution_status = (
                    DistributionStatus.DISTRIBUTED
                    if error is None
                    else DistributionStatus.FAILED
                )
                stored.distribution_error = error
                self._detections.put(detection.id, stored)
        return error is None

    def retry_failed_distributions(self) -> int:
        """Re-send every ``failed`` payout.  Returns how many succeeded.

        Never called automatically.
        """
        succeeded = 0
        for detection_id, _ in self._detections.scan():
            with self._locks.hold(f"detection:{detection_id}"):
                detection = self._detections.get(detection_id)
                if (
                    detection is None
                    or detection.distribution_status is not DistributionStatus.FAILED
                ):
                    continue
                detection.distribution_status = DistributionStatus.PENDING
                self._detections.put(detection_id, detection)
            if self._distribute(detection):
                succeeded += 1
        logger.info("distribution_retry", succeeded=succeeded)
        return succeeded

    # --- Read models -------------------------------------------------------

    def get_detection(self, detection_id: str) -> ViralDetection | None:
        return self._detections.get(detection_id)

    def list_detections(self, *, verified: bool | None = None) -> list[ViralDetection]:
        """Stored detections, newest first."""
        items = [
            d
            for _, d in self._detections.scan()
            if verified is None or d.verified is verified
        ]
        items.sort(key=lambda d: d.detected_at, reverse=True)
        return items

    def recent_rewards(self, actor_id: int, *, now: float | None = None) -> int:
        """Sum of rewards credited to *actor_id* in the trailing window."""
        if now is None:
            now = time.time()
        history = self._rewards.get(str(actor_id))
        if history is None:
            return 0
        cutoff = now - self._config.counter_window_hours * HOUR
        return sum(e.amount for e in history.entries if e.timestamp > cutoff)

    def get_detection_stats(self) -> DetectionStats:
        """Totals, mean confidence and the verified-reward leaderboard."""
        detections = [d for _, d in self._detections.scan()]
        verified = [d for d in detections if d.verified]

        avg = (
            sum(d.confidence for d in detections) / len(detections)
            if detections
            else 0.0
        )

        per_actor: dict[int, list[ViralDetection]] = defaultdict(list)
        for d in verified:
            per_actor[d.actor.fid].append(d)
        leaderboard = [
            TopDetector(
                actor=max(ds, key=lambda d: d.detected_at).actor,
                detections=len(ds),
                rewards=sum(d.reward for d in ds),
            )
            for ds in per_actor.values()
        ]
        leaderboard.sort(key=lambda t: (-t.rewards, t.actor.fid))

        return DetectionStats(
            total_detections=len(detections),
            verified_detections=len(verified),
            total_rewards=sum(d.reward for d in verified),
            average_confidence=math.floor(avg + 0.5),
            top_detectors=leaderboard[:TOP_DETECTORS],
        )

    # --- Maintenance -------------------------------------------------------

    def cleanup(self, *, now: float | None = None) -> ViralCleanupReport:
        """Cap stored detections and drop stale counters and rewards."""
        if now is None:
            now = time.time()
        cfg = self._config
        cutoff = now - cfg.counter_window_hours * HOUR

        removed = 0
        if len(self._detections) > cfg.max_detections:
            ordered = sorted(
                ((d.detected_at, key) for key, d in self._detections.scan()),
                reverse=True,
            )
            for _, key in ordered[cfg.max_detections :]:
                with self._locks.hold(f"detection:{key}"):
                    if self._detections.delete(key):
                        removed += 1

        counters_cleared = 0
        for key, _ in self._counters.scan():
            with self._ledger.actor_lock(int(key)):
                counter = self._counters.get(key)
                if counter is None:
                    continue
                counter.timestamps = [ts for ts in counter.timestamps if ts > cutoff]
                if counter.timestamps:
                    self._counters.put(key, counter)
                else:
                    self._counters.delete(key)
                    counters_cleared += 1

        rewards_pruned = 0
        for key, _ in self._rewards.scan():
            with self._ledger.actor_lock(int(key)):
                history = self._rewards.get(key)
                if history is None:
                    continue
                before = len(history.entries)
                history.entries = [e for e in history.entries if e.timestamp > cutoff]
                rewards_pruned += before - len(history.entries)
                if history.entries:
                    self._rewards.put(key, history)
                else:
                    self._rewards.delete(key)

        logger.info(
            "viral_cleanup",
            detections_removed=removed,
            counters_cleared=counters_cleared,
            rewards_pruned=rewards_pruned,
        )
        return ViralCleanupReport(
            detections_removed=removed,
            counters_cleared=counters_cleared,
            rewards_pruned=rewards_pruned,
        )
