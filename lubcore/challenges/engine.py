"""Challenge engine — generate and resolve time-boxed social challenges.

Lifecycle of one challenge::

    created ──complete──▶ completed (history, payout)
       │
       └──deadline passes──▶ expired (discarded, no payout)

Generation with a creator consults the ledger under the creator's lock,
so the permission check and the activity record are one atomic step.
Completion and the expiry sweep hold the challenge's own lock.
"""

from __future__ import annotations

import math
import random
import time
import uuid
from collections.abc import Mapping

import structlog

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import ChallengeCreated
from lubcore.challenges.catalog import load_catalog, render_prompt
from lubcore.challenges.types import (
    DIFFICULTY_BASE_REWARDS,
    Challenge,
    ChallengeBonuses,
    ChallengeCategory,
    ChallengeResult,
    ChallengeType,
    Difficulty,
)
from lubcore.config import ChallengeConfig
from lubcore.errors import (
    ChallengeBlockedError,
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidInputError,
)
from lubcore.locking import StripedLock
from lubcore.persistence import memory_store_factory
from lubcore.social import InfluenceTier, SocialActor, tier_multiplier
from lubcore.types import KeyedStore, StoreFactory

logger = structlog.get_logger()


class ChallengeEngine:
    """Generates challenges from the static catalog and settles them.

    Args:
        ledger: Reputation ledger consulted for creator permission.
        config: Reward bonus settings.
        store_factory: Builds the ``challenges`` (active) and
            ``challenge_history`` stores.
        locks: Lock pool for per-challenge transitions.
        rng: Random source for template and example selection.
        catalog: Template catalog.  Defaults to the built-in one.
    """

    def __init__(
        self,
        ledger: ReputationLedger,
        config: ChallengeConfig | None = None,
        *,
        store_factory: StoreFactory | None = None,
        locks: StripedLock | None = None,
        rng: random.Random | None = None,
        catalog: Mapping[str, ChallengeType] | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config or ChallengeConfig()
        factory = store_factory or memory_store_factory
        self._active: KeyedStore[Challenge] = factory("challenges", Challenge.from_dict)
        self._history: KeyedStore[ChallengeResult] = factory(
            "challenge_history", ChallengeResult.from_dict
        )
        self._locks = locks or StripedLock()
        self._rng = rng or random.Random()
        self._catalog = catalog or load_catalog()
        if self._config.fallback_type not in self._catalog:
            raise InvalidInputError(
                f"Fallback challenge type not in catalog: {self._config.fallback_type}"
            )

    # --- Catalog -----------------------------------------------------------

    def get_challenge_type(self, type_id: str) -> ChallengeType | None:
        return self._catalog.get(type_id)

    def list_challenge_types(self) -> list[ChallengeType]:
        return list(self._catalog.values())

    def eligible_types(
        self, target: SocialActor, difficulty: Difficulty
    ) -> list[ChallengeType]:
        """Templates allowed for *target* at *difficulty* (may be empty)."""
        tier = target.tier
        return [
            t
            for t in self._catalog.values()
            if t.accepts_followers(target.follower_count)
            and t.fits_difficulty(difficulty)
            and not (
                t.category is ChallengeCategory.WHALE_SPECIFIC
                and tier is InfluenceTier.NANO
            )
        ]

    def _select_type(self, target: SocialActor, difficulty: Difficulty) -> ChallengeType:
        candidates = self.eligible_types(target, difficulty)
        if not candidates:
            logger.debug(
                "challenge_type_fallback",
                target=target.username,
                difficulty=difficulty.value,
            )
            return self._catalog[self._config.fallback_type]
        return self._rng.choice(candidates)

    # --- Generation --------------------------------------------------------

    def generate_challenge(
        self,
        target: SocialActor,
        difficulty: Difficulty | str,
        created_by: str | None = None,
        creator_actor_id: int | None = None,
        *,
        now: float | None = None,
    ) -> Challenge:
        """Create and store a challenge against *target*.

        Raises:
            ChallengeBlockedError: The creator failed the ledger's
                permission check.  Nothing is created.
            InvalidInputError: Unknown *difficulty*.
        """
        if now is None:
            now = time.time()
        try:
            difficulty = Difficulty(difficulty)
        except ValueError:
            raise InvalidInputError(f"Unknown difficulty: {difficulty}") from None

        if creator_actor_id is None:
            challenge = self._create(target, difficulty, created_by, None, now)
        else:
            with self._ledger.actor_lock(creator_actor_id):
                decision = self._ledger.can_create_challenge(
                    creator_actor_id, target.fid, now=now
                )
                if decision.is_spam:
                    raise ChallengeBlockedError(decision)
                challenge = self._create(
                    target, difficulty, created_by, creator_actor_id, now
                )
                self._ledger.record_activity(
                    creator_actor_id,
                    ChallengeCreated(
                        challenge_id=challenge.id,
                        target_id=target.fid,
                        difficulty=difficulty.value,
                        whale_multiplier=challenge.whale_multiplier,
                    ),
                    now=now,
                )

        logger.info(
            "challenge_generated",
            challenge_id=challenge.id,
            type=challenge.type_id,
            target=target.username,
            difficulty=difficulty.value,
            total_reward=challenge.total_reward,
        )
        return challenge

    def _create(
        self,
        target: SocialActor,
        difficulty: Difficulty,
        created_by: str | None,
        creator_actor_id: int | None,
        now: float,
    ) -> Challenge:
        challenge_type = self._select_type(target, difficulty)
        multiplier = tier_multiplier(target.tier)
        base_reward = DIFFICULTY_BASE_REWARDS[difficulty]
        example = self._rng.choice(challenge_type.examples)

        challenge = Challenge(
            id=f"challenge_{uuid.uuid4().hex[:12]}",
            type_id=challenge_type.id,
            target=target,
            difficulty=difficulty,
            prompt=render_prompt(challenge_type, target, difficulty, example),
            base_reward=base_reward,
            whale_multiplier=multiplier,
            total_reward=math.floor(base_reward * multiplier),
            time_limit=challenge_type.time_limit,
            created_at=now,
            deadline=now + challenge_type.time_limit * 60,
            success_criteria=challenge_type.success_criteria,
            created_by=created_by,
            creator_actor_id=creator_actor_id,
        )
        self._active.put(challenge.id, challenge)
        return challenge

    # --- Resolution --------------------------------------------------------

    def _settle(
        self, challenge: Challenge, viral_detected: bool, now: float
    ) -> tuple[int, ChallengeBonuses]:
        cfg = self._config
        total = challenge.base_reward

        whale = 0
        if challenge.whale_multiplier > 1:
            whale = math.floor(challenge.base_reward * (challenge.whale_multiplier - 1))
            total += whale

        viral = 0
        if viral_detected:
            viral = math.floor(total * cfg.viral_bonus_ratio)
            total += viral

        speed = 0
        window = challenge.time_limit * 60
        if now - challenge.created_at < window * cfg.speed_window_ratio:
            speed = math.floor(total * cfg.speed_bonus_ratio)
            total += speed

        return total, ChallengeBonuses(whale=whale, viral=viral, speed=speed)

    def complete_challenge(
        self,
        challenge_id: str,
        success: bool,
        evidence: str | None = None,
        viral_detected: bool = False,
        *,
        now: float | None = None,
    ) -> ChallengeResult:
        """Settle an active challenge and move it to history.

        Challenges are single-attempt: failure pays nothing but still
        ends the challenge.

        Raises:
            ChallengeNotFoundError: *challenge_id* is not active.
            ChallengeExpiredError: The deadline passed; the challenge is
                discarded without a history entry.
        """
        if now is None:
            now = time.time()
        with self._locks.hold(f"challenge:{challenge_id}"):
            challenge = self._active.get(challenge_id)
            if challenge is None:
                raise ChallengeNotFoundError(f"Challenge not found: {challenge_id}")

            if challenge.is_expired(now):
                self._active.delete(challenge_id)
                logger.info("challenge_expired", challenge_id=challenge_id)
                raise ChallengeExpiredError(
                    f"Challenge {challenge_id} expired before completion"
                )

            if success:
                reward, bonuses = self._settle(challenge, viral_detected, now)
            else:
                reward, bonuses = 0, ChallengeBonuses()

            result = ChallengeResult(
                challenge_id=challenge_id,
                success=success,
                completed_at=now,
                viral_detected=viral_detected,
                actual_reward=reward,
                bonuses=bonuses,
                evidence=evidence,
            )
            self._history.put(challenge_id, result)
            self._active.delete(challenge_id)

        logger.info(
            "challenge_completed",
            challenge_id=challenge_id,
            success=success,
            reward=reward,
        )
        return result

    def cleanup_expired_challenges(self, *, now: float | None = None) -> int:
        """Discard every active challenge whose deadline is before *now*."""
        if now is None:
            now = time.time()
        removed = 0
        for challenge_id, _ in self._active.scan():
            with self._locks.hold(f"challenge:{challenge_id}"):
                challenge = self._active.get(challenge_id)
                if challenge is not None and challenge.is_expired(now):
                    self._active.delete(challenge_id)
                    removed += 1
        if removed:
            logger.info("challenges_expired", count=removed)
        return removed

    # --- Read models -------------------------------------------------------

    def get_challenge(self, challenge_id: str) -> Challenge | None:
        return self._active.get(challenge_id)

    def get_active_challenges(self) -> list[Challenge]:
        """Active challenges, oldest first."""
        return sorted((c for _, c in self._active.scan()), key=lambda c: c.created_at)

    def get_challenge_history(self, limit: int | None = None) -> list[ChallengeResult]:
        """The most recent *limit* results, oldest first."""
        limit = limit or self._config.history_page_size
        results = sorted(
            (r for _, r in self._history.scan()), key=lambda r: r.completed_at
        )
        return results[-limit:]
