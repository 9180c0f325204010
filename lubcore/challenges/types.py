"""Challenge types, enums and dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from lubcore.social import SocialActor


class Difficulty(StrEnum):
    """Requested challenge difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# What a challenge of each difficulty pays before the whale multiplier
DIFFICULTY_BASE_REWARDS: dict[Difficulty, int] = {
    Difficulty.EASY: 50,
    Difficulty.MEDIUM: 200,
    Difficulty.HARD: 500,
}

# Template base-reward band per difficulty (inclusive; bands overlap)
DIFFICULTY_BANDS: dict[Difficulty, tuple[float, float]] = {
    Difficulty.EASY: (0, 100),
    Difficulty.MEDIUM: (100, 500),
    Difficulty.HARD: (300, float("inf")),
}


class ChallengeCategory(StrEnum):
    INTERACTION = "interaction"
    CONTENT = "content"
    VIRAL = "viral"
    WHALE_SPECIFIC = "whale_specific"


@dataclass(frozen=True)
class ChallengeType:
    """Static catalog template."""

    id: str
    name: str
    description: str
    category: ChallengeCategory
    min_followers: int
    base_reward: int
    time_limit: int  # minutes
    success_criteria: tuple[str, ...]
    examples: tuple[str, ...]
    max_followers: int | None = None

    def accepts_followers(self, follower_count: int) -> bool:
        """``True`` when *follower_count* is within ``[min, max)``."""
        if follower_count < self.min_followers:
            return False
        return self.max_followers is None or follower_count < self.max_followers

    def fits_difficulty(self, difficulty: Difficulty) -> bool:
        lo, hi = DIFFICULTY_BANDS[difficulty]
        return lo <= self.base_reward <= hi


@dataclass(frozen=True)
class Challenge:
    """One live challenge instance."""

    id: str
    type_id: str
    target: SocialActor
    difficulty: Difficulty
    prompt: str
    base_reward: int
    whale_multiplier: float
    total_reward: int
    time_limit: int  # minutes
    created_at: float
    deadline: float
    success_criteria: tuple[str, ...]
    created_by: str | None = None
    creator_actor_id: int | None = None

    def is_expired(self, now: float) -> bool:
        return self.deadline < now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type_id": self.type_id,
            "target": self.target.to_dict(),
            "difficulty": self.difficulty.value,
            "prompt": self.prompt,
            "base_reward": self.base_reward,
            "whale_multiplier": self.whale_multiplier,
            "total_reward": self.total_reward,
            "time_limit": self.time_limit,
            "created_at": self.created_at,
            "deadline": self.deadline,
            "success_criteria": list(self.success_criteria),
            "created_by": self.created_by,
            "creator_actor_id": self.creator_actor_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Challenge:
        return cls(
            id=str(data["id"]),
            type_id=str(data["type_id"]),
            target=SocialActor.from_dict(data["target"]),
            difficulty=Difficulty(data["difficulty"]),
            prompt=str(data["prompt"]),
            base_reward=int(data["base_reward"]),
            whale_multiplier=float(data["whale_multiplier"]),
            total_reward=int(data["total_reward"]),
            time_limit=int(data["time_limit"]),
            created_at=float(data["created_at"]),
            deadline=float(data["deadline"]),
            success_criteria=tuple(data["success_criteria"]),
            created_by=data.get("created_by"),
            creator_actor_id=data.get("creator_actor_id"),
        )


@dataclass(frozen=True)
class ChallengeBonuses:
    whale: int = 0
    viral: int = 0
    speed: int = 0


@dataclass(frozen=True)
class ChallengeResult:
    """Final outcome of a completed challenge."""

    challenge_id: str
    success: bool
    completed_at: float
    viral_detected: bool
    actual_reward: int
    bonuses: ChallengeBonuses = field(default_factory=ChallengeBonuses)
    evidence: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "challenge_id": self.challenge_id,
            "success": self.success,
            "completed_at": self.completed_at,
            "viral_detected": self.viral_detected,
            "actual_reward": self.actual_reward,
            "bonuses": {
                "whale": self.bonuses.whale,
                "viral": self.bonuses.viral,
                "speed": self.bonuses.speed,
            },
            "evidence": self.evidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChallengeResult:
        return cls(
            challenge_id=str(data["challenge_id"]),
            success=bool(data["success"]),
            completed_at=float(data["completed_at"]),
            viral_detected=bool(data["viral_detected"]),
            actual_reward=int(data["actual_reward"]),
            bonuses=ChallengeBonuses(**data.get("bonuses", {})),
            evidence=data.get("evidence"),
        )
