"""Viral detection types, enums and dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from lubcore.errors import InvalidInputError
from lubcore.social import SocialActor


class DetectionType(StrEnum):
    """What kind of signal made a post count as viral."""

    LUB_MENTION = "lub_mention"
    CHALLENGE_REFERENCE = "challenge_reference"
    ORGANIC_SHARE = "organic_share"


# Reward multiplier per detection type
TYPE_MULTIPLIERS: dict[DetectionType, float] = {
    DetectionType.LUB_MENTION: 2.0,
    DetectionType.CHALLENGE_REFERENCE: 1.5,
    DetectionType.ORGANIC_SHARE: 1.0,
}


class DistributionStatus(StrEnum):
    """Payout state of a detection.

    ``not_eligible`` until verified; ``pending`` while the distributor is
    being called; then ``distributed`` or ``failed``.
    """

    NOT_ELIGIBLE = "not_eligible"
    PENDING = "pending"
    DISTRIBUTED = "distributed"
    FAILED = "failed"


@dataclass(frozen=True)
class Engagement:
    """Engagement counts reported for a post."""

    likes: int = 0
    recasts: int = 0
    replies: int = 0

    def __post_init__(self) -> None:
        if min(self.likes, self.recasts, self.replies) < 0:
            raise InvalidInputError("engagement counts must be >= 0")

    @property
    def total(self) -> int:
        return self.likes + self.recasts + self.replies


@dataclass(frozen=True)
class RewardBonuses:
    """Bonus breakdown included in a detection's reward."""

    whale: int = 0
    speed: int = 0
    engagement: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"whale": self.whale, "speed": self.speed, "engagement": self.engagement}


@dataclass
class ViralDetection:
    """A scored viral post, verified later by a separate pass."""

    id: str
    challenge_id: str
    actor: SocialActor
    detected_at: float
    content: str
    detection_type: DetectionType
    confidence: float
    reward: int
    bonuses: RewardBonuses = field(default_factory=RewardBonuses)
    verified: bool = False
    verification_score: float | None = None
    distribution_status: DistributionStatus = DistributionStatus.NOT_ELIGIBLE
    distribution_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "challenge_id": self.challenge_id,
            "actor": self.actor.to_dict(),
            "detected_at": self.detected_at,
            "content": self.content,
            "detection_type": self.detection_type.value,
            "confidence": self.confidence,
            "reward": self.reward,
            "bonuses": self.bonuses.to_dict(),
            "verified": self.verified,
            "verification_score": self.verification_score,
            "distribution_status": self.distribution_status.value,
            "distribution_error": self.distribution_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ViralDetection:
        return cls(
            id=str(data["id"]),
            challenge_id=str(data["challenge_id"]),
            actor=SocialActor.from_dict(data["actor"]),
            detected_at=float(data["detected_at"]),
            content=str(data["content"]),
            detection_type=DetectionType(data["detection_type"]),
            confidence=float(data["confidence"]),
            reward=int(data["reward"]),
            bonuses=RewardBonuses(**data.get("bonuses", {})),
            verified=bool(data["verified"]),
            verification_score=data.get("verification_score"),
            distribution_status=DistributionStatus(
                data.get("distribution_status", DistributionStatus.NOT_ELIGIBLE)
            ),
            distribution_error=data.get("distribution_error"),
        )


@dataclass
class DetectionCounter:
    """Per-actor detection timestamps used for rate limiting."""

    actor_id: int
    timestamps: list[float] = field(default_factory=list)

    @property
    def last_detection(self) -> float:
        return max(self.timestamps, default=0.0)

    def count_since(self, cutoff: float) -> int:
        return sum(1 for ts in self.timestamps if ts > cutoff)

    def to_dict(self) -> dict[str, Any]:
        return {"actor_id": self.actor_id, "timestamps": list(self.timestamps)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectionCounter:
        return cls(
            actor_id=int(data["actor_id"]),
            timestamps=[float(ts) for ts in data["timestamps"]],
        )


@dataclass(frozen=True)
class RewardEntry:
    """One reward credited to an actor by a detection."""

    amount: int
    timestamp: float


@dataclass
class RewardHistory:
    """Recent rewards per actor."""

    actor_id: int
    entries: list[RewardEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(e.amount for e in self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "entries": [
                {"amount": e.amount, "timestamp": e.timestamp} for e in self.entries
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RewardHistory:
        return cls(
            actor_id=int(data["actor_id"]),
            entries=[
                RewardEntry(amount=int(e["amount"]), timestamp=float(e["timestamp"]))
                for e in data["entries"]
            ],
        )


@dataclass(frozen=True)
class TopDetector:
    """Leaderboard row: verified detections and rewards for one actor."""

    actor: SocialActor
    detections: int
    rewards: int


@dataclass(frozen=True)
class DetectionStats:
    """Aggregate view over stored detections."""

    total_detections: int
    verified_detections: int
    total_rewards: int
    average_confidence: int
    top_detectors: list[TopDetector]


@dataclass(frozen=True)
class ViralCleanupReport:
    """What a detector cleanup pass removed."""

    detections_removed: int
    counters_cleared: int
    rewards_pruned: int
