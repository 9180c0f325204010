"""Social-graph actors and influence tiers.

Actors come from the Farcaster social graph (an external collaborator);
the core only needs a snapshot: fid, username and follower count.

Influence tiers, by follower count:

    nano        < 1,000          1×
    micro       1,000 – 4,999    2×
    mini        5,000 – 9,999    5×
    whale       10,000 – 49,999  10×
    mega_whale  50,000 – 99,999  25×
    orca        ≥ 100,000        50×
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from lubcore.errors import InvalidInputError


class InfluenceTier(StrEnum):
    """Social-influence tier — higher tier = bigger reward multiplier."""

    NANO = "nano"
    MICRO = "micro"
    MINI = "mini"
    WHALE = "whale"
    MEGA_WHALE = "mega_whale"
    ORCA = "orca"


TIER_THRESHOLDS: list[tuple[int, InfluenceTier, float]] = [
    (100_000, InfluenceTier.ORCA, 50.0),
    (50_000, InfluenceTier.MEGA_WHALE, 25.0),
    (10_000, InfluenceTier.WHALE, 10.0),
    (5_000, InfluenceTier.MINI, 5.0),
    (1_000, InfluenceTier.MICRO, 2.0),
    (0, InfluenceTier.NANO, 1.0),
]

_MULTIPLIERS: dict[InfluenceTier, float] = {
    tier: mult for _, tier, mult in TIER_THRESHOLDS
}

# Tiers that get the "whales are busy" strategy tip
WHALE_TIERS: frozenset[InfluenceTier] = frozenset(
    {InfluenceTier.WHALE, InfluenceTier.MEGA_WHALE, InfluenceTier.ORCA}
)

TIER_EMOJI: dict[InfluenceTier, str] = {
    InfluenceTier.NANO: "🦐",
    InfluenceTier.MICRO: "🐟",
    InfluenceTier.MINI: "🦈",
    InfluenceTier.WHALE: "🐋",
    InfluenceTier.MEGA_WHALE: "🐳",
    InfluenceTier.ORCA: "🐬",
}


def classify_followers(follower_count: int) -> InfluenceTier:
    """Map a follower count to its influence tier."""
    if follower_count < 0:
        raise InvalidInputError(f"follower_count must be >= 0, got {follower_count}")
    for threshold, tier, _ in TIER_THRESHOLDS:
        if follower_count >= threshold:
            return tier
    return InfluenceTier.NANO


def tier_multiplier(tier: InfluenceTier) -> float:
    """Reward multiplier for an influence tier."""
    return _MULTIPLIERS[tier]


@dataclass(frozen=True)
class SocialActor:
    """Snapshot of a social-graph identity."""

    fid: int
    username: str
    follower_count: int
    display_name: str = ""

    def __post_init__(self) -> None:
        if self.follower_count < 0:
            raise InvalidInputError(
                f"follower_count must be >= 0, got {self.follower_count}"
            )

    @property
    def tier(self) -> InfluenceTier:
        return classify_followers(self.follower_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fid": self.fid,
            "username": self.username,
            "follower_count": self.follower_count,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SocialActor:
        return cls(
            fid=int(data["fid"]),
            username=str(data["username"]),
            follower_count=int(data["follower_count"]),
            display_name=str(data.get("display_name", "")),
        )
