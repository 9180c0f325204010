"""Time-boxed social challenges."""

from __future__ import annotations

from lubcore.challenges.engine import ChallengeEngine
from lubcore.challenges.types import (
    Challenge,
    ChallengeResult,
    ChallengeType,
    Difficulty,
)

__all__ = [
    "Challenge",
    "ChallengeEngine",
    "ChallengeResult",
    "ChallengeType",
    "Difficulty",
]
