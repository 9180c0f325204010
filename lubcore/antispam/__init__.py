"""Reputation, rate limiting and content screening."""

from __future__ import annotations

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import (
    ModerationAction,
    ReportCategory,
    ReportStatus,
    SpamDecision,
)

__all__ = [
    "ModerationAction",
    "ReportCategory",
    "ReportStatus",
    "ReputationLedger",
    "SpamDecision",
]
