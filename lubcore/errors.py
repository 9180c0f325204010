"""Structured error codes and the LubCore exception hierarchy.

Validation failures raise a :class:`LubCoreError` subclass.  Policy
rejections (rate limits, cooldowns, bans, spam scores) are returned as
values and never appear here, with the single exception of
:class:`ChallengeBlockedError`, which carries the rejecting decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lubcore.antispam.types import SpamDecision


class ErrorCategory(StrEnum):
    """Error category classification."""

    CHALLENGE = "CHALLENGE"
    VIRAL = "VIRAL"
    MODERATION = "MODERATION"
    INPUT = "INPUT"
    CONFIG = "CONFIG"
    DISTRIBUTION = "DISTRIBUTION"


@dataclass(frozen=True)
class CoreErrorInfo:
    """One catalog entry: stable code, category and operator hint."""

    code: str
    category: ErrorCategory
    message: str
    resolution: str

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "resolution": self.resolution,
        }

    def format(self) -> str:
        return f"Error [{self.code}]: {self.message}\nResolution: {self.resolution}"


CODE_PREFIX = "LUBCORE"

_CATALOG: list[tuple[str, ErrorCategory, str, str]] = [
    (
        "E001",
        ErrorCategory.CHALLENGE,
        "Challenge not found",
        "Check the challenge id; completed challenges leave the active set",
    ),
    (
        "E002",
        ErrorCategory.CHALLENGE,
        "Challenge deadline has passed",
        "Generate a new challenge; expired challenges pay nothing",
    ),
    (
        "E003",
        ErrorCategory.CHALLENGE,
        "Challenge creation blocked by anti-spam policy",
        "Retry after the cooldown in the decision, or wait for review",
    ),
    (
        "E004",
        ErrorCategory.INPUT,
        "Invalid input value",
        "Check argument types and ranges",
    ),
    (
        "E005",
        ErrorCategory.MODERATION,
        "Report not found",
        "List reports with 'lubcore report list'",
    ),
    (
        "E006",
        ErrorCategory.MODERATION,
        "Invalid report status transition",
        "Only pending or reviewed reports can be moderated",
    ),
    (
        "E007",
        ErrorCategory.DISTRIBUTION,
        "Reward distribution failed",
        "Check the distribution webhook, then run"
        " 'lubcore viral retry-distribution'",
    ),
    (
        "E008",
        ErrorCategory.CONFIG,
        "Invalid configuration value",
        "Check config.toml. Run 'lubcore config show --env' to review.",
    ),
]

ERRORS: dict[str, CoreErrorInfo] = {
    short: CoreErrorInfo(f"{CODE_PREFIX}_{short}", category, message, resolution)
    for short, category, message, resolution in _CATALOG
}


def get_error(code: str) -> CoreErrorInfo | None:
    """Catalog entry for a short (``E001``) or full (``LUBCORE_E001``) code."""
    return ERRORS.get(code.removeprefix(f"{CODE_PREFIX}_"))


def format_error(code: str) -> str:
    info = get_error(code)
    return info.format() if info else f"Unknown error: {code}"


# ── Exceptions ────────────────────────────────────────────────────


class LubCoreError(Exception):
    """Base class for LubCore validation failures."""

    short_code: str = "E004"

    def __init__(self, message: str | None = None) -> None:
        self.info = ERRORS[self.short_code]
        super().__init__(message or self.info.message)

    @property
    def code(self) -> str:
        return self.info.code

    def to_dict(self) -> dict[str, str]:
        """Catalog fields plus the concrete ``detail`` of this failure."""
        return {**self.info.to_dict(), "detail": str(self)}


class ChallengeNotFoundError(LubCoreError):
    """The challenge id is not in the active set."""

    short_code = "E001"


class ChallengeExpiredError(LubCoreError):
    """The challenge passed its deadline before completion."""

    short_code = "E002"


class ChallengeBlockedError(LubCoreError):
    """The creator failed the anti-spam permission check."""

    short_code = "E003"

    def __init__(self, decision: SpamDecision) -> None:
        self.decision = decision
        super().__init__(f"Challenge blocked: {', '.join(decision.reasons)}")


class InvalidInputError(LubCoreError):
    """Malformed argument (negative follower count, unknown difficulty, ...)."""

    short_code = "E004"


class ReportNotFoundError(LubCoreError):
    """The report id is unknown."""

    short_code = "E005"


class InvalidReportTransitionError(LubCoreError):
    """A moderation transition not allowed from the report's status."""

    short_code = "E006"


class DistributionError(LubCoreError):
    """A reward distributor could not hand off a payout."""

    short_code = "E007"


class ConfigError(LubCoreError):
    """config.toml could not be parsed."""

    short_code = "E008"
