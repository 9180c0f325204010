"""Content-quality screening.

Scores free text for spam signals.  Each signal adds to a confidence
score (capped at 100); the total maps to a moderation action:

    ≥ 80  block
    ≥ 60  review
    ≥ 40  warn
    else  allow

Signals:
- length outside [min, max] chars (+30 too short, +20 too long)
- a run of one character longer than ``max_repeated_characters`` (+40)
- capital-letter ratio over ``max_capital_ratio`` (+25)
- a burst of ``punctuation_burst`` or more ``!``/``?`` in a row (+15)
- +20 per distinct spam keyword
- author reputation below ``content_reputation_floor`` (+half the deficit)
"""

from __future__ import annotations

import re

from lubcore.antispam.types import ModerationAction, SpamDecision
from lubcore.config import AntiSpamConfig

# Signal weights
SHORT_CONTENT_WEIGHT = 30
LONG_CONTENT_WEIGHT = 20
REPEATED_CHARS_WEIGHT = 40
EXCESSIVE_CAPS_WEIGHT = 25
PUNCTUATION_BURST_WEIGHT = 15
SPAM_KEYWORD_WEIGHT = 20
REPUTATION_DEFICIT_RATE = 0.5

# Action thresholds, checked highest first
ACTION_THRESHOLDS: list[tuple[float, ModerationAction]] = [
    (80, ModerationAction.BLOCK),
    (60, ModerationAction.REVIEW),
    (40, ModerationAction.WARN),
]
SPAM_THRESHOLD = 40

MAX_CONFIDENCE = 100.0

_RUN_RE = re.compile(r"(.)\1+", re.DOTALL)
_CAPS_RE = re.compile(r"[A-Z]")


def longest_run(text: str) -> int:
    """Length of the longest run of one repeated character."""
    best = 1 if text else 0
    for match in _RUN_RE.finditer(text):
        best = max(best, len(match.group(0)))
    return best


def capital_ratio(text: str) -> float:
    """Share of ASCII capitals among all characters (0.0 for empty text)."""
    if not text:
        return 0.0
    return len(_CAPS_RE.findall(text)) / len(text)


def punctuation_burst(text: str, burst: int) -> bool:
    """True when *burst* or more ``!``/``?`` appear consecutively."""
    return re.search(r"[!?]{%d,}" % burst, text) is not None


def matched_keywords(text: str, keywords: list[str]) -> list[str]:
    """Distinct configured keywords present in *text* (case-insensitive)."""
    lowered = text.lower()
    seen: list[str] = []
    for kw in keywords:
        kw = kw.lower()
        if kw and kw in lowered and kw not in seen:
            seen.append(kw)
    return seen


def action_for(confidence: float) -> ModerationAction:
    for threshold, action in ACTION_THRESHOLDS:
        if confidence >= threshold:
            return action
    return ModerationAction.ALLOW


def score_content(
    text: str,
    reputation: int,
    config: AntiSpamConfig | None = None,
) -> SpamDecision:
    """Score *text* written by an actor with *reputation*.

    Pure function; the ledger supplies the reputation.
    """
    cfg = config or AntiSpamConfig()
    confidence = 0.0
    reasons: list[str] = []

    if len(text) < cfg.min_content_length:
        confidence += SHORT_CONTENT_WEIGHT
        reasons.append(f"Content too short ({len(text)} < {cfg.min_content_length})")
    elif len(text) > cfg.max_content_length:
        confidence += LONG_CONTENT_WEIGHT
        reasons.append(f"Content too long ({len(text)} > {cfg.max_content_length})")

    run = longest_run(text)
    if run > cfg.max_repeated_characters:
        confidence += REPEATED_CHARS_WEIGHT
        reasons.append(f"Repeated characters (run of {run})")

    ratio = capital_ratio(text)
    if ratio > cfg.max_capital_ratio:
        confidence += EXCESSIVE_CAPS_WEIGHT
        reasons.append(f"Excessive capitals ({ratio:.0%})")

    if punctuation_burst(text, cfg.punctuation_burst):
        confidence += PUNCTUATION_BURST_WEIGHT
        reasons.append("Punctuation burst")

    for kw in matched_keywords(text, cfg.spam_keywords):
        confidence += SPAM_KEYWORD_WEIGHT
        reasons.append(f"Spam keyword: {kw}")

    if reputation < cfg.content_reputation_floor:
        deficit = (cfg.content_reputation_floor - reputation) * REPUTATION_DEFICIT_RATE
        confidence += deficit
        reasons.append(f"Low reputation ({reputation})")

    confidence = min(confidence, MAX_CONFIDENCE)
    return SpamDecision(
        is_spam=confidence >= SPAM_THRESHOLD,
        confidence=confidence,
        reasons=reasons,
        action=action_for(confidence),
    )
