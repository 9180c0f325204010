"""Viral signal analysis for post text.

Two independent signal families decide the detection type:

- token mentions (``$lub``, ``lub token``, ``#lub``) → +40, ``lub_mention``
- challenge keywords (``challenge``, ``game``, ...) → +30,
  ``challenge_reference`` unless already a token mention

Softer signals add on top: +5 per distinct positive word and +3 per
emoji (at most +15).  Confidence is capped at 100; a post is detected
when it reaches the detection threshold.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lubcore.config import ViralConfig
from lubcore.viral.types import DetectionType

LUB_MENTION_WEIGHT = 40
CHALLENGE_KEYWORD_WEIGHT = 30
POSITIVE_WORD_WEIGHT = 5
EMOJI_WEIGHT = 3
MAX_EMOJI_BONUS = 15
MAX_CONFIDENCE = 100

EMOJI_RE = re.compile(
    "["
    "\U0001f600-\U0001f64f"  # emoticons
    "\U0001f300-\U0001f5ff"  # symbols & pictographs
    "\U0001f680-\U0001f6ff"  # transport & map
    "\U0001f1e0-\U0001f1ff"  # flags
    "\u2600-\u26ff"  # misc symbols
    "\u2700-\u27bf"  # dingbats
    "]"
)


@dataclass(frozen=True)
class PatternAnalysis:
    """Result of scanning one post."""

    detected: bool
    detection_type: DetectionType
    confidence: int
    signals: list[str]


def _matches(lowered: str, terms: list[str]) -> list[str]:
    return [t for t in dict.fromkeys(t.lower() for t in terms) if t and t in lowered]


def count_emoji(text: str) -> int:
    return len(EMOJI_RE.findall(text))


def analyze_viral_patterns(
    content: str, config: ViralConfig | None = None
) -> PatternAnalysis:
    """Score *content* for viral signals."""
    cfg = config or ViralConfig()
    lowered = content.lower()
    confidence = 0
    detection_type = DetectionType.ORGANIC_SHARE
    signals: list[str] = []

    if mentions := _matches(lowered, cfg.lub_mentions):
        confidence += LUB_MENTION_WEIGHT
        detection_type = DetectionType.LUB_MENTION
        signals.extend(f"mention:{m}" for m in mentions)

    if keywords := _matches(lowered, cfg.challenge_keywords):
        confidence += CHALLENGE_KEYWORD_WEIGHT
        if detection_type is DetectionType.ORGANIC_SHARE:
            detection_type = DetectionType.CHALLENGE_REFERENCE
        signals.extend(f"keyword:{k}" for k in keywords)

    positives = _matches(lowered, cfg.positive_words)
    confidence += len(positives) * POSITIVE_WORD_WEIGHT
    signals.extend(f"positive:{p}" for p in positives)

    emoji = count_emoji(content)
    if emoji:
        confidence += min(emoji * EMOJI_WEIGHT, MAX_EMOJI_BONUS)
        signals.append(f"emoji:{emoji}")

    confidence = min(confidence, MAX_CONFIDENCE)
    return PatternAnalysis(
        detected=confidence >= cfg.detection_threshold,
        detection_type=detection_type,
        confidence=confidence,
        signals=signals,
    )
