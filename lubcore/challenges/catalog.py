"""Static challenge catalog and prompt rendering.

Templates are ordered from lowest to highest friction.  The catalog is
immutable once loaded; engines read it through :func:`load_catalog`.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from lubcore.challenges.types import ChallengeCategory, ChallengeType, Difficulty
from lubcore.social import WHALE_TIERS, InfluenceTier, SocialActor

CHALLENGE_TYPES: tuple[ChallengeType, ...] = (
    # Easy interaction
    ChallengeType(
        id="emoji_reply",
        name="Emoji Response",
        description="Get target to reply with specific emoji",
        category=ChallengeCategory.INTERACTION,
        min_followers=0,
        base_reward=50,
        time_limit=60,
        success_criteria=("Target replies with specified emoji",),
        examples=("Get them to reply with 💝", "Make them use 🚀 in response"),
    ),
    ChallengeType(
        id="keyword_mention",
        name="Keyword Drop",
        description="Get target to mention specific word",
        category=ChallengeCategory.INTERACTION,
        min_followers=0,
        base_reward=75,
        time_limit=120,
        success_criteria=("Target mentions specified keyword",),
        examples=('Get them to say "love"', 'Make them mention "blockchain"'),
    ),
    # Medium engagement
    ChallengeType(
        id="recast_content",
        name="Recast Master",
        description="Get target to recast your content",
        category=ChallengeCategory.CONTENT,
        min_followers=100,
        base_reward=200,
        time_limit=180,
        success_criteria=("Target recasts your cast",),
        examples=(
            "Share something they'll want to recast",
            "Create viral-worthy content",
        ),
    ),
    ChallengeType(
        id="original_cast",
        name="Content Creator",
        description="Inspire target to create original cast about topic",
        category=ChallengeCategory.CONTENT,
        min_followers=500,
        base_reward=300,
        time_limit=240,
        success_criteria=("Target creates original cast on specified topic",),
        examples=(
            "Get them to cast about Valentine's Day",
            "Inspire a thread about love",
        ),
    ),
    # Hard viral
    ChallengeType(
        id="lub_mention",
        name="LUB Viral",
        description="Get target to mention $LUB token",
        category=ChallengeCategory.VIRAL,
        min_followers=1000,
        base_reward=500,
        time_limit=360,
        success_criteria=("Target mentions $LUB in a cast",),
        examples=("Get them curious about $LUB", "Make them ask about the token"),
    ),
    ChallengeType(
        id="thread_creation",
        name="Thread Master",
        description="Get target to create thread about topic",
        category=ChallengeCategory.CONTENT,
        min_followers=2000,
        base_reward=750,
        time_limit=480,
        success_criteria=("Target creates multi-cast thread",),
        examples=(
            "Inspire a love story thread",
            "Get them to share relationship advice",
        ),
    ),
    # Whale-specific
    ChallengeType(
        id="whale_attention",
        name="Whale Whisperer",
        description="Simply get whale to acknowledge you exist",
        category=ChallengeCategory.WHALE_SPECIFIC,
        min_followers=10_000,
        base_reward=1000,
        time_limit=720,
        success_criteria=("Any response from whale",),
        examples=("Get @vitalik to notice you", "Make @dwr respond to anything"),
    ),
    ChallengeType(
        id="mega_whale_interaction",
        name="Leviathan Contact",
        description="Achieve meaningful interaction with mega whale",
        category=ChallengeCategory.WHALE_SPECIFIC,
        min_followers=50_000,
        base_reward=2500,
        time_limit=1440,
        success_criteria=("Substantive response from mega whale",),
        examples=(
            "Get detailed reply from major influencer",
            "Start conversation with protocol founder",
        ),
    ),
)


def load_catalog(
    types: tuple[ChallengeType, ...] = CHALLENGE_TYPES,
) -> Mapping[str, ChallengeType]:
    """Read-only id → template mapping."""
    return MappingProxyType({t.id: t for t in types})


# --- Strategy tips ---------------------------------------------------------

WHALE_TIP = "Whales get hundreds of mentions daily. Be genuinely interesting, not spammy."
VIRAL_TIP = "Create curiosity without being obvious. Let them discover $LUB naturally."
CONTENT_TIP = (
    "Share something valuable first. People recast content that makes them look good."
)
DEFAULT_TIP = (
    "Be authentic and engaging. Build genuine connection before asking for anything."
)


def strategy_tip(challenge_type: ChallengeType, tier: InfluenceTier) -> str:
    if tier in WHALE_TIERS:
        return WHALE_TIP
    if challenge_type.category is ChallengeCategory.VIRAL:
        return VIRAL_TIP
    if challenge_type.category is ChallengeCategory.CONTENT:
        return CONTENT_TIP
    return DEFAULT_TIP


def render_prompt(
    challenge_type: ChallengeType,
    target: SocialActor,
    difficulty: Difficulty,
    example: str,
) -> str:
    """Challenge prompt: the example, target context and a strategy tip."""
    return (
        f"Challenge: {example}\n\n"
        f"Target: @{target.username} ({target.follower_count} followers)\n"
        f"Difficulty: {difficulty.value}\n"
        f"Time Limit: {challenge_type.time_limit} minutes\n\n"
        f"Success Criteria: {', '.join(challenge_type.success_criteria)}\n\n"
        f"Tip: {strategy_tip(challenge_type, target.tier)}"
    )
