"""Configuration management for LubCore.

Loads settings from ~/.lubcore/config.toml with environment variable overrides.
Every threshold the reward services use lives here so operators can tune
rate limits, penalties and reward weights without touching code.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from dataclasses import fields as dataclass_fields
from pathlib import Path

import structlog

from lubcore.errors import ConfigError

logger = structlog.get_logger()

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".lubcore"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.toml"


class StorageBackend:
    """Where service state lives.

    - ``memory``: process-lifetime dictionaries. Default for library use.
    - ``sqlite``: durable keyed records in ``<data_dir>/lubcore.db``.
    """

    MEMORY = "memory"
    SQLITE = "sqlite"

    ALL = frozenset({MEMORY, SQLITE})


@dataclass(frozen=True)
class NodeConfig:
    """Process-level settings."""

    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "info"
    storage: str = StorageBackend.MEMORY
    db_name: str = "lubcore.db"
    lock_stripes: int = 64


@dataclass(frozen=True)
class AntiSpamConfig:
    """Reputation ledger thresholds."""

    # Rate limiting (per actor)
    max_challenges_per_hour: int = 5
    max_challenges_per_day: int = 20

    # Cooldowns (seconds)
    challenge_cooldown: float = 300.0  # 5 minutes between challenges
    report_cooldown: float = 600.0  # 10 minutes between reports

    # Reputation
    initial_reputation: int = 75
    min_reputation_score: int = 50
    content_reputation_floor: int = 70
    warning_penalty: int = 10
    auto_action_penalty: int = 25
    ban_duration_hours: float = 24.0

    # Content quality
    min_content_length: int = 10
    max_content_length: int = 280
    max_repeated_characters: int = 4
    max_capital_ratio: float = 0.7
    punctuation_burst: int = 3
    spam_keywords: list[str] = field(
        default_factory=lambda: ["spam", "bot", "fake", "scam", "hack"]
    )

    # Community reporting
    reports_for_review: int = 3
    reports_for_auto_action: int = 5

    # Retention
    history_limit: int = 100
    history_retention_days: float = 7.0
    inactive_eviction_days: float = 30.0
    resolved_report_retention_days: float = 7.0


@dataclass(frozen=True)
class ViralConfig:
    """Viral mention detection and reward settings."""

    lub_mentions: list[str] = field(
        default_factory=lambda: ["$lub", "lub token", "#lub"]
    )
    challenge_keywords: list[str] = field(
        default_factory=lambda: ["challenge", "game", "lub match", "valentine"]
    )
    positive_words: list[str] = field(
        default_factory=lambda: ["love", "fun", "amazing", "cool", "awesome", "great"]
    )

    # Rate limiting
    cooldown: float = 300.0  # 5 minutes between detections
    max_detections_per_day: int = 3

    # Scoring
    detection_threshold: int = 30
    verification_threshold: float = 70.0

    # Rewards
    base_reward: float = 25.0
    whale_multiplier: float = 2.0
    whale_follower_threshold: int = 10_000
    speed_multiplier: float = 1.5
    speed_window_minutes: float = 60.0
    engagement_reward: int = 2

    # Retention
    max_detections: int = 1000
    counter_window_hours: float = 24.0


@dataclass(frozen=True)
class ChallengeConfig:
    """Challenge engine reward settings."""

    viral_bonus_ratio: float = 0.25
    speed_bonus_ratio: float = 0.5
    speed_window_ratio: float = 0.25
    fallback_type: str = "emoji_reply"
    history_page_size: int = 50


@dataclass(frozen=True)
class DistributionConfig:
    """Reward distribution collaborator settings."""

    webhook_url: str = ""
    timeout: float = 10.0
    token_symbol: str = "LUB"


@dataclass(frozen=True)
class Config:
    """Root configuration container."""

    node: NodeConfig = field(default_factory=NodeConfig)
    antispam: AntiSpamConfig = field(default_factory=AntiSpamConfig)
    viral: ViralConfig = field(default_factory=ViralConfig)
    challenges: ChallengeConfig = field(default_factory=ChallengeConfig)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)

    @property
    def db_path(self) -> Path:
        """Location of the SQLite record store."""
        return self.node.data_dir / self.node.db_name


ENV_PREFIX = "LUBCORE"

# Numeric settings are clamped into these bounds
_BOUNDS: dict[str, tuple[float, float]] = {
    "lock_stripes": (1, 4096),
    "max_challenges_per_hour": (1, 1000),
    "max_challenges_per_day": (1, 10000),
    "challenge_cooldown": (0.0, 86400.0),
    "report_cooldown": (0.0, 86400.0),
    "initial_reputation": (0, 100),
    "min_reputation_score": (0, 100),
    "content_reputation_floor": (0, 100),
    "warning_penalty": (0, 100),
    "auto_action_penalty": (0, 100),
    "ban_duration_hours": (0.0, 8760.0),
    "min_content_length": (0, 10000),
    "max_content_length": (1, 100000),
    "max_repeated_characters": (1, 100),
    "max_capital_ratio": (0.0, 1.0),
    "punctuation_burst": (2, 100),
    "reports_for_review": (1, 1000),
    "reports_for_auto_action": (1, 1000),
    "history_limit": (1, 100000),
    "cooldown": (0.0, 86400.0),
    "max_detections_per_day": (1, 10000),
    "detection_threshold": (0, 100),
    "verification_threshold": (0.0, 100.0),
    "max_detections": (1, 10_000_000),
    "viral_bonus_ratio": (0.0, 10.0),
    "speed_bonus_ratio": (0.0, 10.0),
    "speed_window_ratio": (0.0, 1.0),
    "timeout": (0.1, 600.0),
}

# String settings restricted to a fixed vocabulary
_CHOICES: dict[str, frozenset[str]] = {
    "log_level": frozenset({"debug", "info", "warning", "error", "critical"}),
    "storage": StorageBackend.ALL,
}


def env_var_name(section: str, key: str) -> str:
    """``LUBCORE_<SECTION>_<KEY>``, the variable that overrides one setting."""
    return f"{ENV_PREFIX}_{section}_{key}".upper()


def _parse_env(text: str, default: object) -> object:
    """Parse an environment string into the shape of *default*."""
    match default:
        case bool():
            return text.strip().lower() in {"1", "true", "yes", "on"}
        case int():
            return int(text)
        case float():
            return float(text)
        case Path():
            return Path(text)
        case list():
            return [part.strip() for part in text.split(",") if part.strip()]
        case _:
            return text


def _normalize(value: object, default: object) -> object:
    match default:
        case Path():
            return Path(str(value)).expanduser()
        case float() if isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        case _:
            return value


def _checked(section: str, key: str, value: object, default: object) -> object:
    """Return *value* clamped or replaced so it satisfies the setting's rules."""
    if key in _CHOICES and isinstance(value, str):
        if value.lower() not in _CHOICES[key]:
            logger.warning(
                "config_invalid_value",
                section=section,
                key=key,
                value=value,
                allowed=sorted(_CHOICES[key]),
            )
            return default
        return value.lower()

    bounds = _BOUNDS.get(key)
    if bounds and isinstance(value, int | float) and not isinstance(value, bool):
        lo, hi = bounds
        clamped = min(max(value, lo), hi)
        if clamped != value:
            logger.warning(
                "config_value_out_of_range",
                section=section,
                key=key,
                value=value,
                min=lo,
                max=hi,
            )
            return type(default)(clamped)
    return value


def _section_from[T](cls: type[T], name: str, table: dict[str, object]) -> T:
    """Instantiate one section dataclass from its TOML table and the env."""
    defaults = cls()
    values: dict[str, object] = {}
    for f in dataclass_fields(cls):  # type: ignore[arg-type]
        default = getattr(defaults, f.name)
        value = table.get(f.name)
        env_text = os.environ.get(env_var_name(name, f.name))
        if env_text is not None:
            value = _parse_env(env_text, default)
        if value is None:
            continue
        values[f.name] = _checked(name, f.name, _normalize(value, default), default)
    return cls(**values)


def _read_toml(path: Path) -> dict[str, object]:
    if not path.exists():
        logger.info("config_default", path=str(path), reason="file not found")
        return {}
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    logger.info("config_loaded", path=str(path), sections=sorted(data))
    return data


def load_config(config_path: Path | None = None) -> Config:
    """Build a :class:`Config` from defaults, the TOML file and the environment.

    Environment variables win over the file, which wins over the
    dataclass defaults.  Out-of-range numbers are clamped and unknown
    choices fall back to the default; both are logged, neither raises.

    Raises:
        ConfigError: The file exists but is not valid TOML.

    Args:
        config_path: TOML file to read.  Defaults to ~/.lubcore/config.toml.
    """
    data = _read_toml(config_path or DEFAULT_CONFIG_PATH)
    defaults = Config()
    sections: dict[str, object] = {}
    for section in dataclass_fields(Config):
        table = data.get(section.name, {})
        if not isinstance(table, dict):
            logger.warning("config_section_ignored", section=section.name)
            table = {}
        cls = type(getattr(defaults, section.name))
        sections[section.name] = _section_from(cls, section.name, table)
    return Config(**sections)  # type: ignore[arg-type]
