"""Anti-spam types, enums and dataclasses.

Shared definitions for the reputation & rate-limit ledger.  The ledger
module focuses on policy and mutation; this module owns the *data model*.

Activity history entries carry a closed set of detail variants — one
frozen dataclass per activity kind — instead of an open payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

# --- Moderation verdicts ---------------------------------------------------


class ModerationAction(StrEnum):
    """Recommended action attached to every policy decision."""

    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"
    REVIEW = "review"


@dataclass(frozen=True)
class SpamDecision:
    """Outcome of a permission check or content screening."""

    is_spam: bool
    confidence: float  # 0 – 100
    reasons: list[str]
    action: ModerationAction
    cooldown_until: float | None = None

    @property
    def allowed(self) -> bool:
        return self.action is ModerationAction.ALLOW

    @classmethod
    def allow(cls) -> SpamDecision:
        return cls(is_spam=False, confidence=0, reasons=[], action=ModerationAction.ALLOW)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_spam": self.is_spam,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "action": self.action.value,
            "cooldown_until": self.cooldown_until,
        }


# --- Activity variants -----------------------------------------------------


class ActivityKind(StrEnum):
    """Kinds of rate-limited activity tracked per actor."""

    CHALLENGE = "challenge"
    VIRAL = "viral"
    REPORT = "report"
    WARNING = "warning"


@dataclass(frozen=True)
class ChallengeCreated:
    """The actor created a challenge."""

    kind: ClassVar[ActivityKind] = ActivityKind.CHALLENGE

    challenge_id: str
    target_id: int
    difficulty: str
    whale_multiplier: float


@dataclass(frozen=True)
class ViralDetected:
    """A viral mention by the actor was detected."""

    kind: ClassVar[ActivityKind] = ActivityKind.VIRAL

    detection_id: str
    challenge_id: str
    detection_type: str
    confidence: float
    reward: int


@dataclass(frozen=True)
class ReportFiled:
    """The actor filed a community report."""

    kind: ClassVar[ActivityKind] = ActivityKind.REPORT

    report_id: str
    target_id: int
    category: str


@dataclass(frozen=True)
class WarningIssued:
    """The actor received a warning (manual or automatic)."""

    kind: ClassVar[ActivityKind] = ActivityKind.WARNING

    reason: str
    detail: str = ""
    penalty: int = 10
    banned_until: float | None = None


type ActivityDetail = ChallengeCreated | ViralDetected | ReportFiled | WarningIssued

_DETAIL_TYPES: dict[ActivityKind, type[ActivityDetail]] = {
    ActivityKind.CHALLENGE: ChallengeCreated,
    ActivityKind.VIRAL: ViralDetected,
    ActivityKind.REPORT: ReportFiled,
    ActivityKind.WARNING: WarningIssued,
}


@dataclass(frozen=True)
class ActivityEvent:
    """Single timestamped entry in an actor's activity history."""

    timestamp: float
    detail: ActivityDetail

    @property
    def kind(self) -> ActivityKind:
        return self.detail.kind

    def to_dict(self) -> dict[str, Any]:
        payload = dict(vars(self.detail))
        return {"kind": self.kind.value, "timestamp": self.timestamp, **payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityEvent:
        fields_ = dict(data)
        kind = ActivityKind(fields_.pop("kind"))
        timestamp = float(fields_.pop("timestamp"))
        detail = _DETAIL_TYPES[kind](**fields_)
        return cls(timestamp=timestamp, detail=detail)


# --- Actor record ----------------------------------------------------------


@dataclass
class ActorActivity:
    """Per-actor counters, reputation, ban state and history."""

    actor_id: int
    reputation_score: int = 75
    challenges_created: int = 0
    viral_detections: int = 0
    reports_filed: int = 0
    warnings: int = 0
    last_challenge_at: float = 0.0
    last_viral_detection_at: float = 0.0
    last_report_at: float = 0.0
    banned_until: float | None = None
    activity_history: list[ActivityEvent] = field(default_factory=list)

    def is_banned(self, now: float) -> bool:
        return self.banned_until is not None and self.banned_until > now

    def count_since(self, kind: ActivityKind, cutoff: float) -> int:
        """Count events of *kind* strictly newer than *cutoff*."""
        return sum(
            1
            for ev in self.activity_history
            if ev.kind is kind and ev.timestamp > cutoff
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "reputation_score": self.reputation_score,
            "challenges_created": self.challenges_created,
            "viral_detections": self.viral_detections,
            "reports_filed": self.reports_filed,
            "warnings": self.warnings,
            "last_challenge_at": self.last_challenge_at,
            "last_viral_detection_at": self.last_viral_detection_at,
            "last_report_at": self.last_report_at,
            "banned_until": self.banned_until,
            "activity_history": [ev.to_dict() for ev in self.activity_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActorActivity:
        return cls(
            actor_id=int(data["actor_id"]),
            reputation_score=int(data["reputation_score"]),
            challenges_created=int(data["challenges_created"]),
            viral_detections=int(data["viral_detections"]),
            reports_filed=int(data["reports_filed"]),
            warnings=int(data["warnings"]),
            last_challenge_at=float(data["last_challenge_at"]),
            last_viral_detection_at=float(data["last_viral_detection_at"]),
            last_report_at=float(data["last_report_at"]),
            banned_until=data.get("banned_until"),
            activity_history=[
                ActivityEvent.from_dict(ev) for ev in data["activity_history"]
            ],
        )


# --- Community reports -----------------------------------------------------


class ReportCategory(StrEnum):
    """What a community report alleges."""

    SPAM = "spam"
    ABUSE = "abuse"
    FAKE = "fake"
    INAPPROPRIATE = "inappropriate"


class ReportStatus(StrEnum):
    """Moderation lifecycle of a report."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# Allowed moderation transitions
REPORT_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset(
        {ReportStatus.REVIEWED, ReportStatus.RESOLVED, ReportStatus.DISMISSED}
    ),
    ReportStatus.REVIEWED: frozenset({ReportStatus.RESOLVED, ReportStatus.DISMISSED}),
    ReportStatus.RESOLVED: frozenset(),
    ReportStatus.DISMISSED: frozenset(),
}


@dataclass(frozen=True)
class CommunityReport:
    """A report filed by one actor against another."""

    report_id: str
    reporter_id: int
    target_id: int
    category: ReportCategory
    description: str
    timestamp: float
    status: ReportStatus = ReportStatus.PENDING
    evidence: str | None = None
    moderator_notes: str = ""
    reviewed_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "reporter_id": self.reporter_id,
            "target_id": self.target_id,
            "category": self.category.value,
            "description": self.description,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "evidence": self.evidence,
            "moderator_notes": self.moderator_notes,
            "reviewed_at": self.reviewed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommunityReport:
        return cls(
            report_id=str(data["report_id"]),
            reporter_id=int(data["reporter_id"]),
            target_id=int(data["target_id"]),
            category=ReportCategory(data["category"]),
            description=str(data["description"]),
            timestamp=float(data["timestamp"]),
            status=ReportStatus(data["status"]),
            evidence=data.get("evidence"),
            moderator_notes=str(data.get("moderator_notes", "")),
            reviewed_at=data.get("reviewed_at"),
        )


@dataclass(frozen=True)
class ReportResult:
    """Result of :meth:`ReputationLedger.submit_report`."""

    success: bool
    report_id: str | None = None
    error: str | None = None
    auto_action_applied: bool = False


# --- Read models -----------------------------------------------------------


@dataclass(frozen=True)
class UserStats:
    """Read-only reputation & activity summary for one actor."""

    actor_id: int
    reputation_score: int
    challenges_created: int
    viral_detections: int
    reports_filed: int
    warnings: int
    is_banned: bool
    banned_until: float | None
    can_create_challenge: bool
    next_challenge_allowed: float | None


@dataclass(frozen=True)
class LedgerGlobalStats:
    """Aggregate view over every tracked actor and report."""

    actors_tracked: int
    banned_actors: int
    total_challenges: int
    total_reports: int
    reports_by_status: dict[str, int]


@dataclass(frozen=True)
class LedgerCleanupReport:
    """What a ledger cleanup pass removed."""

    history_pruned: int
    bans_cleared: int
    actors_evicted: int
    reports_removed: int
