"""Reputation & rate-limit ledger.

Single source of truth for "may this actor do X right now?" and for
content-quality screening.  Tracks, per actor:

- activity counters and a capped, typed activity history
- a 0–100 reputation score (starts at 75; warnings cost 10, auto-actions 25)
- cooldown timestamps and an optional ban

Community reports live here as well: five pending reports against one
target trigger a single automatic 24-hour ban.

Policy rejections are returned as :class:`SpamDecision` /
:class:`ReportResult` values, never raised.  Callers that need an atomic
check-then-record sequence hold :meth:`ReputationLedger.actor_lock`
around both steps.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import Counter, defaultdict
from contextlib import AbstractContextManager

import structlog

from lubcore.antispam.content import score_content
from lubcore.antispam.types import (
    REPORT_TRANSITIONS,
    ActivityDetail,
    ActivityEvent,
    ActivityKind,
    ActorActivity,
    ChallengeCreated,
    CommunityReport,
    LedgerCleanupReport,
    LedgerGlobalStats,
    ModerationAction,
    ReportCategory,
    ReportFiled,
    ReportResult,
    ReportStatus,
    SpamDecision,
    UserStats,
    ViralDetected,
    WarningIssued,
)
from lubcore.config import AntiSpamConfig
from lubcore.errors import (
    InvalidInputError,
    InvalidReportTransitionError,
    ReportNotFoundError,
)
from lubcore.locking import StripedLock
from lubcore.persistence import memory_store_factory
from lubcore.types import KeyedStore, StoreFactory

logger = structlog.get_logger()

HOUR = 3600.0
DAY = 86400.0

# Confidence attached to each permission-check verdict
BAN_CONFIDENCE = 100
LOW_REPUTATION_CONFIDENCE = 90
RATE_LIMIT_CONFIDENCE = 95
COOLDOWN_CONFIDENCE = 80

MIN_REPUTATION = 0
MAX_REPUTATION = 100

AUTO_ACTION_REASON = "auto_action"


def _clamp_reputation(score: int) -> int:
    return max(MIN_REPUTATION, min(MAX_REPUTATION, score))


class ReputationLedger:
    """Per-actor reputation, rate limits, bans and community reports.

    Args:
        config: Anti-spam thresholds.  Defaults to :class:`AntiSpamConfig`.
        store_factory: Builds the ``actors`` and ``reports`` stores.
            Defaults to in-memory stores.
        locks: Lock pool for per-actor atomicity.  Share it with the
            services that call :meth:`actor_lock`.
    """

    def __init__(
        self,
        config: AntiSpamConfig | None = None,
        *,
        store_factory: StoreFactory | None = None,
        locks: StripedLock | None = None,
    ) -> None:
        self._config = config or AntiSpamConfig()
        factory = store_factory or memory_store_factory
        self._actors: KeyedStore[ActorActivity] = factory(
            "actors", ActorActivity.from_dict
        )
        self._reports: KeyedStore[CommunityReport] = factory(
            "reports", CommunityReport.from_dict
        )
        self._locks = locks or StripedLock()
        # Serializes report filing and moderation; always taken before
        # any actor lock.
        self._report_lock = threading.RLock()

    @property
    def config(self) -> AntiSpamConfig:
        return self._config

    def actor_lock(self, actor_id: int) -> AbstractContextManager[None]:
        """Context manager holding *actor_id*'s lock stripe."""
        return self._locks.hold(f"actor:{actor_id}")

    # --- Record access -----------------------------------------------------

    def _load(self, actor_id: int) -> ActorActivity:
        """Stored record, or a fresh default that is *not* stored."""
        record = self._actors.get(str(actor_id))
        if record is None:
            record = ActorActivity(
                actor_id=actor_id,
                reputation_score=self._config.initial_reputation,
            )
        return record

    def _save(self, record: ActorActivity) -> None:
        self._actors.put(str(record.actor_id), record)

    def get_actor(self, actor_id: int) -> ActorActivity | None:
        """Raw activity record, or ``None`` if the actor is untracked."""
        return self._actors.get(str(actor_id))

    # --- Permission checks -------------------------------------------------

    def can_create_challenge(
        self,
        actor_id: int,
        target_id: int,
        *,
        now: float | None = None,
    ) -> SpamDecision:
        """Decide whether *actor_id* may create a challenge right now.

        Checks run in order and stop at the first failure: ban,
        reputation, hourly limit, daily limit, cooldown.
        """
        if now is None:
            now = time.time()
        decision = self._challenge_decision(self._load(actor_id), now)
        if decision.is_spam:
            logger.info(
                "challenge_permission_denied",
                actor_id=actor_id,
                target_id=target_id,
                action=decision.action.value,
                reasons=decision.reasons,
            )
        return decision

    def _challenge_decision(self, actor: ActorActivity, now: float) -> SpamDecision:
        cfg = self._config
        if actor.is_banned(now):
            return SpamDecision(
                is_spam=True,
                confidence=BAN_CONFIDENCE,
                reasons=["Actor is banned"],
                action=ModerationAction.BLOCK,
                cooldown_until=actor.banned_until,
            )
        if actor.reputation_score < cfg.min_reputation_score:
            return SpamDecision(
                is_spam=True,
                confidence=LOW_REPUTATION_CONFIDENCE,
                reasons=[f"Low reputation score ({actor.reputation_score})"],
                action=ModerationAction.REVIEW,
            )
        if (
            hourly := actor.count_since(ActivityKind.CHALLENGE, now - HOUR)
        ) >= cfg.max_challenges_per_hour:
            return SpamDecision(
                is_spam=True,
                confidence=RATE_LIMIT_CONFIDENCE,
                reasons=[
                    f"Hourly challenge limit reached ({hourly}/"
                    f"{cfg.max_challenges_per_hour})"
                ],
                action=ModerationAction.BLOCK,
                cooldown_until=now + HOUR,
            )
        if (
            daily := actor.count_since(ActivityKind.CHALLENGE, now - DAY)
        ) >= cfg.max_challenges_per_day:
            return SpamDecision(
                is_spam=True,
                confidence=RATE_LIMIT_CONFIDENCE,
                reasons=[
                    f"Daily challenge limit reached ({daily}/"
                    f"{cfg.max_challenges_per_day})"
                ],
                action=ModerationAction.BLOCK,
                cooldown_until=now + DAY,
            )
        if (
            actor.last_challenge_at
            and now - actor.last_challenge_at < cfg.challenge_cooldown
        ):
            return SpamDecision(
                is_spam=True,
                confidence=COOLDOWN_CONFIDENCE,
                reasons=["Challenge cooldown active"],
                action=ModerationAction.WARN,
                cooldown_until=actor.last_challenge_at + cfg.challenge_cooldown,
            )
        return SpamDecision.allow()

    def validate_content_quality(self, text: str, actor_id: int) -> SpamDecision:
        """Score *text* for spam signals, weighted by the author's reputation."""
        actor = self._load(actor_id)
        decision = score_content(text, actor.reputation_score, self._config)
        if decision.is_spam:
            logger.info(
                "content_flagged",
                actor_id=actor_id,
                confidence=decision.confidence,
                action=decision.action.value,
            )
        return decision

    # --- Mutation ----------------------------------------------------------

    def record_activity(
        self,
        actor_id: int,
        detail: ActivityDetail,
        *,
        now: float | None = None,
    ) -> ActorActivity:
        """Append an activity event and update counters and reputation.

        No deduplication: recording the same detail twice counts twice.
        """
        if now is None:
            now = time.time()
        with self.actor_lock(actor_id):
            actor = self._load(actor_id)
            actor.activity_history.append(ActivityEvent(timestamp=now, detail=detail))

            match detail:
                case ChallengeCreated():
                    actor.challenges_created += 1
                    actor.last_challenge_at = now
                case ViralDetected():
                    actor.viral_detections += 1
                    actor.last_viral_detection_at = now
                case ReportFiled():
                    actor.reports_filed += 1
                    actor.last_report_at = now
                case WarningIssued():
                    actor.warnings += 1
                    actor.reputation_score = _clamp_reputation(
                        actor.reputation_score - detail.penalty
                    )
                    if detail.banned_until is not None:
                        actor.banned_until = max(
                            actor.banned_until or 0.0, detail.banned_until
                        )

            limit = self._config.history_limit
            if len(actor.activity_history) > limit:
                actor.activity_history = actor.activity_history[-limit:]

            self._save(actor)

        logger.debug(
            "activity_recorded",
            actor_id=actor_id,
            kind=detail.kind.value,
            reputation=actor.reputation_score,
        )
        return actor

    def issue_warning(
        self,
        actor_id: int,
        reason: str,
        detail: str = "",
        *,
        now: float | None = None,
    ) -> ActorActivity:
        """Moderator warning: costs ``warning_penalty`` reputation."""
        actor = self.record_activity(
            actor_id,
            WarningIssued(
                reason=reason,
                detail=detail,
                penalty=self._config.warning_penalty,
            ),
            now=now,
        )
        logger.info(
            "warning_issued",
            actor_id=actor_id,
            reason=reason,
            reputation=actor.reputation_score,
        )
        return actor

    def lift_ban(self, actor_id: int) -> bool:
        """Clear an actor's ban.  Returns ``True`` if one was set."""
        with self.actor_lock(actor_id):
            actor = self._actors.get(str(actor_id))
            if actor is None or actor.banned_until is None:
                return False
            actor.banned_until = None
            self._save(actor)
        logger.info("ban_lifted", actor_id=actor_id)
        return True

    # --- Community reports -------------------------------------------------

    def submit_report(
        self,
        reporter_id: int,
        target_id: int,
        category: ReportCategory | str,
        description: str,
        evidence: str | None = None,
        *,
        now: float | None = None,
    ) -> ReportResult:
        """File a community report against *target_id*.

        Fails (as a value) while the reporter is banned or within the
        report cooldown.  When the target reaches ``reports_for_auto_action``
        pending reports and is not already banned, a single automatic
        ban and reputation penalty is applied.
        """
        if now is None:
            now = time.time()
        cfg = self._config
        try:
            category = ReportCategory(category)
        except ValueError:
            raise InvalidInputError(f"Unknown report category: {category}") from None

        with self._report_lock, self.actor_lock(reporter_id):
            reporter = self._load(reporter_id)
            if reporter.is_banned(now):
                logger.info(
                    "report_rejected_banned",
                    reporter_id=reporter_id,
                    banned_until=reporter.banned_until,
                )
                return ReportResult(success=False, error="Reporter is banned")
            if (
                reporter.last_report_at
                and now - reporter.last_report_at < cfg.report_cooldown
            ):
                retry_at = reporter.last_report_at + cfg.report_cooldown
                logger.info(
                    "report_rejected_cooldown",
                    reporter_id=reporter_id,
                    retry_at=retry_at,
                )
                return ReportResult(
                    success=False,
                    error=(
                        "Report cooldown active; retry in"
                        f" {int(retry_at - now)} seconds"
                    ),
                )

            report = CommunityReport(
                report_id=f"report_{uuid.uuid4().hex[:12]}",
                reporter_id=reporter_id,
                target_id=target_id,
                category=category,
                description=description,
                timestamp=now,
                evidence=evidence,
            )
            self._reports.put(report.report_id, report)
            self.record_activity(
                reporter_id,
                ReportFiled(
                    report_id=report.report_id,
                    target_id=target_id,
                    category=category.value,
                ),
                now=now,
            )
            logger.info(
                "report_submitted",
                report_id=report.report_id,
                reporter_id=reporter_id,
                target_id=target_id,
                category=category.value,
            )

            auto_applied = self._maybe_auto_action(target_id, now)

        return ReportResult(
            success=True,
            report_id=report.report_id,
            auto_action_applied=auto_applied,
        )

    def _pending_against(self, target_id: int) -> list[CommunityReport]:
        return [
            r
            for _, r in self._reports.scan()
            if r.target_id == target_id and r.status is ReportStatus.PENDING
        ]

    def _maybe_auto_action(self, target_id: int, now: float) -> bool:
        cfg = self._config
        pending = len(self._pending_against(target_id))
        if pending < cfg.reports_for_auto_action:
            return False

        with self.actor_lock(target_id):
            target = self._load(target_id)
            if target.is_banned(now):
                return False
            banned_until = now + cfg.ban_duration_hours * HOUR
            self.record_activity(
                target_id,
                WarningIssued(
                    reason=AUTO_ACTION_REASON,
                    detail=f"{pending} pending community reports",
                    penalty=cfg.auto_action_penalty,
                    banned_until=banned_until,
                ),
                now=now,
            )
        logger.warning(
            "auto_action_applied",
            target_id=target_id,
            pending_reports=pending,
            banned_until=banned_until,
            penalty=cfg.auto_action_penalty,
        )
        return True

    def get_report(self, report_id: str) -> CommunityReport | None:
        return self._reports.get(report_id)

    def list_reports(
        self,
        *,
        status: ReportStatus | str | None = None,
        target_id: int | None = None,
    ) -> list[CommunityReport]:
        """Reports, oldest first, optionally filtered."""
        wanted = ReportStatus(status) if status is not None else None
        reports = [
            r
            for _, r in self._reports.scan()
            if (wanted is None or r.status is wanted)
            and (target_id is None or r.target_id == target_id)
        ]
        reports.sort(key=lambda r: r.timestamp)
        return reports

    def reports_for_review(
        self, *, threshold: int | None = None
    ) -> dict[int, list[CommunityReport]]:
        """Targets with at least *threshold* pending reports."""
        threshold = threshold or self._config.reports_for_review
        grouped: dict[int, list[CommunityReport]] = defaultdict(list)
        for report in self.list_reports(status=ReportStatus.PENDING):
            grouped[report.target_id].append(report)
        return {t: rs for t, rs in grouped.items() if len(rs) >= threshold}

    def review_report(
        self,
        report_id: str,
        status: ReportStatus | str,
        *,
        notes: str = "",
        now: float | None = None,
    ) -> CommunityReport:
        """Apply a moderation transition to a report.

        Raises:
            ReportNotFoundError: Unknown *report_id*.
            InvalidReportTransitionError: Transition not allowed from the
                report's current status.
        """
        if now is None:
            now = time.time()
        try:
            new_status = ReportStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown report status: {status}") from None

        with self._report_lock:
            report = self._reports.get(report_id)
            if report is None:
                raise ReportNotFoundError(f"Report not found: {report_id}")
            if new_status not in REPORT_TRANSITIONS[report.status]:
                raise InvalidReportTransitionError(
                    f"Cannot move report {report_id} from"
                    f" {report.status.value} to {new_status.value}"
                )
            updated = CommunityReport(
                report_id=report.report_id,
                reporter_id=report.reporter_id,
                target_id=report.target_id,
                category=report.category,
                description=report.description,
                timestamp=report.timestamp,
                status=new_status,
                evidence=report.evidence,
                moderator_notes=notes or report.moderator_notes,
                reviewed_at=now,
            )
            self._reports.put(report_id, updated)

        logger.info(
            "report_reviewed",
            report_id=report_id,
            old_status=report.status.value,
            new_status=new_status.value,
        )
        return updated

    # --- Read models -------------------------------------------------------

    def get_user_stats(self, actor_id: int, *, now: float | None = None) -> UserStats:
        """Read-only reputation and activity summary."""
        if now is None:
            now = time.time()
        actor = self._load(actor_id)
        decision = self._challenge_decision(actor, now)
        return UserStats(
            actor_id=actor_id,
            reputation_score=actor.reputation_score,
            challenges_created=actor.challenges_created,
            viral_detections=actor.viral_detections,
            reports_filed=actor.reports_filed,
            warnings=actor.warnings,
            is_banned=actor.is_banned(now),
            banned_until=actor.banned_until if actor.is_banned(now) else None,
            can_create_challenge=decision.allowed,
            next_challenge_allowed=decision.cooldown_until,
        )

    def get_global_stats(self, *, now: float | None = None) -> LedgerGlobalStats:
        if now is None:
            now = time.time()
        tracked = banned = challenges = 0
        for _, actor in self._actors.scan():
            tracked += 1
            challenges += actor.challenges_created
            if actor.is_banned(now):
                banned += 1
        by_status: Counter[str] = Counter(
            r.status.value for _, r in self._reports.scan()
        )
        return LedgerGlobalStats(
            actors_tracked=tracked,
            banned_actors=banned,
            total_challenges=challenges,
            total_reports=sum(by_status.values()),
            reports_by_status={s.value: by_status.get(s.value, 0) for s in ReportStatus},
        )

    # --- Maintenance -------------------------------------------------------

    def cleanup(self, *, now: float | None = None) -> LedgerCleanupReport:
        """Prune old history, clear expired bans, evict idle actors.

        Works actor by actor under each actor's lock, then removes
        resolved reports past retention.
        """
        if now is None:
            now = time.time()
        cfg = self._config
        history_cutoff = now - cfg.history_retention_days * DAY
        idle_cutoff = now - cfg.inactive_eviction_days * DAY
        pruned = bans_cleared = evicted = 0

        for key, _ in self._actors.scan():
            actor_id = int(key)
            with self.actor_lock(actor_id):
                actor = self._actors.get(key)
                if actor is None:
                    continue
                before = len(actor.activity_history)
                actor.activity_history = [
                    ev for ev in actor.activity_history if ev.timestamp >= history_cutoff
                ]
                pruned += before - len(actor.activity_history)

                if actor.banned_until is not None and actor.banned_until <= now:
                    actor.banned_until = None
                    bans_cleared += 1

                last_seen = max(
                    actor.last_challenge_at,
                    actor.last_viral_detection_at,
                    actor.last_report_at,
                )
                if (
                    not actor.activity_history
                    and actor.banned_until is None
                    and last_seen < idle_cutoff
                ):
                    self._actors.delete(key)
                    evicted += 1
                else:
                    self._save(actor)

        report_cutoff = now - cfg.resolved_report_retention_days * DAY
        removed = 0
        with self._report_lock:
            for report_id, report in self._reports.scan():
                if (
                    report.status is ReportStatus.RESOLVED
                    and report.timestamp < report_cutoff
                ):
                    self._reports.delete(report_id)
                    removed += 1

        result = LedgerCleanupReport(
            history_pruned=pruned,
            bans_cleared=bans_cleared,
            actors_evicted=evicted,
            reports_removed=removed,
        )
        logger.info(
            "ledger_cleanup",
            history_pruned=pruned,
            bans_cleared=bans_cleared,
            actors_evicted=evicted,
            reports_removed=removed,
        )
        return result
