"""Tests for community reports and automatic moderation."""

from __future__ import annotations

import pytest

from lubcore.antispam.ledger import ReputationLedger
from lubcore.antispam.types import ReportCategory, ReportStatus, WarningIssued
from lubcore.errors import (
    InvalidInputError,
    InvalidReportTransitionError,
    ReportNotFoundError,
)

DAY = 86400.0
TARGET = 900


def _report(ledger: ReputationLedger, reporter: int, now: float, **kw):
    return ledger.submit_report(
        reporter, kw.pop("target", TARGET), kw.pop("category", "spam"), "spammy", now=now
    )


class TestSubmitReport:
    def test_success(self, ledger: ReputationLedger, now: float) -> None:
        result = ledger.submit_report(
            1, TARGET, ReportCategory.ABUSE, "rude replies", "cast/abc", now=now
        )
        assert result.success
        assert result.report_id is not None
        assert result.report_id.startswith("report_")
        assert not result.auto_action_applied

        report = ledger.get_report(result.report_id)
        assert report is not None
        assert report.status is ReportStatus.PENDING
        assert report.category is ReportCategory.ABUSE
        assert report.evidence == "cast/abc"

        reporter = ledger.get_actor(1)
        assert reporter is not None
        assert reporter.reports_filed == 1
        assert reporter.last_report_at == now

    def test_unknown_category(self, ledger: ReputationLedger, now: float) -> None:
        with pytest.raises(InvalidInputError):
            ledger.submit_report(1, TARGET, "rudeness", "x", now=now)

    def test_cooldown(self, ledger: ReputationLedger, now: float) -> None:
        assert _report(ledger, 1, now).success
        result = _report(ledger, 1, now + 60, target=901)
        assert not result.success
        assert result.report_id is None
        assert result.error is not None
        assert "cooldown" in result.error
        assert len(ledger.list_reports()) == 1

    def test_cooldown_elapsed(self, ledger: ReputationLedger, now: float) -> None:
        assert _report(ledger, 1, now).success
        assert _report(ledger, 1, now + 600, target=901).success

    def test_banned_reporter_rejected(self, ledger: ReputationLedger, now: float) -> None:
        ledger.record_activity(
            1, WarningIssued(reason="manual", penalty=0, banned_until=now + DAY), now=now
        )
        result = _report(ledger, 1, now + 10)
        assert not result.success
        assert result.report_id is None
        assert result.error == "Reporter is banned"
        assert ledger.list_reports() == []
        reporter = ledger.get_actor(1)
        assert reporter is not None
        assert reporter.reports_filed == 0

        assert _report(ledger, 1, now + DAY + 1).success


class TestAutoAction:
    def test_fifth_report_bans_once(self, ledger: ReputationLedger, now: float) -> None:
        results = [_report(ledger, reporter, now + reporter) for reporter in range(1, 8)]
        assert [r.auto_action_applied for r in results] == [
            False,
            False,
            False,
            False,
            True,
            False,
            False,
        ]
        target = ledger.get_actor(TARGET)
        assert target is not None
        assert target.reputation_score == 50
        assert target.warnings == 1
        assert target.banned_until == now + 5 + DAY
        warnings = [
            ev.detail
            for ev in target.activity_history
            if isinstance(ev.detail, WarningIssued)
        ]
        assert len(warnings) == 1
        assert warnings[0].reason == "auto_action"

    def test_banned_target_cannot_create(
        self, ledger: ReputationLedger, now: float
    ) -> None:
        for reporter in range(1, 6):
            _report(ledger, reporter, now)
        decision = ledger.can_create_challenge(TARGET, 1, now=now + 60)
        assert decision.is_spam
        assert decision.confidence == 100

    def test_rebans_after_expiry(self, ledger: ReputationLedger, now: float) -> None:
        for reporter in range(1, 6):
            _report(ledger, reporter, now)
        later = now + 2 * DAY
        assert _report(ledger, 6, later).auto_action_applied
        target = ledger.get_actor(TARGET)
        assert target is not None
        assert target.warnings == 2
        assert target.banned_until == later + DAY


class TestReview:
    def test_transitions(self, ledger: ReputationLedger, now: float) -> None:
        report_id = _report(ledger, 1, now).report_id
        assert report_id is not None

        reviewed = ledger.review_report(
            report_id, ReportStatus.REVIEWED, notes="looking", now=now + 10
        )
        assert reviewed.status is ReportStatus.REVIEWED
        assert reviewed.moderator_notes == "looking"
        assert reviewed.reviewed_at == now + 10

        resolved = ledger.review_report(report_id, "resolved", now=now + 20)
        assert resolved.status is ReportStatus.RESOLVED
        assert resolved.moderator_notes == "looking"

        with pytest.raises(InvalidReportTransitionError):
            ledger.review_report(report_id, "dismissed", now=now + 30)

    def test_not_found(self, ledger: ReputationLedger, now: float) -> None:
        with pytest.raises(ReportNotFoundError):
            ledger.review_report("report_missing", "resolved", now=now)

    def test_unknown_status(self, ledger: ReputationLedger, now: float) -> None:
        report_id = _report(ledger, 1, now).report_id
        assert report_id is not None
        with pytest.raises(InvalidInputError):
            ledger.review_report(report_id, "archived", now=now)

    def test_reviewed_reports_do_not_count_toward_auto_action(
        self, ledger: ReputationLedger, now: float
    ) -> None:
        first = _report(ledger, 1, now).report_id
        assert first is not None
        ledger.review_report(first, "dismissed", now=now)
        results = [_report(ledger, r, now) for r in range(2, 6)]
        assert not any(r.auto_action_applied for r in results)
        assert ledger.get_actor(TARGET) is None


class TestQueries:
    def test_list_filters(self, ledger: ReputationLedger, now: float) -> None:
        _report(ledger, 1, now, target=10)
        _report(ledger, 2, now + 1, target=11)
        _report(ledger, 3, now + 2, target=10)
        assert [r.reporter_id for r in ledger.list_reports(target_id=10)] == [1, 3]
        assert len(ledger.list_reports(status="pending")) == 3
        assert ledger.list_reports(status=ReportStatus.RESOLVED) == []

    def test_reports_for_review(self, ledger: ReputationLedger, now: float) -> None:
        for reporter in range(1, 4):
            _report(ledger, reporter, now, target=10)
        _report(ledger, 4, now, target=11)
        queue = ledger.reports_for_review()
        assert list(queue) == [10]
        assert len(queue[10]) == 3
        assert set(ledger.reports_for_review(threshold=1)) == {10, 11}

    def test_global_stats(self, ledger: ReputationLedger, now: float) -> None:
        for reporter in range(1, 6):
            _report(ledger, reporter, now)
        stats = ledger.get_global_stats(now=now + 1)
        assert stats.actors_tracked == 6
        assert stats.banned_actors == 1
        assert stats.total_reports == 5
        assert stats.reports_by_status["pending"] == 5
        assert stats.reports_by_status["resolved"] == 0


class TestReportCleanup:
    def test_removes_old_resolved_only(
        self, ledger: ReputationLedger, now: float
    ) -> None:
        old = now - 8 * DAY
        resolved = _report(ledger, 1, old).report_id
        dismissed = _report(ledger, 2, old).report_id
        fresh = _report(ledger, 3, now - DAY).report_id
        assert resolved and dismissed and fresh
        ledger.review_report(resolved, "resolved", now=old)
        ledger.review_report(dismissed, "dismissed", now=old)
        ledger.review_report(fresh, "resolved", now=now)

        report = ledger.cleanup(now=now)
        assert report.reports_removed == 1
        assert ledger.get_report(resolved) is None
        assert ledger.get_report(dismissed) is not None
        assert ledger.get_report(fresh) is not None
