"""Tests for revenue health scoring."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from linkguard.services.audit_store import IssueRecord, LinkHealthRecord
from linkguard.services.health_scorer import HealthScorer

OWNER = uuid.uuid4()
RUN = uuid.uuid4()


def link(url: str, score: int = 100, broken: bool = False, stock_out: bool = False) -> LinkHealthRecord:
    return LinkHealthRecord(
        owner_id=OWNER, link_url=url, health_score=score, is_broken=broken, is_stock_out=stock_out,
    )


def issue(severity: str, impact: float = 0, status: str = "open", title: str = "Issue") -> IssueRecord:
    return IssueRecord(
        owner_id=OWNER,
        audit_run_id=RUN,
        link_health_id=uuid.uuid4(),
        issue_type="broken_link",
        severity=severity,
        revenue_impact_estimate=impact,
        confidence_score=100,
        title=title,
        status=status,
    )


@pytest.fixture
def scorer():
    return HealthScorer()


class TestCalculate:

    def test_no_links_is_perfect(self, scorer):
        assert scorer.calculate([], []).overall_score == 100

    def test_all_healthy(self, scorer):
        breakdown = scorer.calculate([link("a"), link("b")], [])
        assert breakdown.overall_score == 100
        assert breakdown.healthy_links == 2

    def test_formula(self, scorer):
        """Should combine healthy share, critical penalty and broken penalty."""
        links = [link("a"), link("b", score=0, broken=True)]
        issues = [issue("critical", impact=50)]

        breakdown = scorer.calculate(links, issues)

        # 1/2 * 50 + (30 - 10) + (20 - 5)
        assert breakdown.overall_score == 60
        assert breakdown.critical_issues_penalty == 10
        assert breakdown.broken_links_penalty == 5
        assert breakdown.estimated_monthly_loss == 50

    def test_penalties_are_capped(self, scorer):
        links = [link(str(i), score=0, broken=True) for i in range(10)]
        issues = [issue("critical") for _ in range(10)]

        breakdown = scorer.calculate(links, issues)

        assert breakdown.critical_issues_penalty == 30
        assert breakdown.broken_links_penalty == 20
        assert breakdown.overall_score == 0

    def test_low_scoring_link_is_not_healthy(self, scorer):
        breakdown = scorer.calculate([link("a", score=60)], [])
        assert breakdown.healthy_links == 0
        assert breakdown.untagged_links == 1
        assert breakdown.overall_score == 50

    def test_resolved_issues_are_ignored(self, scorer):
        breakdown = scorer.calculate([link("a")], [issue("critical", status="resolved")])
        assert breakdown.critical_issues == 0
        assert breakdown.overall_score == 100

    @pytest.mark.parametrize("previous, trend", [(40, "improving"), (98, "stable"), (100.5, "stable"), (120, "declining")])
    def test_trend(self, scorer, previous, trend):
        breakdown = scorer.calculate([link("a")], [], previous_score=previous)
        assert breakdown.trend == trend

    def test_loss_falls_back_to_link_counts(self, scorer):
        """Should estimate $50 per broken and $30 per stock-out link without issue estimates."""
        links = [link("a", score=0, broken=True), link("b", score=20, stock_out=True)]
        assert scorer.calculate(links, []).estimated_monthly_loss == 80


class TestHelpers:

    def test_top_issues_ordered_by_impact(self, scorer):
        issues = [
            issue("info", impact=5, title="redirects"),
            issue("critical", impact=50, title="broken"),
            issue("warning", impact=20, title="tag"),
            issue("critical", impact=99, status="resolved", title="old"),
        ]
        assert [i.title for i in scorer.top_issues(issues, limit=2)] == ["broken", "tag"]

    @pytest.mark.parametrize("score, badge", [(95, "Healthy"), (80, "Healthy"), (65, "Needs Attention"), (10, "Critical")])
    def test_score_badge(self, scorer, score, badge):
        assert scorer.score_badge(score) == badge

    def test_analyze_trend(self, scorer):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        history = [(start + timedelta(days=14), 80.0), (start, 60.0)]

        trend = scorer.analyze_trend(history)

        assert trend.direction == "improving"
        assert trend.velocity == 10.0
        assert trend.forecast_30_days == 100.0

    def test_analyze_trend_single_point(self, scorer):
        trend = scorer.analyze_trend([(datetime.now(timezone.utc), 72.0)])
        assert trend.direction == "stable"
        assert trend.forecast_30_days == 72.0
