"""Revenue health scoring: one 0-100 score across an owner's links.

score = healthy-link share * 50
      + (30 - min(30, 10 per open critical issue))
      + (20 - min(20, 5 per broken link))
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from linkguard.services.audit_store import IssueRecord, LinkHealthRecord

HEALTHY_LINK_THRESHOLD = 80
TREND_THRESHOLD = 5  # points between consecutive audits
WEEKLY_TREND_THRESHOLD = 2  # points per week over history

SEVERITY_ORDER = {"critical": 3, "warning": 2, "info": 1}


@dataclass
class HealthScoreBreakdown:
    overall_score: float
    healthy_links_score: float
    critical_issues_penalty: float
    broken_links_penalty: float
    total_links: int = 0
    healthy_links: int = 0
    broken_links: int = 0
    stock_out_links: int = 0
    untagged_links: int = 0
    critical_issues: int = 0
    warning_issues: int = 0
    info_issues: int = 0
    trend: str = "stable"  # improving, stable, declining
    score_change: float = 0.0
    estimated_monthly_loss: float = 0.0


@dataclass
class TrendAnalysis:
    direction: str
    velocity: float  # points per week
    forecast_30_days: float


class HealthScorer:

    def calculate(
        self,
        links: Sequence[LinkHealthRecord],
        issues: Sequence[IssueRecord],
        previous_score: Optional[float] = None,
    ) -> HealthScoreBreakdown:
        open_issues = [i for i in issues if i.status == "open"]
        critical = sum(1 for i in open_issues if i.severity == "critical")
        warning = sum(1 for i in open_issues if i.severity == "warning")
        info = sum(1 for i in open_issues if i.severity == "info")

        if not links:
            return HealthScoreBreakdown(
                overall_score=100,
                healthy_links_score=50,
                critical_issues_penalty=0,
                broken_links_penalty=0,
                critical_issues=critical,
                warning_issues=warning,
                info_issues=info,
            )

        total = len(links)
        healthy = sum(
            1 for link in links
            if not link.is_broken and not link.is_stock_out and link.health_score >= HEALTHY_LINK_THRESHOLD
        )
        broken = sum(1 for link in links if link.is_broken)
        stock_out = sum(1 for link in links if link.is_stock_out)
        untagged = sum(
            1 for link in links
            if link.health_score < HEALTHY_LINK_THRESHOLD and not link.is_broken and not link.is_stock_out
        )

        healthy_links_score = healthy / total * 50
        critical_penalty = min(30, critical * 10)
        broken_penalty = min(20, broken * 5)
        overall = max(0.0, min(100.0, healthy_links_score + (30 - critical_penalty) + (20 - broken_penalty)))

        trend = "stable"
        score_change = 0.0
        if previous_score is not None:
            score_change = overall - previous_score
            if score_change > TREND_THRESHOLD:
                trend = "improving"
            elif score_change < -TREND_THRESHOLD:
                trend = "declining"

        return HealthScoreBreakdown(
            overall_score=round(overall, 2),
            healthy_links_score=round(healthy_links_score, 2),
            critical_issues_penalty=critical_penalty,
            broken_links_penalty=broken_penalty,
            total_links=total,
            healthy_links=healthy,
            broken_links=broken,
            stock_out_links=stock_out,
            untagged_links=untagged,
            critical_issues=critical,
            warning_issues=warning,
            info_issues=info,
            trend=trend,
            score_change=round(score_change, 2),
            estimated_monthly_loss=round(self.estimate_revenue_loss(links, open_issues), 2),
        )

    @staticmethod
    def estimate_revenue_loss(links: Sequence[LinkHealthRecord], open_issues: Sequence[IssueRecord]) -> float:
        total = sum(float(i.revenue_impact_estimate or 0) for i in open_issues)
        if total == 0:
            # No per-issue estimates: $50/month per broken link, $30 per stock-out
            total = sum(50 for link in links if link.is_broken) + sum(30 for link in links if link.is_stock_out)
        return total

    @staticmethod
    def analyze_trend(history: Sequence[tuple[datetime, float]]) -> TrendAnalysis:
        """Direction and velocity from (timestamp, score) points."""
        if len(history) < 2:
            last = history[0][1] if history else 100
            return TrendAnalysis(direction="stable", velocity=0, forecast_30_days=last)

        ordered = sorted(history, key=lambda point: point[0])
        (first_at, first_score), (last_at, last_score) = ordered[0], ordered[-1]
        days = (last_at - first_at).total_seconds() / 86400
        if days == 0:
            return TrendAnalysis(direction="stable", velocity=0, forecast_30_days=last_score)

        per_day = (last_score - first_score) / days
        per_week = per_day * 7
        direction = "stable"
        if per_week > WEEKLY_TREND_THRESHOLD:
            direction = "improving"
        elif per_week < -WEEKLY_TREND_THRESHOLD:
            direction = "declining"

        forecast = max(0.0, min(100.0, last_score + per_day * 30))
        return TrendAnalysis(direction=direction, velocity=round(per_week, 2), forecast_30_days=round(forecast, 2))

    @staticmethod
    def top_issues(issues: Sequence[IssueRecord], limit: int = 5) -> list[IssueRecord]:
        """Open issues ordered by revenue impact, then severity."""
        open_issues = [i for i in issues if i.status == "open"]
        open_issues.sort(
            key=lambda i: (float(i.revenue_impact_estimate or 0), SEVERITY_ORDER.get(i.severity, 0)),
            reverse=True,
        )
        return open_issues[:limit]

    @staticmethod
    def score_badge(score: float) -> str:
        if score >= 80:
            return "Healthy"
        if score >= 50:
            return "Needs Attention"
        return "Critical"
