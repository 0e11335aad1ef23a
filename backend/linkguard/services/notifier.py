"""Notification hand-off for finished audits.

Formatting and delivery (email, webhooks) live outside this service; the
default notifier only logs what a delivery channel would receive.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Sequence

from linkguard.services.audit_store import IssueRecord
from linkguard.services.health_scorer import HealthScoreBreakdown, HealthScorer

logger = logging.getLogger(__name__)


class Notifier(ABC):

    @abstractmethod
    async def notify(
        self,
        owner_id: uuid.UUID,
        audit_run_id: uuid.UUID,
        breakdown: HealthScoreBreakdown,
        issues: Sequence[IssueRecord],
    ) -> None:
        ...


class LoggingNotifier(Notifier):

    async def notify(self, owner_id, audit_run_id, breakdown, issues) -> None:
        badge = HealthScorer.score_badge(breakdown.overall_score)
        logger.info(
            f"[audit {audit_run_id}] Revenue health {breakdown.overall_score}/100 ({badge}, {breakdown.trend}) "
            f"for owner {owner_id}: {breakdown.healthy_links}/{breakdown.total_links} healthy, "
            f"{breakdown.critical_issues} critical, {breakdown.warning_issues} warnings, "
            f"est. loss ${breakdown.estimated_monthly_loss:.2f}/mo"
        )
        for issue in HealthScorer.top_issues(issues, limit=3):
            logger.info(f"[audit {audit_run_id}]   {issue.severity}: {issue.title} ({issue.evidence.get('link_url')})")
