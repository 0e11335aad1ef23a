"""Ad hoc destination checks outside a full audit run."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from linkguard.config import get_settings
from linkguard.detectors.stock_checker import OUT_OF_STOCK, HealthCheckResult, StockChecker
from linkguard.services.audit_store import AuditStore

logger = logging.getLogger(__name__)


@dataclass
class DestinationCheckSummary:
    checked: int = 0
    healthy: int = 0
    unhealthy: int = 0
    results: list[HealthCheckResult] = field(default_factory=list)


class DestinationChecker:

    def __init__(self, store: Optional[AuditStore] = None, stock_checker: Optional[StockChecker] = None):
        self.store = store
        self.stock_checker = stock_checker or StockChecker()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stock_checker.aclose()

    async def check_url(
        self,
        url: str,
        expected_affiliate_tag: Optional[str] = None,
        previous_fingerprint=None,
        timeout: Optional[float] = None,
    ) -> HealthCheckResult:
        return await self.stock_checker.check_url(
            url,
            expected_affiliate_tag=expected_affiliate_tag,
            previous_fingerprint=previous_fingerprint,
            timeout=timeout,
        )

    async def check_destinations_for(self, owner_id: uuid.UUID, limit: Optional[int] = None) -> DestinationCheckSummary:
        """Re-check an owner's least recently checked links and update their rows."""
        if self.store is None:
            raise RuntimeError("DestinationChecker needs a store to check stored destinations")

        limit = limit or get_settings().destination_check_limit
        records = await self.store.list_health_statuses(owner_id, limit=limit)
        summary = DestinationCheckSummary()

        for record in records:
            result = await self.check_url(record.link_url, previous_fingerprint=record.destination_fingerprint)
            now = datetime.now(timezone.utc)

            updates = {
                "last_check_at": now,
                "is_broken": result.health_status == "broken",
                "is_stock_out": result.stock_status == OUT_OF_STOCK,
                "has_drift": result.destination_changed,
            }
            if result.http_status is not None:
                updates["status_code"] = result.http_status
            if result.stock_status:
                updates["stock_status"] = result.stock_status
                updates["stock_checked_at"] = now
            await self.store.update_health_status(record.id, **updates)

            summary.checked += 1
            if result.is_healthy:
                summary.healthy += 1
            else:
                summary.unhealthy += 1
            summary.results.append(result)

        logger.info(
            f"[destinations] Checked {summary.checked} links for owner {owner_id}: "
            f"{summary.healthy} healthy, {summary.unhealthy} unhealthy"
        )
        return summary
