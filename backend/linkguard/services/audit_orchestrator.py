"""Link audit orchestrator.

Coordinates one audit run for an owner:
  1. crawl each tracked page (sequentially) and collect its links
  2. audit links in sequential batches, all four detectors concurrently per link
  3. turn detector results into a link health record plus issues
  4. persist, score, record history and hand off to the notifier

A link whose detectors raise is reported as skipped, never half-recorded.
Only a failure outside the per-link work fails the whole run.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from linkguard.config import get_settings
from linkguard.detectors.crawler import LinkCrawler
from linkguard.detectors.fingerprinter import DestinationFingerprinter, FingerprintResult
from linkguard.detectors.monetization import MonetizationDetector
from linkguard.detectors.networks import MonetizationResult
from linkguard.detectors.redirect_resolver import RedirectChainResult, RedirectResolver
from linkguard.detectors.stock_checker import OUT_OF_STOCK, StockChecker, StockCheckResult
from linkguard.errors import DetectorFailure
from linkguard.services.audit_store import (
    RUN_COMPLETED,
    RUN_FAILED,
    RUN_RUNNING,
    AuditStore,
    HistorySnapshot,
    IssueRecord,
    LinkHealthRecord,
    TrackedPageRecord,
)
from linkguard.services.health_scorer import HealthScorer
from linkguard.services.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

# Per-signal score caps; the link score is the lowest that applies
OUT_OF_STOCK_SCORE_CAP = 20
MISSING_TAG_SCORE_CAP = 60
DRIFT_SCORE_CAP = 70
EXCESSIVE_REDIRECTS = 5


@dataclass
class LinkToAudit:
    url: str
    tracked_page_id: Optional[uuid.UUID] = None
    previous_health: Optional[LinkHealthRecord] = None


@dataclass
class LinkAudited:
    link: LinkToAudit
    health: LinkHealthRecord
    issues: list[IssueRecord] = field(default_factory=list)


@dataclass
class LinkAuditSkipped:
    link: LinkToAudit
    error: DetectorFailure


LinkOutcome = Union[LinkAudited, LinkAuditSkipped]


@dataclass
class AuditOutcome:
    audit_run_id: uuid.UUID
    success: bool
    links_audited: int = 0
    links_skipped: int = 0
    issues_found: int = 0
    batches_run: int = 0
    revenue_health_score: Optional[float] = None
    error: Optional[str] = None


@dataclass
class DetectorResults:
    redirect: RedirectChainResult
    stock: StockCheckResult
    monetization: MonetizationResult
    fingerprint: FingerprintResult


def score_link(results: DetectorResults, chain_health_score: int) -> int:
    """Link health 0-100: zero when broken, else the lowest applicable cap."""
    if results.redirect.is_broken:
        return 0
    return min(
        100,
        chain_health_score,
        OUT_OF_STOCK_SCORE_CAP if results.stock.stock_status == OUT_OF_STOCK else 100,
        MISSING_TAG_SCORE_CAP if not results.monetization.has_affiliate_tag else 100,
        DRIFT_SCORE_CAP if results.fingerprint.has_changed else 100,
    )


def detect_issues(
    health: LinkHealthRecord,
    results: DetectorResults,
    audit_run_id: uuid.UUID,
) -> list[IssueRecord]:
    """Fixed issue rules; one issue per triggered rule."""
    redirect = results.redirect
    evidence: dict[str, Any] = {
        "link_url": health.link_url,
        "final_url": redirect.final_url,
        "status_code": health.status_code,
        "redirect_count": redirect.redirect_count,
    }

    def issue(issue_type, severity, impact, confidence, title, description, **extra) -> IssueRecord:
        return IssueRecord(
            owner_id=health.owner_id,
            audit_run_id=audit_run_id,
            link_health_id=health.id,
            issue_type=issue_type,
            severity=severity,
            revenue_impact_estimate=impact,
            confidence_score=confidence,
            title=title,
            description=description,
            evidence={**evidence, **extra},
        )

    issues = []
    if redirect.is_broken:
        issues.append(issue(
            "broken_link", "critical", 50, 100,
            "Broken Link Detected", redirect.error,
            error=redirect.error,
        ))

    if results.stock.stock_status == OUT_OF_STOCK:
        issues.append(issue(
            "stock_out", "critical", 30, results.stock.confidence,
            "Product Out of Stock", "This product is currently unavailable",
            matched_phrase=results.stock.matched_phrase,
        ))

    if not results.monetization.has_affiliate_tag:
        issues.append(issue(
            "link_decay", "warning", 20, 90,
            "Missing Affiliate Tag", "This link is not monetized with an affiliate tag",
            affiliate_network=results.monetization.affiliate_network,
            suggestion=results.monetization.optimization_suggestion,
        ))

    if results.fingerprint.has_changed:
        issues.append(issue(
            "destination_drift", "warning", 15, 80,
            "Destination Page Changed", "The destination page content has changed significantly",
            similarity=results.fingerprint.similarity,
            change_percentage=results.fingerprint.change_percentage,
        ))

    if health.redirect_count > EXCESSIVE_REDIRECTS:
        issues.append(issue(
            "redirect_drift", "info", 5, 100,
            "Excessive Redirects",
            f"Link has {health.redirect_count} redirect hops, which may affect user experience",
            hops=[hop["url"] for hop in health.redirect_chain],
        ))

    return issues


class AuditOrchestrator:

    def __init__(
        self,
        store: AuditStore,
        crawler: Optional[LinkCrawler] = None,
        resolver: Optional[RedirectResolver] = None,
        stock_checker: Optional[StockChecker] = None,
        detector: Optional[MonetizationDetector] = None,
        fingerprinter: Optional[DestinationFingerprinter] = None,
        scorer: Optional[HealthScorer] = None,
        notifier: Optional[Notifier] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.crawler = crawler or LinkCrawler()
        self.resolver = resolver or RedirectResolver()
        self.stock_checker = stock_checker or StockChecker()
        self.detector = detector or MonetizationDetector()
        self.fingerprinter = fingerprinter or DestinationFingerprinter()
        self.scorer = scorer or HealthScorer()
        self.notifier = notifier or LoggingNotifier()
        self.batch_size = max(1, batch_size or get_settings().audit_batch_size)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        for detector in (self.crawler, self.resolver, self.stock_checker, self.fingerprinter):
            aclose = getattr(detector, "aclose", None)
            if aclose is not None:
                await aclose()

    async def run_audit(self, owner_id: uuid.UUID, audit_type: str = "full") -> AuditOutcome:
        run_id = uuid.uuid4()
        outcome = AuditOutcome(audit_run_id=run_id, success=False)

        try:
            await self.store.create_run(run_id, owner_id, audit_type)
            await self.store.update_run(run_id, status=RUN_RUNNING, started_at=datetime.now(timezone.utc))
            logger.info(f"[audit {run_id}] Starting {audit_type} audit for owner {owner_id}")

            pages = await self.store.get_tracked_pages(owner_id)
            if not pages:
                await self.store.update_run(
                    run_id,
                    status=RUN_COMPLETED,
                    completed_at=datetime.now(timezone.utc),
                    links_audited=0,
                    links_skipped=0,
                    issues_found=0,
                )
                logger.info(f"[audit {run_id}] No tracked pages, nothing to audit")
                outcome.success = True
                return outcome

            links = await self._collect_links(run_id, owner_id, pages)

            audited: list[LinkAudited] = []
            skipped: list[LinkAuditSkipped] = []
            for start in range(0, len(links), self.batch_size):
                batch = links[start:start + self.batch_size]
                batch_outcomes = await asyncio.gather(
                    *(self.audit_link(owner_id, link, run_id) for link in batch)
                )
                outcome.batches_run += 1
                # Merge only once the whole batch has resolved
                for link_outcome in batch_outcomes:
                    if isinstance(link_outcome, LinkAudited):
                        audited.append(link_outcome)
                    else:
                        skipped.append(link_outcome)
                logger.info(
                    f"[audit {run_id}] Batch {outcome.batches_run}: "
                    f"{sum(isinstance(o, LinkAudited) for o in batch_outcomes)}/{len(batch)} links audited"
                )

            statuses, issues = await self._persist(audited)
            previous = await self.store.get_latest_history(owner_id)
            breakdown = self.scorer.calculate(
                statuses,
                issues,
                previous_score=previous.revenue_health_score if previous else None,
            )

            severity_counts = {
                severity: sum(1 for i in issues if i.severity == severity)
                for severity in ("critical", "warning", "info")
            }
            await self.store.update_run(
                run_id,
                status=RUN_COMPLETED,
                completed_at=datetime.now(timezone.utc),
                links_audited=len(audited),
                links_skipped=len(skipped),
                issues_found=len(issues),
                revenue_health_score=breakdown.overall_score,
                critical_issues=severity_counts["critical"],
                warning_issues=severity_counts["warning"],
                info_issues=severity_counts["info"],
            )

            await self.store.save_history(HistorySnapshot(
                owner_id=owner_id,
                audit_run_id=run_id,
                revenue_health_score=breakdown.overall_score,
                total_links=breakdown.total_links,
                healthy_links=breakdown.healthy_links,
                broken_links=breakdown.broken_links,
                stock_out_links=breakdown.stock_out_links,
                critical_issues=breakdown.critical_issues,
                warning_issues=breakdown.warning_issues,
                info_issues=breakdown.info_issues,
                estimated_monthly_loss=breakdown.estimated_monthly_loss,
            ))

            outcome.success = True
            outcome.links_audited = len(audited)
            outcome.links_skipped = len(skipped)
            outcome.issues_found = len(issues)
            outcome.revenue_health_score = breakdown.overall_score
            logger.info(
                f"[audit {run_id}] Completed: {len(audited)} audited, {len(skipped)} skipped, "
                f"{len(issues)} issues, score {breakdown.overall_score}"
            )

        except Exception as e:
            logger.error(f"[audit {run_id}] Audit failed for owner {owner_id}: {e}", exc_info=True)
            outcome.success = False
            outcome.error = str(e) or type(e).__name__
            await self._mark_failed(run_id, outcome.error)
            return outcome

        try:
            await self.notifier.notify(owner_id, run_id, breakdown, issues)
        except Exception as e:
            # The run is already recorded as completed
            logger.warning(f"[audit {run_id}] Notifier failed: {e}")

        return outcome

    async def audit_link(self, owner_id: uuid.UUID, link: LinkToAudit, audit_run_id: uuid.UUID) -> LinkOutcome:
        """Run all detectors for one link. Any detector exception skips the link."""
        previous_fingerprint = link.previous_health.destination_fingerprint if link.previous_health else None

        detector_calls = {
            "redirect_resolver": self.resolver.resolve(link.url),
            "stock_checker": self.stock_checker.check_stock(link.url),
            "monetization_detector": self.detector.detect(link.url),
            "fingerprinter": self.fingerprinter.fingerprint(link.url, previous_fingerprint),
        }
        raw = await asyncio.gather(*detector_calls.values(), return_exceptions=True)

        for name, value in zip(detector_calls, raw):
            if isinstance(value, BaseException):
                if not isinstance(value, Exception):
                    raise value
                failure = DetectorFailure(name, link.url, value)
                logger.warning(f"[audit {audit_run_id}] Skipping link: {failure}")
                return LinkAuditSkipped(link=link, error=failure)

        results = DetectorResults(*raw)
        health = self.build_health_record(owner_id, link, results)
        issues = detect_issues(health, results, audit_run_id)
        return LinkAudited(link=link, health=health, issues=issues)

    def build_health_record(self, owner_id: uuid.UUID, link: LinkToAudit, results: DetectorResults) -> LinkHealthRecord:
        now = datetime.now(timezone.utc)
        redirect = results.redirect
        chain_health = self.resolver.analyze_chain_health(redirect)

        fingerprint = results.fingerprint.fingerprint
        if fingerprint.is_empty and link.previous_health and link.previous_health.destination_fingerprint:
            # Fetch failed this time; keep the last good observation for future comparisons
            stored_fingerprint = link.previous_health.destination_fingerprint
            fingerprint_updated_at = link.previous_health.fingerprint_updated_at
        else:
            stored_fingerprint = None if fingerprint.is_empty else fingerprint.to_dict()
            fingerprint_updated_at = None if fingerprint.is_empty else now

        return LinkHealthRecord(
            owner_id=owner_id,
            link_url=link.url,
            tracked_page_id=link.tracked_page_id,
            destination_url=redirect.final_url,
            health_score=score_link(results, chain_health.health_score),
            is_broken=redirect.is_broken,
            is_stock_out=results.stock.stock_status == OUT_OF_STOCK,
            has_low_commission=False,
            has_drift=results.fingerprint.has_changed,
            redirect_count=redirect.redirect_count,
            redirect_chain=[hop.to_dict() for hop in redirect.hops],
            response_time_ms=redirect.total_time_ms,
            status_code=redirect.final_status,
            affiliate_network=results.monetization.affiliate_network,
            stock_status=results.stock.stock_status,
            stock_checked_at=results.stock.last_checked,
            destination_fingerprint=stored_fingerprint,
            fingerprint_updated_at=fingerprint_updated_at,
            last_check_at=now,
        )

    async def _collect_links(
        self,
        run_id: uuid.UUID,
        owner_id: uuid.UUID,
        pages: Sequence[TrackedPageRecord],
    ) -> list[LinkToAudit]:
        links: list[LinkToAudit] = []
        previous_by_url: dict[str, Optional[LinkHealthRecord]] = {}
        duplicates = 0

        for page in pages:
            crawl = await self.crawler.crawl(page.page_url)
            now = datetime.now(timezone.utc)

            if not crawl.success:
                logger.warning(f"[audit {run_id}] Crawl failed for {page.page_url}: {crawl.error}")
                await self.store.update_tracked_page(
                    page.id,
                    last_audited_at=now,
                    last_crawl_status="failed",
                    last_crawl_error=crawl.error,
                )
                continue

            await self.store.update_tracked_page(
                page.id,
                last_audited_at=now,
                last_crawl_status="success",
                last_crawl_error=None,
                links_found_count=len(crawl.links_found),
                page_title=crawl.page_title,
            )

            for extracted in crawl.links_found:
                # One record per link per run; the first page listing it owns it
                if extracted.url in previous_by_url:
                    duplicates += 1
                    continue
                previous_by_url[extracted.url] = await self.store.get_previous_health(owner_id, extracted.url)
                links.append(LinkToAudit(
                    url=extracted.url,
                    tracked_page_id=page.id,
                    previous_health=previous_by_url[extracted.url],
                ))

        logger.info(
            f"[audit {run_id}] Collected {len(links)} unique links from {len(pages)} pages "
            f"({duplicates} duplicates dropped)"
        )
        return links

    async def _persist(self, audited: Sequence[LinkAudited]) -> tuple[list[LinkHealthRecord], list[IssueRecord]]:
        statuses: list[LinkHealthRecord] = []
        issues: list[IssueRecord] = []

        for result in audited:
            stored_id = await self.store.upsert_health_status(result.health)
            result.health.id = stored_id
            for issue in result.issues:
                issue.link_health_id = stored_id
            statuses.append(result.health)
            issues.extend(result.issues)

        for issue in issues:
            await self.store.insert_issue(issue)

        return statuses, issues

    async def _mark_failed(self, run_id: uuid.UUID, message: str) -> None:
        try:
            await self.store.update_run(
                run_id,
                status=RUN_FAILED,
                completed_at=datetime.now(timezone.utc),
                error_message=message[:2000],
            )
        except Exception as e:
            logger.error(f"[audit {run_id}] Could not record failure: {e}")


def build_default_orchestrator() -> AuditOrchestrator:
    """Orchestrator wired to PostgreSQL and fresh detectors."""
    from linkguard.models.base import AsyncSessionLocal
    from linkguard.services.sqlalchemy_store import SqlAlchemyAuditStore

    return AuditOrchestrator(store=SqlAlchemyAuditStore(AsyncSessionLocal))
