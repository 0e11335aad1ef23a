"""Link audit tasks."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone, timedelta

from linkguard.tasks.celery_app import celery_app
from linkguard.models.base import SyncSessionLocal, engine
from linkguard.models.tracked_page import TrackedPage
from linkguard.models.audit_run import AuditRun  # noqa: F401
from linkguard.models.link_health import LinkHealthStatus  # noqa: F401

logger = logging.getLogger(__name__)


def find_due_owners(pages, now: datetime) -> list[uuid.UUID]:
    """Owners with at least one page whose audit interval has elapsed."""
    due: list[uuid.UUID] = []
    for page in pages:
        if page.owner_id in due:
            continue
        if page.last_audited_at:
            next_audit = page.last_audited_at + timedelta(minutes=page.audit_frequency_minutes)
            if now < next_audit:
                continue
        due.append(page.owner_id)
    return due


@celery_app.task(name="linkguard.tasks.audit_tasks.dispatch_due_audits")
def dispatch_due_audits():
    """Find owners with pages due for an audit and dispatch one audit per owner."""
    db = SyncSessionLocal()
    try:
        now = datetime.now(timezone.utc)

        pages = db.query(TrackedPage).filter(
            TrackedPage.is_active == True,  # noqa: E712
            TrackedPage.audit_enabled == True,  # noqa: E712
        ).all()

        owners = find_due_owners(pages, now)
        for owner_id in owners:
            run_owner_audit.delay(str(owner_id), "full")

        logger.info(f"Dispatched {len(owners)} audit tasks")
        return {"dispatched": len(owners)}

    finally:
        db.close()


async def _run_audit(owner_id: uuid.UUID, audit_type: str):
    from linkguard.services.audit_orchestrator import build_default_orchestrator

    try:
        async with build_default_orchestrator() as orchestrator:
            return await orchestrator.run_audit(owner_id, audit_type)
    finally:
        # Each task gets a fresh event loop; pooled asyncpg connections can't cross loops
        await engine.dispose()


@celery_app.task(name="linkguard.tasks.audit_tasks.run_owner_audit")
def run_owner_audit(owner_id: str, audit_type: str = "full"):
    """Run a full link audit for one owner."""
    outcome = asyncio.run(_run_audit(uuid.UUID(owner_id), audit_type))

    if outcome.success:
        logger.info(
            f"Audit {outcome.audit_run_id} for {owner_id}: {outcome.links_audited} links, "
            f"{outcome.issues_found} issues, score {outcome.revenue_health_score}"
        )
    else:
        logger.error(f"Audit {outcome.audit_run_id} for {owner_id} failed: {outcome.error}")

    return {
        "audit_run_id": str(outcome.audit_run_id),
        "success": outcome.success,
        "links_audited": outcome.links_audited,
        "links_skipped": outcome.links_skipped,
        "issues_found": outcome.issues_found,
        "revenue_health_score": outcome.revenue_health_score,
    }


async def _check_destinations(owner_id: uuid.UUID, limit: int | None):
    from linkguard.models.base import AsyncSessionLocal
    from linkguard.services.destination_checker import DestinationChecker
    from linkguard.services.sqlalchemy_store import SqlAlchemyAuditStore

    try:
        async with DestinationChecker(store=SqlAlchemyAuditStore(AsyncSessionLocal)) as checker:
            return await checker.check_destinations_for(owner_id, limit=limit)
    finally:
        await engine.dispose()


@celery_app.task(name="linkguard.tasks.audit_tasks.check_owner_destinations")
def check_owner_destinations(owner_id: str, limit: int | None = None):
    """Quick re-check of an owner's stored destinations without re-crawling."""
    summary = asyncio.run(_check_destinations(uuid.UUID(owner_id), limit))
    return {"checked": summary.checked, "healthy": summary.healthy, "unhealthy": summary.unhealthy}
