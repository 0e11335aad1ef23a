"""Link health API endpoints."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkguard.models.base import get_db
from linkguard.models.link_health import LinkHealthIssue, LinkHealthStatus
from linkguard.schemas.link_health import LinkCheckRequest, LinkCheckResponse, LinkHealthRead, LinkIssueRead
from linkguard.services.destination_checker import DestinationChecker

router = APIRouter(prefix="/links", tags=["links"])

Severity = Literal["critical", "warning", "info"]


@router.get("", response_model=list[LinkHealthRead])
async def list_links(
    owner_id: UUID = Query(..., description="Owner whose links to list"),
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    broken_only: bool = Query(False, description="Only return broken links"),
):
    """Latest health status of an owner's links, worst first."""
    query = select(LinkHealthStatus).where(LinkHealthStatus.owner_id == owner_id)
    if broken_only:
        query = query.where(LinkHealthStatus.is_broken == True)  # noqa: E712

    query = query.order_by(LinkHealthStatus.health_score.asc(), LinkHealthStatus.link_url).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/issues", response_model=list[LinkIssueRead])
async def list_issues(
    owner_id: UUID = Query(..., description="Owner whose issues to list"),
    db: AsyncSession = Depends(get_db),
    status: str = Query("open", description="Issue status (open, resolved, snoozed)"),
    severity: Severity | None = Query(None, description="Filter by severity"),
    audit_run_id: UUID | None = Query(None, description="Filter by audit run"),
    limit: int = Query(50, ge=1, le=200),
):
    """List issues, highest estimated revenue impact first."""
    query = select(LinkHealthIssue).where(
        LinkHealthIssue.owner_id == owner_id,
        LinkHealthIssue.status == status,
    )
    if severity:
        query = query.where(LinkHealthIssue.severity == severity)
    if audit_run_id:
        query = query.where(LinkHealthIssue.audit_run_id == audit_run_id)

    query = query.order_by(
        LinkHealthIssue.revenue_impact_estimate.desc().nullslast(),
        LinkHealthIssue.created_at.desc(),
    ).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/check", response_model=LinkCheckResponse)
async def check_link(payload: LinkCheckRequest):
    """Check a single destination right now, without recording anything."""
    async with DestinationChecker() as checker:
        result = await checker.check_url(
            str(payload.url),
            expected_affiliate_tag=payload.expected_affiliate_tag,
            timeout=payload.timeout_seconds,
        )

    return LinkCheckResponse(
        url=result.url,
        is_healthy=result.is_healthy,
        health_status=result.health_status,
        http_status=result.http_status,
        response_time_ms=result.response_time_ms,
        stock_status=result.stock_status,
        has_affiliate_tag=result.has_affiliate_tag,
        destination_changed=result.destination_changed,
        final_url=result.final_url,
        error=result.error,
        evidence=result.evidence,
    )
