"""Audit run API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkguard.models.base import get_db
from linkguard.models.audit_run import AuditRun
from linkguard.models.tracked_page import TrackedPage
from linkguard.schemas.audit_run import AuditQueuedResponse, AuditRequest, AuditRunRead, AuditRunSummary

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("", response_model=list[AuditRunSummary])
async def list_audits(
    owner_id: UUID = Query(..., description="Owner whose audit runs to list"),
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: str | None = Query(None, description="Filter by status"),
):
    """List recent audit runs, newest first."""
    query = select(AuditRun).where(AuditRun.owner_id == owner_id)
    if status:
        query = query.where(AuditRun.status == status)

    query = query.order_by(AuditRun.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{audit_run_id}", response_model=AuditRunRead)
async def get_audit(
    audit_run_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single audit run."""
    result = await db.execute(select(AuditRun).where(AuditRun.id == audit_run_id))
    run = result.scalar_one_or_none()

    if not run:
        raise HTTPException(status_code=404, detail="Audit run not found")

    return run


@router.post("", response_model=AuditQueuedResponse, status_code=202)
async def trigger_audit(
    payload: AuditRequest,
    db: AsyncSession = Depends(get_db),
):
    """Queue an on-demand audit for an owner."""
    result = await db.execute(
        select(TrackedPage.id).where(
            TrackedPage.owner_id == payload.owner_id,
            TrackedPage.is_active == True,  # noqa: E712
        ).limit(1)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=400, detail="Owner has no active tracked pages")

    # Dispatch Celery task
    from linkguard.tasks.audit_tasks import run_owner_audit

    task = run_owner_audit.delay(str(payload.owner_id), payload.audit_type)

    return AuditQueuedResponse(
        message=f"{payload.audit_type.capitalize()} audit queued",
        task_id=task.id,
        owner_id=payload.owner_id,
    )
