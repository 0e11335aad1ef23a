"""Tracked page API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkguard.config import get_settings
from linkguard.models.base import get_db
from linkguard.models.tracked_page import TrackedPage
from linkguard.schemas.tracked_page import TrackedPageCreate, TrackedPageRead

router = APIRouter(prefix="/pages", tags=["pages"])


@router.get("", response_model=list[TrackedPageRead])
async def list_pages(
    owner_id: UUID = Query(..., description="Owner whose pages to list"),
    db: AsyncSession = Depends(get_db),
    active_only: bool = Query(False, description="Only return active pages"),
):
    """List an owner's tracked pages."""
    query = select(TrackedPage).where(TrackedPage.owner_id == owner_id)
    if active_only:
        query = query.where(TrackedPage.is_active == True)  # noqa: E712

    result = await db.execute(query.order_by(TrackedPage.created_at))
    return result.scalars().all()


@router.post("", response_model=TrackedPageRead, status_code=201)
async def create_page(
    payload: TrackedPageCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a bio/landing page for auditing."""
    page_url = str(payload.page_url)

    existing = await db.execute(
        select(TrackedPage).where(
            TrackedPage.owner_id == payload.owner_id,
            TrackedPage.page_url == page_url,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Page is already tracked")

    page = TrackedPage(
        owner_id=payload.owner_id,
        page_url=page_url,
        platform=payload.platform,
        audit_frequency_minutes=payload.audit_frequency_minutes or get_settings().default_audit_frequency_minutes,
    )
    db.add(page)
    await db.flush()
    await db.refresh(page)
    return page
