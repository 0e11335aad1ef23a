"""Pydantic schemas for TrackedPage model."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, HttpUrl


class TrackedPageBase(BaseModel):
    """Base fields for a tracked page."""

    page_url: str
    platform: str | None = None
    is_active: bool = True
    audit_enabled: bool = True
    audit_frequency_minutes: int = 1440


class TrackedPageCreate(BaseModel):
    """Fields for registering a page to audit."""

    owner_id: UUID
    page_url: HttpUrl
    platform: str | None = None
    audit_frequency_minutes: int | None = None


class TrackedPageRead(TrackedPageBase):
    """Full tracked page output."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    last_audited_at: datetime | None = None
    last_crawl_status: str | None = None
    last_crawl_error: str | None = None
    links_found_count: int = 0
    page_title: str | None = None
    created_at: datetime
    updated_at: datetime
