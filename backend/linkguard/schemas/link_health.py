"""Pydantic schemas for link health status, issues and ad hoc checks."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class LinkHealthRead(BaseModel):
    """Latest health snapshot for one link."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    tracked_page_id: UUID | None = None
    link_url: str
    destination_url: str | None = None
    health_score: float
    is_broken: bool
    is_stock_out: bool
    has_low_commission: bool
    has_drift: bool
    redirect_count: int | None = 0
    redirect_chain: list[dict[str, Any]] | None = None
    response_time_ms: int | None = None
    status_code: int | None = None
    affiliate_network: str | None = None
    stock_status: str | None = None
    stock_checked_at: datetime | None = None
    last_check_at: datetime | None = None
    updated_at: datetime


class LinkIssueRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    audit_run_id: UUID | None = None
    link_health_id: UUID | None = None
    issue_type: str
    severity: str
    revenue_impact_estimate: float | None = None
    confidence_score: float | None = None
    title: str
    description: str | None = None
    evidence: dict[str, Any] | None = None
    status: str
    created_at: datetime


class LinkCheckRequest(BaseModel):
    """Ad hoc single-URL check."""

    url: HttpUrl
    expected_affiliate_tag: str | None = None
    # Synchronous request; keep it short
    timeout_seconds: float | None = Field(None, gt=0, le=60)


class LinkCheckResponse(BaseModel):
    url: str
    is_healthy: bool
    health_status: str
    http_status: int | None = None
    response_time_ms: int
    stock_status: str | None = None
    has_affiliate_tag: bool
    destination_changed: bool
    final_url: str | None = None
    error: str | None = None
    evidence: list[str] = []
