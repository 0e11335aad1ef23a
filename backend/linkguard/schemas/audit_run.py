"""Pydantic schemas for AuditRun model."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

AuditType = Literal["full", "incremental", "emergency"]


class AuditRunSummary(BaseModel):
    """Minimal run info for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    audit_type: str
    status: str
    links_audited: int = 0
    issues_found: int = 0
    revenue_health_score: float | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class AuditRunRead(AuditRunSummary):
    """Full audit run output."""

    links_skipped: int = 0
    critical_issues: int = 0
    warning_issues: int = 0
    info_issues: int = 0
    error_message: str | None = None
    created_at: datetime


class AuditRequest(BaseModel):
    owner_id: UUID
    audit_type: AuditType = "full"


class AuditQueuedResponse(BaseModel):
    """Response from triggering an on-demand audit."""

    message: str
    task_id: str
    owner_id: UUID
