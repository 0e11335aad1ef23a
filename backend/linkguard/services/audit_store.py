"""Persistence contract for the audit orchestrator.

The orchestrator only speaks in the plain records below; how they are stored
is up to the ``AuditStore`` implementation (see ``sqlalchemy_store``).
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

# Audit run lifecycle: pending -> running -> completed | failed
RUN_PENDING = "pending"
RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"


@dataclass
class TrackedPageRecord:
    id: uuid.UUID
    owner_id: uuid.UUID
    page_url: str


@dataclass
class LinkHealthRecord:
    """Snapshot of one link's health. One per link per run; latest write wins."""

    owner_id: uuid.UUID
    link_url: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    tracked_page_id: Optional[uuid.UUID] = None
    destination_url: Optional[str] = None
    health_score: int = 100
    is_broken: bool = False
    is_stock_out: bool = False
    has_low_commission: bool = False
    has_drift: bool = False
    redirect_count: int = 0
    redirect_chain: list[dict[str, Any]] = field(default_factory=list)
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    affiliate_network: Optional[str] = None
    stock_status: Optional[str] = None
    stock_checked_at: Optional[datetime] = None
    destination_fingerprint: Optional[dict[str, str]] = None
    fingerprint_updated_at: Optional[datetime] = None
    last_check_at: Optional[datetime] = None


@dataclass
class IssueRecord:
    owner_id: uuid.UUID
    audit_run_id: uuid.UUID
    link_health_id: uuid.UUID
    issue_type: str
    severity: str
    revenue_impact_estimate: float
    confidence_score: float
    title: str
    description: Optional[str] = None
    evidence: dict[str, Any] = field(default_factory=dict)
    status: str = "open"
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class HistorySnapshot:
    owner_id: uuid.UUID
    audit_run_id: uuid.UUID
    revenue_health_score: float
    total_links: int = 0
    healthy_links: int = 0
    broken_links: int = 0
    stock_out_links: int = 0
    critical_issues: int = 0
    warning_issues: int = 0
    info_issues: int = 0
    estimated_monthly_loss: float = 0.0
    recorded_at: Optional[datetime] = None


class AuditStore(ABC):
    """Narrow async CRUD contract used by the auditor."""

    @abstractmethod
    async def create_run(self, run_id: uuid.UUID, owner_id: uuid.UUID, audit_type: str) -> None:
        """Insert a new run in ``pending`` status."""
        ...

    @abstractmethod
    async def update_run(self, run_id: uuid.UUID, **fields: Any) -> None:
        ...

    @abstractmethod
    async def get_tracked_pages(self, owner_id: uuid.UUID) -> list[TrackedPageRecord]:
        """Active, audit-enabled tracked pages for an owner."""
        ...

    @abstractmethod
    async def update_tracked_page(self, page_id: uuid.UUID, **fields: Any) -> None:
        ...

    @abstractmethod
    async def get_previous_health(self, owner_id: uuid.UUID, link_url: str) -> Optional[LinkHealthRecord]:
        ...

    @abstractmethod
    async def upsert_health_status(self, record: LinkHealthRecord) -> uuid.UUID:
        """Insert or replace the (owner, link) row. Returns the stored row id."""
        ...

    @abstractmethod
    async def insert_issue(self, issue: IssueRecord) -> None:
        ...

    @abstractmethod
    async def get_latest_history(self, owner_id: uuid.UUID) -> Optional[HistorySnapshot]:
        ...

    @abstractmethod
    async def save_history(self, snapshot: HistorySnapshot) -> None:
        ...

    @abstractmethod
    async def list_health_statuses(self, owner_id: uuid.UUID, limit: int = 100) -> list[LinkHealthRecord]:
        ...

    @abstractmethod
    async def update_health_status(self, health_id: uuid.UUID, **fields: Any) -> None:
        ...
