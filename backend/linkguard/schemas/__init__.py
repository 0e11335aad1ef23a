"""Pydantic schemas package."""

from linkguard.schemas.tracked_page import (
    TrackedPageBase,
    TrackedPageCreate,
    TrackedPageRead,
)
from linkguard.schemas.audit_run import (
    AuditType,
    AuditRunSummary,
    AuditRunRead,
    AuditRequest,
    AuditQueuedResponse,
)
from linkguard.schemas.link_health import (
    LinkHealthRead,
    LinkIssueRead,
    LinkCheckRequest,
    LinkCheckResponse,
)

__all__ = [
    # TrackedPage
    "TrackedPageBase",
    "TrackedPageCreate",
    "TrackedPageRead",
    # AuditRun
    "AuditType",
    "AuditRunSummary",
    "AuditRunRead",
    "AuditRequest",
    "AuditQueuedResponse",
    # LinkHealth
    "LinkHealthRead",
    "LinkIssueRead",
    "LinkCheckRequest",
    "LinkCheckResponse",
]
