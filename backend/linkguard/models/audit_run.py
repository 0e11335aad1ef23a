"""Audit run model. One row per link audit execution."""

from sqlalchemy import Column, String, Integer, DateTime, Text, Numeric, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from linkguard.models.base import Base, UUIDMixin
from linkguard.services.audit_store import RUN_PENDING


class AuditRun(UUIDMixin, Base):
    __tablename__ = "link_audit_runs"

    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    audit_type = Column(String(20), nullable=False, default="full")  # full, incremental, emergency
    status = Column(String(20), nullable=False, default=RUN_PENDING)  # pending, running, completed, failed

    # Counters
    links_audited = Column(Integer, default=0)
    links_skipped = Column(Integer, default=0)
    issues_found = Column(Integer, default=0)
    critical_issues = Column(Integer, default=0)
    warning_issues = Column(Integer, default=0)
    info_issues = Column(Integer, default=0)

    revenue_health_score = Column(Numeric(5, 2))  # 0-100

    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    issues = relationship("LinkHealthIssue", back_populates="audit_run")

    __table_args__ = (
        Index("idx_audit_runs_status", "status", "created_at"),
    )
