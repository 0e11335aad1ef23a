"""Link health models: latest status per link, its issues and the score history."""

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, Numeric, ForeignKey, Index, UniqueConstraint, func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship

from linkguard.models.base import Base, TimestampMixin, UUIDMixin


class LinkHealthStatus(UUIDMixin, TimestampMixin, Base):
    """Latest health snapshot for one (owner, link). Upserted every audit."""

    __tablename__ = "link_health_status"

    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    tracked_page_id = Column(UUID(as_uuid=True), ForeignKey("tracked_link_pages.id", ondelete="SET NULL"))

    link_url = Column(Text, nullable=False)
    destination_url = Column(Text)

    # Health metrics
    health_score = Column(Numeric(5, 2), nullable=False, default=100)
    is_broken = Column(Boolean, default=False, nullable=False)
    is_stock_out = Column(Boolean, default=False, nullable=False)
    has_low_commission = Column(Boolean, default=False, nullable=False)
    has_drift = Column(Boolean, default=False, nullable=False)

    # Redirect chain
    redirect_count = Column(Integer, default=0)
    redirect_chain = Column(JSONB, default=list)  # [{url, status_code, timestamp}]
    response_time_ms = Column(Integer)
    status_code = Column(Integer)

    # Monetization
    affiliate_network = Column(String(50))

    # Stock
    stock_status = Column(String(20))  # in_stock, out_of_stock, unknown
    stock_checked_at = Column(DateTime(timezone=True))

    # Destination fingerprint {title, primary_image, content_hash}
    destination_fingerprint = Column(JSONB)
    fingerprint_updated_at = Column(DateTime(timezone=True))

    last_check_at = Column(DateTime(timezone=True))

    issues = relationship("LinkHealthIssue", back_populates="link_health")

    __table_args__ = (
        UniqueConstraint("owner_id", "link_url", name="uq_link_health_owner_link"),
        Index("idx_link_health_broken", "is_broken", "owner_id"),
        Index("idx_link_health_stock", "is_stock_out", "owner_id"),
    )


class LinkHealthIssue(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "link_health_issues"

    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    audit_run_id = Column(UUID(as_uuid=True), ForeignKey("link_audit_runs.id", ondelete="SET NULL"), index=True)
    link_health_id = Column(UUID(as_uuid=True), ForeignKey("link_health_status.id", ondelete="CASCADE"), index=True)

    # broken_link, stock_out, link_decay, destination_drift, redirect_drift
    issue_type = Column(String(50), nullable=False, index=True)
    severity = Column(String(20), nullable=False)  # critical, warning, info

    revenue_impact_estimate = Column(Numeric(10, 2))  # estimated $ lost per month
    confidence_score = Column(Numeric(5, 2))  # 0-100

    title = Column(Text, nullable=False)
    description = Column(Text)
    evidence = Column(JSONB, default=dict)

    # Lifecycle transitions happen outside the auditor
    status = Column(String(20), nullable=False, default="open")  # open, resolved, snoozed

    audit_run = relationship("AuditRun", back_populates="issues")
    link_health = relationship("LinkHealthStatus", back_populates="issues")

    __table_args__ = (
        Index("idx_issues_status", "status", "severity"),
    )


class HealthHistory(UUIDMixin, Base):
    """Point-in-time revenue health snapshot written after each completed run."""

    __tablename__ = "link_health_history"

    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    audit_run_id = Column(UUID(as_uuid=True), ForeignKey("link_audit_runs.id", ondelete="SET NULL"))

    revenue_health_score = Column(Numeric(5, 2), nullable=False)
    total_links = Column(Integer, default=0)
    healthy_links = Column(Integer, default=0)
    broken_links = Column(Integer, default=0)
    stock_out_links = Column(Integer, default=0)
    critical_issues = Column(Integer, default=0)
    warning_issues = Column(Integer, default=0)
    info_issues = Column(Integer, default=0)
    estimated_monthly_loss = Column(Numeric(10, 2), default=0)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
