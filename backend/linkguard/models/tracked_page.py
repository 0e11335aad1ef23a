"""Tracked page model: a creator's bio/landing page and its crawl state."""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Index
from sqlalchemy.dialects.postgresql import UUID

from linkguard.models.base import Base, TimestampMixin, UUIDMixin


class TrackedPage(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tracked_link_pages"

    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    page_url = Column(Text, nullable=False)
    platform = Column(String(50))  # linktree, beacons, stan, custom

    # Audit config
    is_active = Column(Boolean, default=True, nullable=False)
    audit_enabled = Column(Boolean, default=True, nullable=False)
    audit_frequency_minutes = Column(Integer, default=1440, nullable=False)

    # Crawl state
    last_audited_at = Column(DateTime(timezone=True))
    last_crawl_status = Column(String(20))  # success, failed
    last_crawl_error = Column(Text)
    links_found_count = Column(Integer, default=0)
    page_title = Column(Text)

    __table_args__ = (
        Index("idx_tracked_pages_due", "is_active", "audit_enabled", "last_audited_at"),
    )
