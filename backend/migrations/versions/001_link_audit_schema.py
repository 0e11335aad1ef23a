"""Link audit schema: tracked pages, audit runs, link health, issues, history.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tracked pages
    op.create_table(
        "tracked_link_pages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("page_url", sa.Text, nullable=False),
        sa.Column("platform", sa.String(50)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("audit_enabled", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("audit_frequency_minutes", sa.Integer, nullable=False, server_default=sa.text("1440")),
        sa.Column("last_audited_at", sa.DateTime(timezone=True)),
        sa.Column("last_crawl_status", sa.String(20)),
        sa.Column("last_crawl_error", sa.Text),
        sa.Column("links_found_count", sa.Integer, server_default=sa.text("0")),
        sa.Column("page_title", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "idx_tracked_pages_due", "tracked_link_pages", ["is_active", "audit_enabled", "last_audited_at"]
    )

    # Audit runs
    op.create_table(
        "link_audit_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("audit_type", sa.String(20), nullable=False, server_default="full"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("links_audited", sa.Integer, server_default=sa.text("0")),
        sa.Column("links_skipped", sa.Integer, server_default=sa.text("0")),
        sa.Column("issues_found", sa.Integer, server_default=sa.text("0")),
        sa.Column("critical_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("warning_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("info_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("revenue_health_score", sa.Numeric(5, 2)),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("error_message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_audit_runs_status", "link_audit_runs", ["status", "created_at"])

    # Latest health per (owner, link)
    op.create_table(
        "link_health_status",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column(
            "tracked_page_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tracked_link_pages.id", ondelete="SET NULL"),
        ),
        sa.Column("link_url", sa.Text, nullable=False),
        sa.Column("destination_url", sa.Text),
        sa.Column("health_score", sa.Numeric(5, 2), nullable=False, server_default=sa.text("100")),
        sa.Column("is_broken", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_stock_out", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("has_low_commission", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("has_drift", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("redirect_count", sa.Integer, server_default=sa.text("0")),
        sa.Column("redirect_chain", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("response_time_ms", sa.Integer),
        sa.Column("status_code", sa.Integer),
        sa.Column("affiliate_network", sa.String(50)),
        sa.Column("stock_status", sa.String(20)),
        sa.Column("stock_checked_at", sa.DateTime(timezone=True)),
        sa.Column("destination_fingerprint", postgresql.JSONB),
        sa.Column("fingerprint_updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_check_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("owner_id", "link_url", name="uq_link_health_owner_link"),
    )
    op.create_index("idx_link_health_broken", "link_health_status", ["is_broken", "owner_id"])
    op.create_index("idx_link_health_stock", "link_health_status", ["is_stock_out", "owner_id"])

    # Issues
    op.create_table(
        "link_health_issues",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column(
            "audit_run_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("link_audit_runs.id", ondelete="SET NULL"),
            index=True,
        ),
        sa.Column(
            "link_health_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("link_health_status.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("issue_type", sa.String(50), nullable=False, index=True),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("revenue_impact_estimate", sa.Numeric(10, 2)),
        sa.Column("confidence_score", sa.Numeric(5, 2)),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("evidence", postgresql.JSONB, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_issues_status", "link_health_issues", ["status", "severity"])

    # Score history
    op.create_table(
        "link_health_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column(
            "audit_run_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("link_audit_runs.id", ondelete="SET NULL"),
        ),
        sa.Column("revenue_health_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("total_links", sa.Integer, server_default=sa.text("0")),
        sa.Column("healthy_links", sa.Integer, server_default=sa.text("0")),
        sa.Column("broken_links", sa.Integer, server_default=sa.text("0")),
        sa.Column("stock_out_links", sa.Integer, server_default=sa.text("0")),
        sa.Column("critical_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("warning_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("info_issues", sa.Integer, server_default=sa.text("0")),
        sa.Column("estimated_monthly_loss", sa.Numeric(10, 2), server_default=sa.text("0")),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("link_health_history")
    op.drop_table("link_health_issues")
    op.drop_table("link_health_status")
    op.drop_table("link_audit_runs")
    op.drop_table("tracked_link_pages")
