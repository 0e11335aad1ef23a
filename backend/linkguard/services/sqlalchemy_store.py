"""PostgreSQL implementation of the audit persistence contract."""

import logging
import uuid
from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linkguard.models.audit_run import AuditRun
from linkguard.models.link_health import HealthHistory, LinkHealthIssue, LinkHealthStatus
from linkguard.models.tracked_page import TrackedPage
from linkguard.services.audit_store import (
    RUN_PENDING,
    AuditStore,
    HistorySnapshot,
    IssueRecord,
    LinkHealthRecord,
    TrackedPageRecord,
)

logger = logging.getLogger(__name__)

_HEALTH_FIELDS = tuple(f.name for f in fields(LinkHealthRecord))
_HISTORY_FIELDS = tuple(f.name for f in fields(HistorySnapshot))


def _to_health_record(row: LinkHealthStatus) -> LinkHealthRecord:
    values = {name: getattr(row, name) for name in _HEALTH_FIELDS}
    values["health_score"] = int(row.health_score) if row.health_score is not None else 100
    values["redirect_chain"] = row.redirect_chain or []
    return LinkHealthRecord(**values)


def _to_history_snapshot(row: HealthHistory) -> HistorySnapshot:
    values = {name: getattr(row, name) for name in _HISTORY_FIELDS}
    values["revenue_health_score"] = float(row.revenue_health_score)
    values["estimated_monthly_loss"] = float(row.estimated_monthly_loss or 0)
    return HistorySnapshot(**values)


class SqlAlchemyAuditStore(AuditStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_run(self, run_id: uuid.UUID, owner_id: uuid.UUID, audit_type: str) -> None:
        async with self.session_factory() as db:
            db.add(AuditRun(id=run_id, owner_id=owner_id, audit_type=audit_type, status=RUN_PENDING))
            await db.commit()

    async def update_run(self, run_id: uuid.UUID, **values: Any) -> None:
        async with self.session_factory() as db:
            await db.execute(update(AuditRun).where(AuditRun.id == run_id).values(**values))
            await db.commit()

    async def get_tracked_pages(self, owner_id: uuid.UUID) -> list[TrackedPageRecord]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(TrackedPage)
                .where(
                    TrackedPage.owner_id == owner_id,
                    TrackedPage.is_active == True,  # noqa: E712
                    TrackedPage.audit_enabled == True,  # noqa: E712
                )
                .order_by(TrackedPage.created_at)
            )
            return [
                TrackedPageRecord(id=page.id, owner_id=page.owner_id, page_url=page.page_url)
                for page in result.scalars().all()
            ]

    async def update_tracked_page(self, page_id: uuid.UUID, **values: Any) -> None:
        async with self.session_factory() as db:
            await db.execute(update(TrackedPage).where(TrackedPage.id == page_id).values(**values))
            await db.commit()

    async def get_previous_health(self, owner_id: uuid.UUID, link_url: str) -> Optional[LinkHealthRecord]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(LinkHealthStatus).where(
                    LinkHealthStatus.owner_id == owner_id,
                    LinkHealthStatus.link_url == link_url,
                )
            )
            row = result.scalar_one_or_none()
            return _to_health_record(row) if row else None

    async def upsert_health_status(self, record: LinkHealthRecord) -> uuid.UUID:
        values = asdict(record)
        now = datetime.now(timezone.utc)
        stmt = pg_insert(LinkHealthStatus).values(**values, created_at=now, updated_at=now)
        # Keep the existing row id so issues from earlier runs stay attached
        replace = {k: stmt.excluded[k] for k in values if k not in ("id", "owner_id", "link_url")}
        replace["updated_at"] = now
        stmt = stmt.on_conflict_do_update(
            constraint="uq_link_health_owner_link",
            set_=replace,
        ).returning(LinkHealthStatus.id)

        async with self.session_factory() as db:
            result = await db.execute(stmt)
            stored_id = result.scalar_one()
            await db.commit()
        return stored_id

    async def insert_issue(self, issue: IssueRecord) -> None:
        async with self.session_factory() as db:
            db.add(LinkHealthIssue(**asdict(issue)))
            await db.commit()

    async def get_latest_history(self, owner_id: uuid.UUID) -> Optional[HistorySnapshot]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(HealthHistory)
                .where(HealthHistory.owner_id == owner_id)
                .order_by(HealthHistory.recorded_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_history_snapshot(row) if row else None

    async def save_history(self, snapshot: HistorySnapshot) -> None:
        values = asdict(snapshot)
        if values["recorded_at"] is None:
            values.pop("recorded_at")
        async with self.session_factory() as db:
            db.add(HealthHistory(**values))
            await db.commit()

    async def list_health_statuses(self, owner_id: uuid.UUID, limit: int = 100) -> list[LinkHealthRecord]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(LinkHealthStatus)
                .where(LinkHealthStatus.owner_id == owner_id)
                .order_by(LinkHealthStatus.last_check_at.asc().nullsfirst())
                .limit(limit)
            )
            return [_to_health_record(row) for row in result.scalars().all()]

    async def update_health_status(self, health_id: uuid.UUID, **values: Any) -> None:
        async with self.session_factory() as db:
            await db.execute(
                update(LinkHealthStatus).where(LinkHealthStatus.id == health_id).values(**values)
            )
            await db.commit()
