"""Shared fixtures: an in-memory audit store and stubbed HTTP clients."""

import dataclasses
import uuid
from typing import Any, Callable, Optional

import httpx
import pytest

from linkguard.services.audit_store import (
    AuditStore,
    HistorySnapshot,
    IssueRecord,
    LinkHealthRecord,
    TrackedPageRecord,
)


class InMemoryAuditStore(AuditStore):
    """Dict-backed AuditStore with the same upsert semantics as PostgreSQL."""

    def __init__(self, pages: Optional[list[TrackedPageRecord]] = None):
        self.pages: list[TrackedPageRecord] = list(pages or [])
        self.page_updates: dict[uuid.UUID, dict[str, Any]] = {}
        self.runs: dict[uuid.UUID, dict[str, Any]] = {}
        self.health: dict[tuple[uuid.UUID, str], LinkHealthRecord] = {}
        self.issues: list[IssueRecord] = []
        self.history: list[HistorySnapshot] = []

    async def create_run(self, run_id, owner_id, audit_type):
        self.runs[run_id] = {"owner_id": owner_id, "audit_type": audit_type, "status": "pending"}

    async def update_run(self, run_id, **fields):
        self.runs[run_id].update(fields)

    async def get_tracked_pages(self, owner_id):
        return [p for p in self.pages if p.owner_id == owner_id]

    async def update_tracked_page(self, page_id, **fields):
        self.page_updates.setdefault(page_id, {}).update(fields)

    async def get_previous_health(self, owner_id, link_url):
        return self.health.get((owner_id, link_url))

    async def upsert_health_status(self, record):
        key = (record.owner_id, record.link_url)
        existing = self.health.get(key)
        stored = dataclasses.replace(record, id=existing.id) if existing else dataclasses.replace(record)
        self.health[key] = stored
        return stored.id

    async def insert_issue(self, issue):
        self.issues.append(issue)

    async def get_latest_history(self, owner_id):
        points = [h for h in self.history if h.owner_id == owner_id]
        return points[-1] if points else None

    async def save_history(self, snapshot):
        self.history.append(snapshot)

    async def list_health_statuses(self, owner_id, limit=100):
        return [r for (owner, _), r in self.health.items() if owner == owner_id][:limit]

    async def update_health_status(self, health_id, **fields):
        for key, record in self.health.items():
            if record.id == health_id:
                self.health[key] = dataclasses.replace(record, **fields)


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by ``handler``."""
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make
