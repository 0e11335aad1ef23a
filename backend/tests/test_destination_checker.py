"""Tests for ad hoc destination re-checks."""

import logging
import uuid

import httpx

from linkguard.detectors.stock_checker import StockChecker
from linkguard.services.audit_store import LinkHealthRecord
from linkguard.services.destination_checker import DestinationChecker
from linkguard.services.health_scorer import HealthScoreBreakdown
from linkguard.services.notifier import LoggingNotifier

from conftest import InMemoryAuditStore


def site(request):
    if request.url.path == "/gone":
        return httpx.Response(404)
    if request.url.path == "/sold":
        return httpx.Response(200, html="<p>Sold out</p>")
    return httpx.Response(200, html="<title>Lens</title><button>Add to cart</button>")


class TestCheckDestinations:

    async def test_updates_stored_rows(self, make_client, owner_id):
        store = InMemoryAuditStore()
        for path in ("/ok", "/gone", "/sold"):
            url = f"https://shop.example.com{path}"
            store.health[(owner_id, url)] = LinkHealthRecord(owner_id=owner_id, link_url=url)

        async with make_client(site) as client:
            checker = DestinationChecker(store=store, stock_checker=StockChecker(client=client))
            summary = await checker.check_destinations_for(owner_id, limit=10)

        assert summary.checked == 3
        assert summary.healthy == 1
        assert summary.unhealthy == 2

        gone = store.health[(owner_id, "https://shop.example.com/gone")]
        assert gone.is_broken is True
        assert gone.status_code == 404
        assert gone.last_check_at is not None

        sold = store.health[(owner_id, "https://shop.example.com/sold")]
        assert sold.is_stock_out is True
        assert sold.stock_status == "out_of_stock"

    async def test_respects_limit(self, make_client, owner_id):
        store = InMemoryAuditStore()
        for i in range(5):
            url = f"https://shop.example.com/ok{i}"
            store.health[(owner_id, url)] = LinkHealthRecord(owner_id=owner_id, link_url=url)

        async with make_client(site) as client:
            checker = DestinationChecker(store=store, stock_checker=StockChecker(client=client))
            summary = await checker.check_destinations_for(owner_id, limit=2)

        assert summary.checked == 2

    async def test_single_url(self, make_client):
        async with make_client(site) as client:
            result = await DestinationChecker(stock_checker=StockChecker(client=client)).check_url(
                "https://shop.example.com/ok"
            )

        assert result.is_healthy is True


class TestLoggingNotifier:

    async def test_logs_summary(self, caplog):
        breakdown = HealthScoreBreakdown(
            overall_score=42.5, healthy_links_score=10, critical_issues_penalty=20, broken_links_penalty=10,
            total_links=4, healthy_links=1, critical_issues=2,
        )

        with caplog.at_level(logging.INFO, logger="linkguard.services.notifier"):
            await LoggingNotifier().notify(uuid.uuid4(), uuid.uuid4(), breakdown, [])

        assert "42.5/100" in caplog.text
        assert "Critical" in caplog.text
