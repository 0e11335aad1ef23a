"""Tests for stock detection and single-destination health checks."""

import httpx
import pytest

from linkguard.detectors.stock_checker import (
    IN_STOCK,
    OUT_OF_STOCK,
    UNKNOWN,
    StockChecker,
    detect_stock_status,
)

IN_STOCK_PAGE = "<html><head><title>Lens</title></head><body><button>Add to Cart</button></body></html>"
OUT_OF_STOCK_PAGE = "<html><head><title>Lens</title></head><body><p>Sold Out</p><button>Add to cart</button></body></html>"
PLAIN_PAGE = "<html><head><title>Lens</title></head><body><p>A very nice lens.</p></body></html>"


def respond(body: str, status_code: int = 200):
    return lambda request: httpx.Response(status_code, html=body)


class TestDetectStockStatus:

    def test_out_of_stock_checked_first(self):
        """Should prefer out-of-stock phrases when both kinds appear."""
        status, phrase = detect_stock_status(OUT_OF_STOCK_PAGE)
        assert status == OUT_OF_STOCK
        assert phrase == "sold out"

    def test_in_stock(self):
        assert detect_stock_status(IN_STOCK_PAGE) == (IN_STOCK, "add to cart")

    def test_no_signal(self):
        assert detect_stock_status(PLAIN_PAGE) == (UNKNOWN, None)


class TestCheckStock:

    @pytest.mark.parametrize("body, status, confidence", [
        (OUT_OF_STOCK_PAGE, OUT_OF_STOCK, 70),
        (IN_STOCK_PAGE, IN_STOCK, 60),
        (PLAIN_PAGE, UNKNOWN, 40),
    ])
    async def test_confidence_by_outcome(self, make_client, body, status, confidence):
        async with make_client(respond(body)) as client:
            result = await StockChecker(client=client).check_stock("https://shop.example.com/p/1")

        assert result.stock_status == status
        assert result.confidence == confidence
        assert result.http_status == 200

    async def test_http_error_is_unknown(self, make_client):
        """Should leave reachability to the resolver and report unknown stock."""
        async with make_client(respond("gone", 404)) as client:
            result = await StockChecker(client=client).check_stock("https://shop.example.com/p/1")

        assert result.stock_status == UNKNOWN
        assert result.confidence == 0
        assert result.http_status == 404

    async def test_network_error_never_raises(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            result = await StockChecker(client=client).check_stock("https://shop.example.com/p/1")

        assert result.stock_status == UNKNOWN
        assert result.confidence == 0
        assert result.http_status is None


class TestCheckUrl:

    async def test_healthy(self, make_client):
        async with make_client(respond(IN_STOCK_PAGE)) as client:
            result = await StockChecker(client=client).check_url("https://shop.example.com/p/1?tag=me-20", "me-20")

        assert result.is_healthy is True
        assert result.health_status == "healthy"
        assert result.has_affiliate_tag is True

    async def test_server_error_is_broken_regardless_of_content(self, make_client):
        async with make_client(respond(IN_STOCK_PAGE, 500)) as client:
            result = await StockChecker(client=client).check_url("https://shop.example.com/p/1")

        assert result.health_status == "broken"
        assert result.http_status == 500
        assert result.is_healthy is False

    async def test_out_of_stock_wins_over_missing_tag(self, make_client):
        async with make_client(respond(OUT_OF_STOCK_PAGE)) as client:
            result = await StockChecker(client=client).check_url("https://shop.example.com/p/1", "me-20")

        assert result.health_status == "out_of_stock"
        assert result.has_affiliate_tag is False

    async def test_tag_missing(self, make_client):
        async with make_client(respond(IN_STOCK_PAGE)) as client:
            result = await StockChecker(client=client).check_url("https://shop.example.com/p/1", "me-20")

        assert result.health_status == "tag_missing"
        assert any("me-20" in line for line in result.evidence)

    async def test_drifted(self, make_client):
        previous = {"title": "Old product", "primary_image": "https://cdn/old.jpg", "content_hash": "1234"}

        async with make_client(respond(IN_STOCK_PAGE)) as client:
            result = await StockChecker(client=client).check_url(
                "https://shop.example.com/p/1", previous_fingerprint=previous,
            )

        assert result.health_status == "drifted"
        assert result.destination_changed is True

    async def test_network_error_is_broken(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            result = await StockChecker(client=client).check_url("https://shop.example.com/p/1")

        assert result.health_status == "broken"
        assert result.http_status is None
        assert result.error
