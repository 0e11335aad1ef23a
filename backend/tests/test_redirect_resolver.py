"""Tests for the redirect chain resolver."""

from datetime import datetime, timezone

import httpx
import pytest

from linkguard.detectors.redirect_resolver import (
    RedirectChainResult,
    RedirectHop,
    RedirectResolver,
    analyze_chain_health,
)


def chain_handler(routes: dict[str, httpx.Response], calls: list):
    """Answer each URL from ``routes``; record every request made."""
    def handler(request):
        calls.append((request.method, str(request.url)))
        return routes[str(request.url)]
    return handler


def redirect(location: str, status: int = 301) -> httpx.Response:
    return httpx.Response(status, headers={"Location": location})


def hop(url: str, status: int) -> RedirectHop:
    return RedirectHop(url=url, status_code=status, timestamp=datetime.now(timezone.utc))


class TestResolve:
    """Tests for RedirectResolver.resolve."""

    @pytest.mark.parametrize("n", [0, 1, 3])
    async def test_n_redirects_then_ok(self, make_client, n):
        """Should follow n redirects to a 200 and report redirect_count == n."""
        routes = {f"https://r.example.com/{i}": redirect(f"https://r.example.com/{i + 1}") for i in range(n)}
        routes[f"https://r.example.com/{n}"] = httpx.Response(200)
        calls = []

        async with make_client(chain_handler(routes, calls)) as client:
            result = await RedirectResolver(client=client).resolve("https://r.example.com/0")

        assert result.is_broken is False
        assert result.error is None
        assert result.redirect_count == n
        assert result.final_url == f"https://r.example.com/{n}"
        assert result.final_status == 200
        assert [m for m, _ in calls] == ["HEAD"] * (n + 1)

    async def test_relative_location(self, make_client):
        routes = {
            "https://shop.example.com/go": redirect("/product/1", 302),
            "https://shop.example.com/product/1": httpx.Response(200),
        }
        async with make_client(chain_handler(routes, [])) as client:
            result = await RedirectResolver(client=client).resolve("https://shop.example.com/go")

        assert result.final_url == "https://shop.example.com/product/1"
        assert [h.status_code for h in result.hops] == [302, 200]

    async def test_loop_is_broken_without_refetch(self, make_client):
        """Should stop at a revisited URL and never fetch it again."""
        routes = {
            "https://a.example.com/": redirect("https://b.example.com/"),
            "https://b.example.com/": redirect("https://a.example.com/"),
        }
        calls = []
        async with make_client(chain_handler(routes, calls)) as client:
            result = await RedirectResolver(client=client).resolve("https://a.example.com/")

        assert result.is_broken is True
        assert "loop" in result.error.lower()
        assert len(calls) == 2
        assert len(result.hops) == 2

    async def test_hop_limit(self, make_client):
        """Should never record more than max_hops hops."""
        def handler(request):
            step = int(request.url.path.strip("/") or 0)
            return redirect(f"https://r.example.com/{step + 1}")

        async with make_client(handler) as client:
            result = await RedirectResolver(max_hops=4, client=client).resolve("https://r.example.com/0")

        assert result.is_broken is True
        assert 1 <= len(result.hops) <= 4
        assert "maximum redirect hops" in result.error

    async def test_http_error_is_broken(self, make_client):
        routes = {
            "https://r.example.com/start": redirect("https://r.example.com/gone"),
            "https://r.example.com/gone": httpx.Response(404),
        }
        async with make_client(chain_handler(routes, [])) as client:
            result = await RedirectResolver(client=client).resolve("https://r.example.com/start")

        assert result.is_broken is True
        assert result.error == "HTTP 404: Not Found"
        assert result.final_status == 404

    async def test_head_not_allowed_falls_back_to_get(self, make_client):
        """Should retry a 405 HEAD once as GET."""
        calls = []

        def handler(request):
            calls.append(request.method)
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200)

        async with make_client(handler) as client:
            result = await RedirectResolver(client=client).resolve("https://r.example.com/")

        assert calls == ["HEAD", "GET"]
        assert result.is_broken is False
        assert [h.status_code for h in result.hops] == [200]

    async def test_missing_location(self, make_client):
        routes = {"https://r.example.com/": httpx.Response(302)}
        async with make_client(chain_handler(routes, [])) as client:
            result = await RedirectResolver(client=client).resolve("https://r.example.com/")

        assert result.is_broken is True
        assert "Location" in result.error

    async def test_invalid_location(self, make_client):
        routes = {"https://r.example.com/": redirect("ftp://files.example.com/x")}
        async with make_client(chain_handler(routes, [])) as client:
            result = await RedirectResolver(client=client).resolve("https://r.example.com/")

        assert result.is_broken is True
        assert "Invalid redirect URL" in result.error

    async def test_network_failure_records_hop(self, make_client):
        """Should record the unreachable hop and mark the chain broken."""
        def handler(request):
            raise httpx.ConnectError("dns failure", request=request)

        async with make_client(handler) as client:
            result = await RedirectResolver(client=client).resolve("https://nowhere.example.com/")

        assert result.is_broken is True
        assert len(result.hops) == 1
        assert 100 <= result.hops[0].status_code <= 599
        assert "dns failure" in result.error

    async def test_timeout_is_broken(self, make_client):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        async with make_client(handler) as client:
            result = await RedirectResolver(timeout=1, client=client).resolve("https://slow.example.com/")

        assert result.is_broken is True
        assert "timeout" in result.error.lower()

    async def test_is_broken_shortcut(self, make_client):
        async with make_client(lambda request: httpx.Response(410)) as client:
            assert await RedirectResolver(client=client).is_broken("https://r.example.com/") is True


class TestAnalyzeChainHealth:
    """Tests for analyze_chain_health."""

    def test_broken_scores_zero(self):
        result = RedirectChainResult(
            final_url="https://x.com", hops=[hop("https://x.com", 404)],
            total_time_ms=50, is_broken=True, error="HTTP 404: Not Found",
        )
        health = analyze_chain_health(result)
        assert health.health_score == 0
        assert health.issues

    def test_clean_chain_scores_100(self):
        result = RedirectChainResult(
            final_url="https://x.com", hops=[hop("https://x.com", 200)], total_time_ms=120, is_broken=False,
        )
        assert analyze_chain_health(result).health_score == 100

    def test_penalties_accumulate(self):
        """Should deduct for redirect count, slowness, insecure and temporary hops."""
        hops = [hop("http://a.com", 302)] + [hop(f"https://b.com/{i}", 301) for i in range(5)] + [hop("https://c.com", 200)]
        result = RedirectChainResult(final_url="https://c.com", hops=hops, total_time_ms=6000, is_broken=False)

        health = analyze_chain_health(result)

        # 6 redirects -20, >5s -15, http -10, temporary -5
        assert health.health_score == 50
        assert len(health.warnings) == 4

    def test_moderate_penalties(self):
        hops = [hop(f"https://b.com/{i}", 301) for i in range(4)] + [hop("https://c.com", 200)]
        result = RedirectChainResult(final_url="https://c.com", hops=hops, total_time_ms=3500, is_broken=False)

        # 4 redirects -10, >3s -5
        assert analyze_chain_health(result).health_score == 85
