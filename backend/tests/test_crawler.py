"""Tests for the link crawler."""

import httpx
import pytest

from linkguard.detectors.crawler import (
    LINK_AFFILIATE,
    LINK_EXTERNAL,
    LINK_INTERNAL,
    LinkCrawler,
    classify_link,
    extract_links,
)

BIO_PAGE = """
<html>
  <head><title> My Links </title></head>
  <body>
    <a href="https://amzn.to/3abc">My camera</a>
    <a href="/about">About me</a>
    <a href="#top">Top</a>
    <a href="mailto:me@example.com">Email</a>
    <a href="javascript:void(0)">Nope</a>
    <a href="https://blog.example.org/post">  Latest
       post </a>
    <a href="ftp://files.example.org/x">FTP</a>
    <a href="https://www.amazon.com/dp/B00TEST?tag=creator-20">Tripod</a>
  </body>
</html>
"""


class TestExtractLinks:
    """Tests for extract_links."""

    def test_keeps_document_order_with_dense_positions(self):
        """Should return http(s) links in order, positions counting kept links only."""
        links = extract_links(BIO_PAGE, "https://linktr.ee/creator")

        assert [link.url for link in links] == [
            "https://amzn.to/3abc",
            "https://linktr.ee/about",
            "https://blog.example.org/post",
            "https://www.amazon.com/dp/B00TEST?tag=creator-20",
        ]
        assert [link.position for link in links] == [0, 1, 2, 3]

    def test_classifies_links(self):
        """Should mark same-host links internal and known networks affiliate."""
        links = extract_links(BIO_PAGE, "https://linktr.ee/creator")

        assert [link.link_type for link in links] == [
            LINK_AFFILIATE, LINK_INTERNAL, LINK_EXTERNAL, LINK_AFFILIATE,
        ]

    def test_normalizes_anchor_text(self):
        """Should collapse whitespace in anchor text."""
        links = extract_links(BIO_PAGE, "https://linktr.ee/creator")
        assert links[2].text == "Latest post"

    def test_respects_base_href(self):
        """Should resolve relative hrefs against <base href> when present."""
        html = '<html><head><base href="https://cdn.example.com/shop/"></head><body><a href="item">x</a></body></html>'
        links = extract_links(html, "https://linktr.ee/creator")
        assert links[0].url == "https://cdn.example.com/shop/item"

    def test_malformed_markup_is_tolerated(self):
        """Should recover links from broken HTML instead of failing."""
        links = extract_links('<div><a href="https://a.example.com">A<p><a href="https://b.example.com">B', "https://x.com")
        assert [link.url for link in links] == ["https://a.example.com", "https://b.example.com"]

    def test_empty_page(self):
        assert extract_links("", "https://x.com") == []


class TestClassifyLink:

    @pytest.mark.parametrize("url", [
        "https://www.shareasale.com/r.cfm?b=1",
        "https://click.linksynergy.com/deeplink?id=1",
        "https://www.anrdoezrs.net/click-123",
    ])
    def test_affiliate_patterns(self, url):
        assert classify_link(url, "https://linktr.ee/creator") == LINK_AFFILIATE

    def test_amazon_without_tag_is_external(self):
        assert classify_link("https://www.amazon.com/dp/B00", "https://linktr.ee/x") == LINK_EXTERNAL


class TestLinkCrawler:
    """Tests for LinkCrawler.crawl."""

    async def test_crawl_success(self, make_client):
        """Should return links and page title on a 200 response."""
        def handler(request):
            return httpx.Response(200, html=BIO_PAGE)

        async with make_client(handler) as client:
            result = await LinkCrawler(client=client).crawl("https://linktr.ee/creator")

        assert result.success is True
        assert result.page_title == "My Links"
        assert result.status_code == 200
        assert len(result.links_found) == 4
        assert result.error is None

    async def test_crawl_http_error(self, make_client):
        """Should report failure with status and reason instead of raising."""
        def handler(request):
            return httpx.Response(500, text="boom")

        async with make_client(handler) as client:
            result = await LinkCrawler(client=client).crawl("https://linktr.ee/creator")

        assert result.success is False
        assert result.status_code == 500
        assert result.error == "HTTP 500: Internal Server Error"
        assert result.links_found == []

    async def test_crawl_network_error(self, make_client):
        """Should report transport failures as an unsuccessful crawl."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            result = await LinkCrawler(client=client).crawl("https://linktr.ee/creator")

        assert result.success is False
        assert "connection refused" in result.error

    async def test_crawl_timeout(self, make_client):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        async with make_client(handler) as client:
            result = await LinkCrawler(timeout=2, client=client).crawl("https://linktr.ee/creator")

        assert result.success is False
        assert "timeout" in result.error.lower()

    async def test_relative_links_resolve_against_final_url(self, make_client):
        """Should resolve relative hrefs against the post-redirect URL."""
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://beacons.ai/creator/"})
            return httpx.Response(200, html='<a href="shop">Shop</a>')

        async with make_client(handler) as client:
            result = await LinkCrawler(client=client).crawl("https://linktr.ee/old")

        assert result.links_found[0].url == "https://beacons.ai/creator/shop"
