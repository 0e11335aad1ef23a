"""Link crawler for link-in-bio pages (Linktree, Beacons, Stan Store, etc.).

Fetches a tracked page and extracts every outbound link in document order,
classified as internal, affiliate or external.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from linkguard.config import get_settings
from linkguard.detectors.constants import AFFILIATE_LINK_PATTERNS, SKIPPED_HREF_PREFIXES
from linkguard.detectors.http import HttpDetector
from linkguard.errors import LinkAuditError, ParseError

logger = logging.getLogger(__name__)

LINK_INTERNAL = "internal"
LINK_EXTERNAL = "external"
LINK_AFFILIATE = "affiliate"


@dataclass
class ExtractedLink:
    url: str
    position: int
    link_type: str
    text: Optional[str] = None


@dataclass
class CrawlResult:
    success: bool
    links_found: list[ExtractedLink] = field(default_factory=list)
    page_title: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


def _parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
        return title or None
    return None


def classify_link(url: str, base_url: str) -> str:
    """Classify a resolved link relative to the page it was found on."""
    link_host = (urlparse(url).hostname or "").lower()
    base_host = (urlparse(base_url).hostname or "").lower()

    if link_host and link_host == base_host:
        return LINK_INTERNAL

    for pattern in AFFILIATE_LINK_PATTERNS:
        if pattern.search(url):
            return LINK_AFFILIATE

    return LINK_EXTERNAL


def extract_links(html: str, base_url: str) -> list[ExtractedLink]:
    """Extract anchors in document order, resolving relative hrefs.

    Malformed markup yields whatever the parser could recover.
    """
    return _links_from_soup(_parse_html(html), base_url)


def _links_from_soup(soup: BeautifulSoup, base_url: str) -> list[ExtractedLink]:
    # Respect <base href> when the page declares one
    base_tag = soup.find("base", href=True)
    resolve_base = urljoin(base_url, base_tag["href"].strip()) if base_tag else base_url

    links: list[ExtractedLink] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
            continue

        try:
            absolute_url = urljoin(resolve_base, href)
            parsed = urlparse(absolute_url)
        except ValueError:
            logger.debug(f"[crawler] Unparsable href skipped: {href!r}")
            continue

        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            continue

        text = " ".join(anchor.get_text(" ", strip=True).split())
        links.append(ExtractedLink(
            url=absolute_url,
            position=len(links),
            link_type=classify_link(absolute_url, base_url),
            text=text or None,
        ))

    return links


class LinkCrawler(HttpDetector):
    """Crawl a page and extract its links. Never raises."""

    accept = "text/html,application/xhtml+xml"

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        super().__init__(
            timeout=timeout or get_settings().crawl_timeout_seconds,
            user_agent=user_agent,
            client=client,
        )

    async def crawl(self, page_url: str) -> CrawlResult:
        try:
            response = await self._send("GET", page_url, follow_redirects=True)
        except LinkAuditError as e:
            logger.warning(f"[crawler] Failed to fetch {page_url}: {e}")
            return CrawlResult(success=False, error=str(e))

        if not response.is_success:
            error = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning(f"[crawler] {page_url} returned {error}")
            return CrawlResult(success=False, status_code=response.status_code, error=error)

        # Relative links resolve against where we actually landed
        final_url = str(response.url)
        try:
            soup = _parse_html(response.text)
            links = _links_from_soup(soup, final_url)
            title = extract_title(soup)
        except Exception as e:
            error = ParseError(f"Could not parse {page_url}: {e}")
            logger.warning(f"[crawler] {error}")
            links, title = [], None

        logger.info(f"[crawler] Found {len(links)} links on {page_url}")
        return CrawlResult(
            success=True,
            links_found=links,
            page_title=title,
            status_code=response.status_code,
        )
