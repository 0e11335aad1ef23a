"""Stock availability and destination health checks.

Looks at a destination's HTTP status and page text for:
  - reachability (>= 400 is broken regardless of content)
  - stock signals, using curated phrase lists (out-of-stock checked first)
  - presence of an expected affiliate tag in the request or landing URL
  - destination drift against a stored fingerprint

Text matching only; nothing on the page is executed or followed.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from linkguard.config import get_settings
from linkguard.detectors.constants import IN_STOCK_PHRASES, OUT_OF_STOCK_PHRASES
from linkguard.detectors.fingerprinter import DestinationFingerprinter, StoredFingerprint, build_fingerprint
from linkguard.detectors.http import HttpDetector
from linkguard.errors import LinkAuditError

logger = logging.getLogger(__name__)

IN_STOCK = "in_stock"
OUT_OF_STOCK = "out_of_stock"
UNKNOWN = "unknown"

# Confidence (0-100) attached to each phrase-match outcome
OUT_OF_STOCK_CONFIDENCE = 70
IN_STOCK_CONFIDENCE = 60
NO_SIGNAL_CONFIDENCE = 40


@dataclass
class StockCheckResult:
    product_url: str
    stock_status: str
    confidence: int
    last_checked: datetime
    http_status: Optional[int] = None
    is_broken: bool = False
    matched_phrase: Optional[str] = None


@dataclass
class HealthCheckResult:
    url: str
    is_healthy: bool
    health_status: str  # healthy, out_of_stock, broken, tag_missing, drifted
    http_status: Optional[int]
    response_time_ms: int
    stock_status: Optional[str] = None
    has_affiliate_tag: bool = False
    destination_changed: bool = False
    final_url: Optional[str] = None
    error: Optional[str] = None
    evidence: list[str] = field(default_factory=list)


def detect_stock_status(html: str) -> tuple[str, Optional[str]]:
    """Return (stock_status, matched_phrase) for a page body."""
    lower_html = (html or "").lower()

    for phrase in OUT_OF_STOCK_PHRASES:
        if phrase in lower_html:
            return OUT_OF_STOCK, phrase

    for phrase in IN_STOCK_PHRASES:
        if phrase in lower_html:
            return IN_STOCK, phrase

    return UNKNOWN, None


class StockChecker(HttpDetector):

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 fingerprinter: Optional[DestinationFingerprinter] = None):
        super().__init__(
            timeout=timeout or get_settings().stock_timeout_seconds,
            user_agent=user_agent,
            client=client,
        )
        # Only used for its comparison logic; never fetches
        self.fingerprinter = fingerprinter or DestinationFingerprinter()

    async def check_stock(self, product_url: str) -> StockCheckResult:
        """Phrase-match a product page for stock signals. Never raises for network problems."""
        now = datetime.now(timezone.utc)
        try:
            response = await self._send("GET", product_url, follow_redirects=True)
        except LinkAuditError as e:
            logger.info(f"[stock] Could not fetch {product_url}: {e}")
            return StockCheckResult(product_url=product_url, stock_status=UNKNOWN, confidence=0, last_checked=now)

        if response.status_code >= 400:
            return StockCheckResult(
                product_url=product_url,
                stock_status=UNKNOWN,
                confidence=0,
                last_checked=now,
                http_status=response.status_code,
                is_broken=True,
            )

        status, phrase = detect_stock_status(response.text)
        confidence = {
            OUT_OF_STOCK: OUT_OF_STOCK_CONFIDENCE,
            IN_STOCK: IN_STOCK_CONFIDENCE,
        }.get(status, NO_SIGNAL_CONFIDENCE)

        return StockCheckResult(
            product_url=product_url,
            stock_status=status,
            confidence=confidence,
            last_checked=now,
            http_status=response.status_code,
            matched_phrase=phrase,
        )

    async def check_url(
        self,
        url: str,
        expected_affiliate_tag: Optional[str] = None,
        previous_fingerprint: StoredFingerprint = None,
        timeout: Optional[float] = None,
    ) -> HealthCheckResult:
        """Single-destination health check used outside a full audit run."""
        started = time.monotonic()

        def _elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            response = await self._send("GET", url, follow_redirects=True, timeout=timeout)
        except LinkAuditError as e:
            return HealthCheckResult(
                url=url,
                is_healthy=False,
                health_status="broken",
                http_status=None,
                response_time_ms=_elapsed(),
                error=str(e),
                evidence=[f"Network error: {e}"],
            )

        http_status = response.status_code
        if http_status >= 400:
            return HealthCheckResult(
                url=url,
                is_healthy=False,
                health_status="broken",
                http_status=http_status,
                response_time_ms=_elapsed(),
                final_url=str(response.url),
                error=f"HTTP {http_status}",
                evidence=[f"Returned HTTP {http_status}"],
            )

        html = response.text
        final_url = str(response.url)
        evidence = []

        stock_status, phrase = detect_stock_status(html)

        if expected_affiliate_tag:
            has_tag = expected_affiliate_tag in final_url or expected_affiliate_tag in url
            if not has_tag:
                evidence.append(f"Missing affiliate tag: {expected_affiliate_tag}")
        else:
            has_tag = True

        changed = False
        if previous_fingerprint:
            current = build_fingerprint(html, final_url, self.fingerprinter.content_limit)
            drift = self.fingerprinter.assess(current, previous_fingerprint)
            changed = drift.has_changed
            if changed:
                evidence.append(f"Page content or structure changed ({drift.change_percentage}%)")

        if stock_status == OUT_OF_STOCK:
            health_status = "out_of_stock"
            evidence.append(f"Product appears to be out of stock ('{phrase}')")
        elif not has_tag:
            health_status = "tag_missing"
        elif changed:
            health_status = "drifted"
        else:
            health_status = "healthy"

        return HealthCheckResult(
            url=url,
            is_healthy=health_status == "healthy",
            health_status=health_status,
            http_status=http_status,
            response_time_ms=_elapsed(),
            stock_status=stock_status,
            has_affiliate_tag=has_tag,
            destination_changed=changed,
            final_url=final_url,
            evidence=evidence,
        )
