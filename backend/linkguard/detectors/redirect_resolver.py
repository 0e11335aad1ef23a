"""Redirect chain resolver.

Follows an affiliate link's redirect chain one hop at a time to:
  - detect broken links (4xx/5xx, timeouts, DNS failures)
  - record every hop with its status and timestamp
  - detect redirect loops and runaway chains
  - measure total redirect time, which users feel before the page loads

Reachability problems never raise; they end up in ``RedirectChainResult``
as ``is_broken`` plus a human-readable ``error``.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import httpx

from linkguard.config import get_settings
from linkguard.detectors.constants import (
    HEAD_UNSUPPORTED_STATUSES,
    NO_RESPONSE_STATUS,
    TEMPORARY_REDIRECT_STATUSES,
)
from linkguard.detectors.http import HttpDetector
from linkguard.errors import (
    HttpError,
    InvalidLocationError,
    LinkAuditError,
    MissingLocationError,
    ProtocolError,
    RedirectLoopError,
    TooManyRedirectsError,
)

logger = logging.getLogger(__name__)


@dataclass
class RedirectHop:
    url: str
    status_code: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "status_code": self.status_code,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RedirectChainResult:
    final_url: str
    hops: list[RedirectHop]
    total_time_ms: int
    is_broken: bool
    error: Optional[str] = None

    @property
    def redirect_count(self) -> int:
        return max(len(self.hops) - 1, 0)

    @property
    def final_status(self) -> Optional[int]:
        return self.hops[-1].status_code if self.hops else None


@dataclass
class ChainHealth:
    health_score: int
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def analyze_chain_health(result: RedirectChainResult) -> ChainHealth:
    """Score a resolved chain from 0 to 100. Pure function of the result."""
    if result.is_broken:
        return ChainHealth(health_score=0, issues=[f"Broken link: {result.error}"])

    score = 100
    warnings = []

    redirect_count = result.redirect_count
    if redirect_count > 5:
        warnings.append(f"Excessive redirects ({redirect_count} hops)")
        score -= 20
    elif redirect_count > 3:
        warnings.append(f"Multiple redirects ({redirect_count} hops)")
        score -= 10

    if result.total_time_ms > 5000:
        warnings.append(f"Slow redirect chain ({result.total_time_ms}ms)")
        score -= 15
    elif result.total_time_ms > 3000:
        warnings.append(f"Moderately slow redirects ({result.total_time_ms}ms)")
        score -= 5

    if any(hop.url.lower().startswith("http://") for hop in result.hops):
        warnings.append("Chain includes insecure HTTP redirect")
        score -= 10

    if any(hop.status_code in TEMPORARY_REDIRECT_STATUSES for hop in result.hops):
        warnings.append("Chain uses temporary redirects - may be unstable")
        score -= 5

    return ChainHealth(health_score=max(0, score), warnings=warnings)


class RedirectResolver(HttpDetector):
    """Follow redirect chains manually, hop by hop."""

    accept = "*/*"

    def __init__(
        self,
        max_hops: Optional[int] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        super().__init__(
            timeout=timeout or settings.redirect_timeout_seconds,
            user_agent=user_agent,
            client=client,
        )
        self.max_hops = max_hops or settings.max_redirect_hops

    async def resolve(self, start_url: str) -> RedirectChainResult:
        started = time.monotonic()
        hops: list[RedirectHop] = []
        visited: set[str] = set()
        current_url = start_url
        error: Optional[str] = None

        while True:
            if len(hops) >= self.max_hops:
                error = str(TooManyRedirectsError(f"Exceeded maximum redirect hops ({self.max_hops})"))
                break

            visited.add(current_url)
            try:
                response = await self._fetch_hop(current_url)
            except LinkAuditError as e:
                hops.append(RedirectHop(current_url, NO_RESPONSE_STATUS, datetime.now(timezone.utc)))
                error = str(e)
                break

            status = response.status_code
            hops.append(RedirectHop(current_url, status, datetime.now(timezone.utc)))
            logger.debug(f"[redirects] hop {len(hops)}: {current_url} -> {status}")

            if status >= 400:
                error = str(HttpError(status, response.reason_phrase))
                break
            if status < 300:
                break

            try:
                current_url = self._next_url(current_url, response, visited, len(hops))
            except ProtocolError as e:
                error = str(e)
                break

        total_time_ms = int((time.monotonic() - started) * 1000)
        if error:
            logger.info(f"[redirects] {start_url} is broken: {error}")

        return RedirectChainResult(
            final_url=hops[-1].url,
            hops=hops,
            total_time_ms=total_time_ms,
            is_broken=error is not None,
            error=error,
        )

    async def is_broken(self, url: str) -> bool:
        """Quick check: final reachability only."""
        result = await self.resolve(url)
        return result.is_broken

    def analyze_chain_health(self, result: RedirectChainResult) -> ChainHealth:
        return analyze_chain_health(result)

    async def _fetch_hop(self, url: str) -> httpx.Response:
        response = await self._send("HEAD", url, follow_redirects=False, read_body=False)
        if response.status_code in HEAD_UNSUPPORTED_STATUSES:
            # Some storefronts reject HEAD outright
            response = await self._send("GET", url, follow_redirects=False, read_body=False)
        return response

    @staticmethod
    def _next_url(current_url: str, response: httpx.Response, visited: set[str], hop_number: int) -> str:
        location = response.headers.get("location")
        if not location or not location.strip():
            raise MissingLocationError(
                f"Redirect response ({response.status_code}) missing Location header"
            )

        try:
            next_url = urljoin(current_url, location.strip())
            parsed = urlparse(next_url)
        except ValueError as e:
            raise InvalidLocationError(f"Invalid redirect URL: {location}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidLocationError(f"Invalid redirect URL: {location}")

        if next_url in visited:
            raise RedirectLoopError(f"Redirect loop detected at hop {hop_number + 1}: {next_url}")

        return next_url
