"""Destination fingerprinting for drift detection.

A fingerprint captures three identity-bearing fields of a destination page:
title, primary image and a bounded content hash. Fields stay individually
comparable so two observations can be scored position by position.

Usage:
    fingerprinter = DestinationFingerprinter()
    result = await fingerprinter.fingerprint(url, previous=stored_fingerprint)
    if result.has_changed:
        ...  # destination drifted since the last audit
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional, Union
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from linkguard.config import get_settings
from linkguard.detectors.crawler import extract_title
from linkguard.detectors.http import HttpDetector
from linkguard.errors import LinkAuditError

logger = logging.getLogger(__name__)

_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Fingerprint:
    title: str = ""
    primary_image: str = ""
    content_hash: str = ""

    def fields(self) -> tuple[str, ...]:
        return (self.title, self.primary_image, self.content_hash)

    @property
    def is_empty(self) -> bool:
        return not any(self.fields())

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


StoredFingerprint = Union[Fingerprint, dict, str, None]


def decode_fields(value: StoredFingerprint) -> Optional[list[str]]:
    """Decode any stored fingerprint form into its ordered field list.

    Accepts a ``Fingerprint``, the JSON record stored in the database, or the
    older base64 ``title|image|hash`` string. Returns None when there is
    nothing to compare against and raises ValueError for garbage.
    """
    if value is None:
        return None
    if isinstance(value, Fingerprint):
        return None if value.is_empty else list(value.fields())
    if isinstance(value, dict):
        fp = Fingerprint(
            title=value.get("title") or "",
            primary_image=value.get("primary_image") or "",
            content_hash=value.get("content_hash") or "",
        )
        return None if fp.is_empty else list(fp.fields())
    if isinstance(value, str):
        if not value.strip():
            return None
        if value.lstrip().startswith("{"):
            return decode_fields(json.loads(value))
        try:
            decoded = base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValueError(f"Undecodable fingerprint: {value[:40]!r}") from e
        return decoded.split("|")
    raise ValueError(f"Unsupported fingerprint type: {type(value).__name__}")


def content_hash(html: str, limit: int = 10000) -> str:
    """32-bit rolling hash of the page markup minus scripts and styles."""
    normalized = _STYLE_RE.sub("", _SCRIPT_RE.sub("", html or ""))
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()

    h = 0
    for ch in normalized[:limit]:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(h, "x")


def extract_primary_image(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """og:image if declared, else the first <img src>, resolved absolute."""
    meta = soup.find("meta", attrs={"property": "og:image"}) or soup.find("meta", attrs={"name": "og:image"})
    candidate = meta.get("content") if meta else None

    if not candidate:
        img = soup.find("img", src=True)
        candidate = img["src"] if img else None

    if not candidate or not candidate.strip():
        return None
    try:
        return urljoin(base_url, candidate.strip())
    except ValueError:
        return candidate.strip()


def build_fingerprint(html: str, url: str, content_limit: int = 10000) -> Fingerprint:
    soup = BeautifulSoup(html or "", "lxml")
    return Fingerprint(
        title=extract_title(soup) or "",
        primary_image=extract_primary_image(soup, url) or "",
        content_hash=content_hash(html, content_limit),
    )


@dataclass
class FingerprintResult:
    fingerprint: Fingerprint
    has_changed: bool = False
    change_percentage: int = 0
    similarity: Optional[float] = None
    page_title: Optional[str] = None
    primary_image: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint.to_dict(),
            "has_changed": self.has_changed,
            "change_percentage": self.change_percentage,
            "similarity": self.similarity,
        }


class DestinationFingerprinter(HttpDetector):
    """Fetch a destination, fingerprint it and compare with a prior observation.

    Fails open: if the page cannot be fetched the result carries an empty
    fingerprint and ``has_changed=False``.
    """

    accept = "text/html,application/xhtml+xml"

    def __init__(
        self,
        timeout: Optional[float] = None,
        content_limit: Optional[int] = None,
        drift_threshold: Optional[float] = None,
        field_count: Callable[[int, int], int] = max,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        super().__init__(
            timeout=timeout or settings.fingerprint_timeout_seconds,
            user_agent=user_agent,
            client=client,
        )
        self.content_limit = content_limit or settings.fingerprint_content_limit
        self.drift_threshold = settings.drift_threshold if drift_threshold is None else drift_threshold
        self.field_count = field_count

    async def fingerprint(self, url: str, previous: StoredFingerprint = None) -> FingerprintResult:
        try:
            response = await self._send("GET", url, follow_redirects=True)
        except LinkAuditError as e:
            logger.info(f"[fingerprint] Cannot fetch {url}, skipping drift check: {e}")
            return FingerprintResult(fingerprint=Fingerprint())

        if not response.is_success:
            logger.info(f"[fingerprint] {url} returned HTTP {response.status_code}, skipping drift check")
            return FingerprintResult(fingerprint=Fingerprint())

        try:
            current = build_fingerprint(response.text, str(response.url), self.content_limit)
        except Exception as e:
            logger.warning(f"[fingerprint] Could not parse {url}: {e}")
            return FingerprintResult(fingerprint=Fingerprint())

        result = self.assess(current, previous)
        if result.has_changed:
            logger.info(f"[fingerprint] Drift detected for {url} ({result.change_percentage}% changed)")
        return result

    def assess(self, current: Fingerprint, previous: StoredFingerprint) -> FingerprintResult:
        """Compare a fresh fingerprint with the stored one, if there is one."""
        result = FingerprintResult(
            fingerprint=current,
            page_title=current.title or None,
            primary_image=current.primary_image or None,
        )

        try:
            previous_fields = decode_fields(previous)
        except (ValueError, TypeError) as e:
            # Unreadable prior signature counts as completely different
            logger.warning(f"[fingerprint] Bad stored fingerprint: {e}")
            previous_fields = []

        if previous_fields is not None:
            similarity = self.similarity(list(current.fields()), previous_fields)
            result.similarity = similarity
            result.has_changed = similarity < self.drift_threshold
            result.change_percentage = round((1 - similarity) * 100)

        return result

    def compare(self, a: StoredFingerprint, b: StoredFingerprint) -> float:
        """Similarity of two fingerprints in [0, 1]."""
        try:
            fields_a = decode_fields(a) or []
            fields_b = decode_fields(b) or []
        except (ValueError, TypeError):
            return 0.0
        return self.similarity(fields_a, fields_b)

    def similarity(self, fields_a: list[str], fields_b: list[str]) -> float:
        total = self.field_count(len(fields_a), len(fields_b))
        if total == 0:
            return 1.0 if len(fields_a) == len(fields_b) else 0.0
        matches = sum(1 for x, y in zip(fields_a, fields_b) if x == y)
        return matches / total
