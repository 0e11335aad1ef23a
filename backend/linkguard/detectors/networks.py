"""Affiliate network strategies, in cascade order.

Each strategy inspects a parsed URL and returns a ``MonetizationResult``.
Adding a network means adding one decorated function here; registration
order is cascade order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import ParseResult, parse_qs

from linkguard.detectors.constants import (
    AMAZON_HOST_MARKERS,
    AWIN_DOMAINS,
    CJ_DOMAINS,
    IMPACT_DOMAINS,
    RAKUTEN_DOMAINS,
    RAKUTEN_HOST_MARKER,
    SHAREASALE_DOMAINS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonetizationResult:
    has_affiliate_tag: bool
    is_optimal: bool
    affiliate_network: Optional[str] = None
    affiliate_tag: Optional[str] = None
    optimization_suggestion: Optional[str] = None


NOT_MATCHED = MonetizationResult(has_affiliate_tag=False, is_optimal=False)

NetworkStrategy = Callable[[ParseResult], MonetizationResult]

# Cascade order == registration order
_NETWORKS: list[tuple[str, NetworkStrategy]] = []


def register_network(name: str):
    """Decorator to append a network strategy to the cascade."""
    def decorator(fn: NetworkStrategy) -> NetworkStrategy:
        _NETWORKS.append((name, fn))
        logger.debug(f"Registered affiliate network strategy: {name}")
        return fn
    return decorator


def list_networks() -> tuple[tuple[str, NetworkStrategy], ...]:
    return tuple(_NETWORKS)


def _hostname(url: ParseResult) -> str:
    return (url.hostname or "").lower()


def _on_domain(host: str, domains: frozenset[str]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def _tracked(network: str) -> MonetizationResult:
    return MonetizationResult(has_affiliate_tag=True, is_optimal=True, affiliate_network=network)


@register_network("Amazon Associates")
def detect_amazon(url: ParseResult) -> MonetizationResult:
    host = _hostname(url)
    if not any(marker in host for marker in AMAZON_HOST_MARKERS):
        return NOT_MATCHED

    tag = (parse_qs(url.query).get("tag") or [None])[0]
    if tag:
        return MonetizationResult(
            has_affiliate_tag=True,
            is_optimal=True,
            affiliate_network="Amazon Associates",
            affiliate_tag=tag,
        )

    return MonetizationResult(
        has_affiliate_tag=False,
        is_optimal=False,
        affiliate_network="Amazon Associates",
        optimization_suggestion="Add your Amazon Associates tag to this link",
    )


@register_network("Impact.com")
def detect_impact(url: ParseResult) -> MonetizationResult:
    return _tracked("Impact.com") if _on_domain(_hostname(url), IMPACT_DOMAINS) else NOT_MATCHED


@register_network("ShareASale")
def detect_shareasale(url: ParseResult) -> MonetizationResult:
    return _tracked("ShareASale") if _on_domain(_hostname(url), SHAREASALE_DOMAINS) else NOT_MATCHED


@register_network("CJ Affiliate")
def detect_cj(url: ParseResult) -> MonetizationResult:
    return _tracked("CJ Affiliate") if _on_domain(_hostname(url), CJ_DOMAINS) else NOT_MATCHED


@register_network("Awin")
def detect_awin(url: ParseResult) -> MonetizationResult:
    return _tracked("Awin") if _on_domain(_hostname(url), AWIN_DOMAINS) else NOT_MATCHED


@register_network("Rakuten")
def detect_rakuten(url: ParseResult) -> MonetizationResult:
    host = _hostname(url)
    if RAKUTEN_HOST_MARKER in host or _on_domain(host, RAKUTEN_DOMAINS):
        return _tracked("Rakuten")
    return NOT_MATCHED
