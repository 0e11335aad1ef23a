"""Monetization detector: does a link carry affiliate tracking?

Runs the registered network strategies in order and returns the first
positive match. Pure URL inspection: no network traffic.
"""

import logging
from urllib.parse import urlparse

from linkguard.detectors.networks import MonetizationResult, list_networks

logger = logging.getLogger(__name__)

NOT_MONETIZED = MonetizationResult(
    has_affiliate_tag=False,
    is_optimal=False,
    optimization_suggestion="Consider adding affiliate tracking to this link",
)


class MonetizationDetector:

    def detect_url(self, url: str) -> MonetizationResult:
        try:
            parsed = urlparse(url)
        except ValueError:
            logger.debug(f"[monetization] Unparsable URL: {url!r}")
            return MonetizationResult(has_affiliate_tag=False, is_optimal=False)

        # A network that recognised the host but found no tag is more useful
        # to report than the generic suggestion
        fallback = NOT_MONETIZED
        for name, strategy in list_networks():
            result = strategy(parsed)
            if result.has_affiliate_tag:
                return result
            if result.affiliate_network and fallback is NOT_MONETIZED:
                fallback = result

        return fallback

    async def detect(self, url: str) -> MonetizationResult:
        """Async wrapper so the orchestrator can gather it with the other detectors."""
        return self.detect_url(url)
