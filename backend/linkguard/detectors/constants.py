"""Curated lookup tables shared by the detectors. Read-only at runtime."""

import re

# Link crawler: URLs matching any of these are classified as affiliate links
AFFILIATE_LINK_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"amazon\.[a-z.]+.*[?&]tag=",
        r"amzn\.to",
        r"shareasale\.com",
        r"go\.impact\.com",
        r"pntra\.com",
        r"pjtra\.com",
        r"pjatr\.com",
        r"sjv\.io",
        r"rstyle\.me",
        r"shopstyle\.",
        r"howl\.me",
        r"skimresources\.com",
        r"awin1\.com",
        r"anrdoezrs\.net",
        r"tkqlhce\.com",
        r"jdoqocy\.com",
        r"kqzyfj\.com",
        r"dpbolvw\.net",
        r"afcpatrk\.com",
        r"commissionjunction\.",
        r"rakuten",
        r"linksynergy\.com",
    )
)

# Hrefs the crawler never follows
SKIPPED_HREF_PREFIXES: tuple[str, ...] = ("#", "javascript:", "mailto:", "tel:")

# Monetization detector: network host families
AMAZON_HOST_MARKERS: tuple[str, ...] = ("amazon.", "amzn.")
IMPACT_DOMAINS: frozenset[str] = frozenset({
    "go.impact.com", "goto.impact.com", "pntra.com", "pjtra.com", "pjatr.com", "sjv.io",
})
SHAREASALE_DOMAINS: frozenset[str] = frozenset({"shareasale.com"})
CJ_DOMAINS: frozenset[str] = frozenset({
    "anrdoezrs.net", "tkqlhce.com", "jdoqocy.com", "kqzyfj.com", "dpbolvw.net", "afcpatrk.com",
})
AWIN_DOMAINS: frozenset[str] = frozenset({"awin1.com"})
RAKUTEN_DOMAINS: frozenset[str] = frozenset({"linksynergy.com"})
RAKUTEN_HOST_MARKER = "rakuten"

# Stock checker: out-of-stock phrases are checked before in-stock phrases
OUT_OF_STOCK_PHRASES: tuple[str, ...] = (
    "out of stock",
    "sold out",
    "currently unavailable",
    "not available",
    "no longer available",
    "unavailable",
    "out-of-stock",
    "soldout",
    "stock: 0",
    "inventory: 0",
)
IN_STOCK_PHRASES: tuple[str, ...] = (
    "add to cart",
    "add to bag",
    "buy now",
    "in stock",
    "available now",
    "ships today",
    "free shipping",
)

# Redirect resolver: statuses treated as temporary redirects
TEMPORARY_REDIRECT_STATUSES: frozenset[int] = frozenset({302, 303, 307})
# Statuses that mean "HEAD not supported here, try GET"
HEAD_UNSUPPORTED_STATUSES: frozenset[int] = frozenset({405, 501})
# Recorded for a hop whose request never got a response
NO_RESPONSE_STATUS = 599
