"""Request context parsing: device, browser, OS, traffic source and client IP.

Everything here is derived from HTTP headers and the event's referrer/UTM
fields. Results are best-effort labels for reporting, never used for access
decisions.
"""

import hashlib
import hmac as hmac_module
import re
from dataclasses import dataclass

TABLET_PATTERN = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
MOBILE_PATTERN = re.compile(
    r"Mobile|Android|iP(hone|od)|IEMobile|BlackBerry|Kindle|Silk-Accelerated|(hpw|web)OS|Opera M(obi|ini)"
)

# Checked in order; the first substring match wins.
BROWSER_PATTERNS: list[tuple[str, str]] = [
    ("Firefox", "Firefox"),
    ("SamsungBrowser", "Samsung Browser"),
    ("Opera", "Opera"),
    ("OPR", "Opera"),
    ("Trident", "Internet Explorer"),
    ("Edg", "Edge"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
]

OS_PATTERNS: list[tuple[str, str]] = [
    ("Windows", "Windows"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("iOS", "iOS"),
    ("Mac OS", "macOS"),
    ("Android", "Android"),
    ("Linux", "Linux"),
]

SEARCH_ENGINES = ("google", "bing", "yahoo", "duckduckgo")
SOCIAL_NETWORKS = ("facebook", "twitter", "linkedin", "instagram")
EMAIL_MARKERS = ("email", "newsletter")
PAID_MARKERS = ("cpc", "ppc", "paid")

SEARCH_REFERRERS = ("google.", "bing.", "yahoo.", "duckduckgo.")
SOCIAL_REFERRERS = ("facebook.", "twitter.", "linkedin.", "instagram.", "t.co")


@dataclass
class RequestContext:
    """Server-side signals captured from the ingestion request."""

    user_agent: str | None = None
    ip: str | None = None
    country: str | None = None
    visitor_cookie: str | None = None
    session_cookie: str | None = None


def detect_device(user_agent: str | None) -> str:
    """Classify the user agent as desktop, mobile or tablet."""
    if not user_agent:
        return "desktop"
    if TABLET_PATTERN.search(user_agent):
        return "tablet"
    if MOBILE_PATTERN.search(user_agent):
        return "mobile"
    return "desktop"


def detect_browser(user_agent: str | None) -> str:
    if not user_agent:
        return "Unknown"
    for marker, name in BROWSER_PATTERNS:
        if marker in user_agent:
            return name
    return "Unknown"


def detect_os(user_agent: str | None) -> str:
    # iOS user agents contain "like Mac OS X", so they are matched first.
    if not user_agent:
        return "Unknown"
    for marker, name in OS_PATTERNS:
        if marker in user_agent:
            return name
    return "Unknown"


def classify_source(referrer: str | None, utm_source: str | None) -> str:
    """Infer the traffic source from the UTM source, falling back to the referrer.

    Returns one of: direct, organic, social, referral, email, paid.
    """
    if utm_source:
        source = utm_source.lower()
        if any(name in source for name in SEARCH_ENGINES):
            return "organic"
        if any(name in source for name in SOCIAL_NETWORKS):
            return "social"
        if any(marker in source for marker in EMAIL_MARKERS):
            return "email"
        if any(marker in source for marker in PAID_MARKERS):
            return "paid"
        return "referral"

    if not referrer:
        return "direct"

    ref = referrer.lower()
    if any(marker in ref for marker in SEARCH_REFERRERS):
        return "organic"
    if any(marker in ref for marker in SOCIAL_REFERRERS):
        return "social"
    return "referral"


def client_ip(forwarded_for: str | None, remote_host: str | None) -> str | None:
    """Return the originating client IP, preferring the first X-Forwarded-For hop."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return remote_host


def hash_ip(ip: str, secret: str | None = None) -> str:
    """HMAC-hash an IP address for privacy-preserving storage."""
    if secret is None:
        from blogstats.config import get_settings
        secret = get_settings().api_secret_key
    return hmac_module.new(secret.encode(), ip.encode(), hashlib.sha256).hexdigest()[:32]
