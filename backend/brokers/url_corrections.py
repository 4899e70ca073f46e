"""Known opt-out URL corrections and path candidates for broken links.

Corrections are applied when a URL is read, the broker directory itself
is never rewritten.
"""

from urllib.parse import urlparse

from brokers.directory import get_broker


# Confirmed replacements, keyed by the directory URL they supersede.
URL_CORRECTIONS: dict[str, str] = {
    "https://www.beenverified.com/opt-out/": "https://www.beenverified.com/app/optout/search",
    "https://www.peoplefinder.com/optout": "https://www.peoplefinder.com/manage",
    "https://privacy.openai.com/policies": "https://privacy.openai.com/policies?modal=take-control",
    "https://www.facebook.com/help/contact/540404257914453": "https://www.facebook.com/help/contact/367438723733209",
    "https://clearview.ai/privacy/requests": "https://clearview.ai/privacy-requests",
    "https://stability.ai/opt-out": "https://stability.ai/contact",
    "https://www.peekyou.com/about/contact/optout/": "https://www.peekyou.com/about/contact/optout",
}

# Tried in order against the broken URL's host.
PATH_VARIATIONS = [
    "/optout",
    "/opt-out",
    "/privacy",
    "/privacy-policy",
    "/do-not-sell",
    "/removal",
    "/contact",
]


def get_known_correction(url: str) -> str | None:
    return URL_CORRECTIONS.get(url)


def candidate_urls(url: str) -> list[str]:
    """Path variations on the same scheme and host, excluding ``url`` itself."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return []
    base = f"{parsed.scheme}://{parsed.netloc}"
    current = parsed.path.rstrip("/")
    return [base + path for path in PATH_VARIATIONS if path != current]


def get_opt_out_url(source: str) -> str | None:
    """Opt-out URL for a source with any known correction applied."""
    broker = get_broker(source)
    if not broker or not broker.opt_out_url:
        return None
    return URL_CORRECTIONS.get(broker.opt_out_url, broker.opt_out_url)
