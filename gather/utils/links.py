"""
Link Labels
===========

Turns raw URLs in AI responses into short, human button labels and splits
rich text into text/url parts for the client to render.
"""

import re
from typing import Optional
from urllib.parse import urlparse

URL_REGEX = re.compile(r"""https?://[^\s<>"')\]]+""", re.IGNORECASE)

# Checked in order; "domain/path" entries also require the path fragment.
DOMAIN_LABELS: list[tuple[str, str]] = [
    ("google.com/travel/flights", "Search flights"),
    ("google.com/flights", "Search flights"),
    ("google.com/maps", "View on Google Maps"),
    ("google.com/search", "Search Google"),
    ("maps.google.com", "View on Google Maps"),
    ("amazon.com", "View on Amazon"),
    ("yelp.com", "View on Yelp"),
    ("tripadvisor.com", "View on TripAdvisor"),
    ("booking.com", "View on Booking.com"),
    ("airbnb.com", "View on Airbnb"),
    ("expedia.com", "View on Expedia"),
    ("kayak.com", "Search on Kayak"),
    ("skyscanner.com", "Search on Skyscanner"),
    ("opentable.com", "Reserve on OpenTable"),
    ("doordash.com", "Order on DoorDash"),
    ("ubereats.com", "Order on Uber Eats"),
    ("grubhub.com", "Order on Grubhub"),
    ("irs.gov", "View on IRS.gov"),
    ("dmv.ca.gov", "View on CA DMV"),
    ("dmv.ny.gov", "View on NY DMV"),
    ("usa.gov", "View on USA.gov"),
    ("healthcare.gov", "View on Healthcare.gov"),
    ("medicare.gov", "View on Medicare.gov"),
    ("ssa.gov", "View on SSA.gov"),
    ("youtube.com", "Watch on YouTube"),
    ("youtu.be", "Watch on YouTube"),
    ("vimeo.com", "Watch on Vimeo"),
    ("github.com", "View on GitHub"),
    ("linkedin.com", "View on LinkedIn"),
    ("twitter.com", "View on Twitter"),
    ("x.com", "View on X"),
    ("facebook.com", "View on Facebook"),
    ("instagram.com", "View on Instagram"),
    ("reddit.com", "View on Reddit"),
    ("wikipedia.org", "Read on Wikipedia"),
    ("nytimes.com", "Read on NY Times"),
    ("washingtonpost.com", "Read on Washington Post"),
    ("wsj.com", "Read on WSJ"),
    ("bbc.com", "Read on BBC"),
    ("cnn.com", "Read on CNN"),
    ("spotify.com", "Listen on Spotify"),
    ("apple.com/music", "Listen on Apple Music"),
]

FILE_LABELS: list[tuple[str, str]] = [
    (".pdf", "Download PDF"),
    (".doc", "Download document"),
    (".docx", "Download document"),
    (".xls", "Download spreadsheet"),
    (".xlsx", "Download spreadsheet"),
    (".zip", "Download file"),
]

PATH_LABELS: list[tuple[str, str]] = [
    ("/search", "Search"),
    ("/flights", "Search flights"),
    ("/hotels", "Search hotels"),
    ("/maps", "View map"),
    ("/directions", "Get directions"),
    ("/restaurants", "View restaurants"),
    ("/reviews", "Read reviews"),
    ("/booking", "Book now"),
    ("/reserve", "Reserve"),
    ("/order", "Order"),
    ("/buy", "Buy"),
    ("/shop", "Shop"),
    ("/checkout", "Checkout"),
    ("/appointment", "Schedule"),
    ("/schedule", "Schedule"),
    ("/apply", "Apply"),
    ("/forms", "View forms"),
    ("/download", "Download"),
    ("/contact", "Contact"),
    ("/support", "Get support"),
    ("/help", "Get help"),
]

LINK_INTRO_PHRASES = [
    "here's a link:",
    "here's the link:",
    "here is a link:",
    "here is the link:",
    "click here:",
    "direct link:",
    "link:",
    "url:",
    "visit:",
    "go to:",
    "check out:",
    "see:",
    "here:",
    "here's a direct link",
    "here is a direct link",
]


def _host_matches(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith(f".{domain}")


def label_for_url(url: str) -> str:
    """Generate a human-readable button label for a URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "Open link"

    scheme = parsed.scheme.lower()
    if scheme == "tel":
        return f"Call {url[len('tel:'):]}"
    if scheme == "mailto":
        return "Send email"

    hostname = (parsed.hostname or "").lower()
    if not scheme or not hostname:
        return "Open link"
    if hostname.startswith("www."):
        hostname = hostname[4:]
    pathname = parsed.path.lower()

    for domain, label in DOMAIN_LABELS:
        host_part, _, path_part = domain.partition("/")
        if _host_matches(hostname, host_part) and (not path_part or path_part in pathname):
            return label

    for ext, label in FILE_LABELS:
        if pathname.endswith(ext):
            return label

    for fragment, label in PATH_LABELS:
        if fragment in pathname:
            return label

    parts = hostname.split(".")
    site = parts[1] if len(parts) > 2 else parts[0]
    return f"Visit {site[:1].upper()}{site[1:]}"


def _strip_intro_phrase(text: str) -> str:
    lower = text.lower()
    stripped = lower.rstrip()
    for phrase in LINK_INTRO_PHRASES:
        if stripped.endswith(phrase):
            return text[: lower.rfind(phrase)].strip()
    return text


def split_rich_text(text: Optional[str]) -> list[dict]:
    """
    Split text into ``{"type": "text"|"url", "content", "label"?}`` parts.

    Intro phrases such as "here's the link:" directly before a URL are
    dropped since the button replaces them.
    """
    if not text:
        return []

    matches = list(URL_REGEX.finditer(text))
    if not matches:
        return [{"type": "text", "content": text}]

    parts: list[dict] = []
    last = 0
    for match in matches:
        url = match.group(0)
        if match.start() > last:
            before = _strip_intro_phrase(text[last:match.start()])
            if before.strip():
                parts.append({"type": "text", "content": before})

        parts.append({"type": "url", "content": url, "label": label_for_url(url)})
        last = match.end()

    if last < len(text):
        after = text[last:]
        if after.strip():
            parts.append({"type": "text", "content": after})

    return parts
