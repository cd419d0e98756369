"""
Source Quality
==============

Scores web-search sources so chat answers cite official pages over
forums, social media and news.
"""

import re
from typing import Sequence
from urllib.parse import urlparse

LOW_QUALITY_HOSTS = [
    "wikipedia.org",
    "reddit.com",
    "quora.com",
    "facebook.com",
    "x.com",
    "twitter.com",
    "instagram.com",
    "tiktok.com",
    "youtube.com",
    "linkedin.com",
    "medium.com",
    "substack.com",
    "blogspot.com",
    "wordpress.com",
]

NEWS_HOSTS = [
    "apnews.com",
    "bbc.co.uk",
    "bloomberg.com",
    "bankrate.com",
    "cnn.com",
    "foxnews.com",
    "sacbee.com",
    "nytimes.com",
    "reuters.com",
    "theguardian.com",
    "usatoday.com",
    "usnews.com",
    "washingtonpost.com",
]

_US_LOCAL_GOV_RE = re.compile(r"\.(state|city|county|co|parish|gov|muni)\.[a-z]{2}\.us$")


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _in_hosts(host: str, hosts: Sequence[str]) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in hosts)


def is_authoritative_source(url: str) -> bool:
    host = _hostname(url)
    if not host:
        return False
    if host.endswith((".gov", ".mil", ".edu")):
        return True
    return bool(_US_LOCAL_GOV_RE.search(host))


def is_low_quality_source(url: str) -> bool:
    return _in_hosts(_hostname(url), LOW_QUALITY_HOSTS)


def is_news_source(url: str) -> bool:
    return _in_hosts(_hostname(url), NEWS_HOSTS)


def score_source(url: str) -> int:
    if is_authoritative_source(url):
        return 100
    if is_low_quality_source(url):
        return 10
    if is_news_source(url):
        return 20
    if _hostname(url).endswith(".org"):
        return 55
    return 45


def prioritize_sources(sources: Sequence[dict]) -> list[dict]:
    """
    Dedupe and rank sources.

    If any authoritative source exists only those are kept; otherwise news
    and low-quality hosts are dropped. Result is sorted by score, best first.
    """
    seen: set[str] = set()
    unique = []
    for source in sources:
        url = source.get("url")
        if not url or url in seen:
            continue
        seen.add(url)
        unique.append(source)

    if any(is_authoritative_source(s["url"]) for s in unique):
        pool = [s for s in unique if is_authoritative_source(s["url"])]
    else:
        pool = [
            s for s in unique
            if not is_low_quality_source(s["url"]) and not is_news_source(s["url"])
        ]

    return sorted(pool, key=lambda s: score_source(s["url"]), reverse=True)
