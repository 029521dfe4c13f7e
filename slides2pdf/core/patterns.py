"""
URL patterns for supported sites and helpers to work with page URLs
"""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

SCRIBD_DOMAIN = re.compile(r"^https://(([a-z]{2}\.)|www\.)?scribd\.com", re.IGNORECASE)
SCRIBD_DOCUMENT = re.compile(
    r"^https://(([a-z]{2}\.)|www\.)?scribd\.com/(document|doc)/(?P<id>[0-9]+)",
    re.IGNORECASE,
)
SCRIBD_EMBED = re.compile(
    r"^https://(([a-z]{2}\.)|www\.)?scribd\.com/embeds/(?P<id>[0-9]+)",
    re.IGNORECASE,
)
SLIDESHARE_DOMAIN = re.compile(r"^https?://(([a-z]{2,3}\.)|www\.)?slideshare\.net/", re.IGNORECASE)

# Tried in order; the last ones are looser guesses.
DOCUMENT_ID_PATTERNS = (
    re.compile(r"/doc/(\d+)"),
    re.compile(r"/document/(\d+)"),
    re.compile(r"/embeds/(\d+)"),
    re.compile(r"scribd\.com/.*?(\d{8,})"),
    re.compile(r"/(\d{8,})(?:[/?#]|$)"),
)

IMAGE_URL_PATTERN = re.compile(
    r"https?:\\?/\\?/[^\"'\s<>]+?\.(?:jpg|jpeg|png|gif|webp)(?:\?[^\"'\s<>]*)?",
    re.IGNORECASE,
)


def is_http_url(value: str) -> bool:
    parsed = urlparse((value or "").strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_document_id(url: str) -> Optional[str]:
    """
    Pull the numeric document identifier out of a document URL

    Returns None for URLs that carry no recognizable identifier.
    """
    value = (url or "").strip()
    if not is_http_url(value):
        return None

    for strict in (SCRIBD_DOCUMENT, SCRIBD_EMBED):
        match = strict.match(value)
        if match:
            return match.group("id")

    path_and_query = value.split("://", 1)[-1]
    for pattern in DOCUMENT_ID_PATTERNS:
        match = pattern.search(path_and_query)
        if match:
            return match.group(1)
    return None


def resolve_url(src: str, base_url: str) -> str:
    """Turn a src attribute into an absolute URL"""
    value = (src or "").strip()
    if value.startswith(("http://", "https://")):
        return value
    if value.startswith("//"):
        return f"https:{value}"
    try:
        return urljoin(base_url, value)
    except ValueError:
        return value


def unescape_url(raw: str) -> str:
    """Undo the escaping image URLs pick up when embedded in JSON strings"""
    text = raw.replace("\\/", "/").replace("\\\\", "")
    text = text.replace("\\u0026", "&").replace("\\u003d", "=")
    return text.rstrip("\\")
