"""
app/mappers/url_normalizer.py

Page URL canonicalisation and URL-safe page identifiers.

normalize_url rules
-------------------
1. Scheme and hostname are lower-cased.
2. Query parameters whose name starts with ``utm_`` are dropped; all other
   parameters keep their original text and order.
3. The path always ends with ``/`` (the root path stays ``/``).
4. The fragment is kept.

The function is idempotent. Input without a scheme or host is returned
unchanged.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_UTM_PREFIX = "utm_"
_PROTOCOL = re.compile(r"^https?://")
_ID_SPECIAL_CHARS = re.compile(r"[#?&=]")
_UNDERSCORE_RUN = re.compile(r"_{3,}")


def normalize_url(page_url: str) -> str:
    try:
        parts = urlsplit(page_url)
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        logger.warning("Could not normalize invalid URL: %s", page_url)
        return page_url

    if not parts.scheme or not hostname:
        logger.warning("Could not normalize invalid URL: %s", page_url)
        return page_url

    netloc = hostname.lower()
    if port is not None:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.netloc.rsplit("@", 1)[0]
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    if not path.endswith("/"):
        path += "/"

    return urlunsplit((parts.scheme.lower(), netloc, path, _strip_utm(parts.query), parts.fragment))


def _strip_utm(query: str) -> str:
    if not query:
        return ""
    kept = [
        segment
        for segment in query.split("&")
        if segment and not segment.split("=", 1)[0].lower().startswith(_UTM_PREFIX)
    ]
    return "&".join(kept)


def sanitize_page_id(url: str) -> str:
    """
    Turn a URL into a page identifier without slashes or query delimiters.

    ``https://example.com/blog/post/`` -> ``example.com__blog__post``
    """

    if not url:
        return ""
    value = _PROTOCOL.sub("", url)
    value = value.replace("/", "__")
    value = _ID_SPECIAL_CHARS.sub("_", value)
    value = _UNDERSCORE_RUN.sub("__", value)
    return value.strip("_")


def unsanitize_page_id(page_id: str, protocol: str = "https") -> str:
    """
    Best-effort inverse of :func:`sanitize_page_id` for display purposes.
    Query delimiters cannot be recovered.
    """

    if not page_id:
        return ""
    return f"{protocol}://" + page_id.replace("__", "/").replace("_", "")


def original_url_for(page_id: str, original_url: str | None = None, url: str | None = None) -> str:
    return original_url or url or unsanitize_page_id(page_id)
