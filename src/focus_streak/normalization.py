"""Utilities to turn tab URLs into tracked domains."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

_WWW_PREFIX = "www."


def normalize_domain(url: Optional[str]) -> Optional[str]:
    """Return the URL's hostname without a leading ``www.``.

    Anything that does not parse to a hostname yields ``None`` and its dwell
    time is not attributed to any domain.
    """
    if not url:
        return None
    try:
        hostname = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    if hostname.startswith(_WWW_PREFIX):
        hostname = hostname[len(_WWW_PREFIX):]
    return hostname or None
