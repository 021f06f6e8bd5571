# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Map a page location to its content source.

Pure and total: any input, including garbage, yields a Source. Unrecognized
hosts are ``Source.OTHER``.
"""

from __future__ import annotations

from urllib.parse import urlparse

from feedclip import Source

# (hostname substring, source), first match wins
_HOST_SUBSTRINGS: tuple[tuple[str, Source], ...] = (
    ("linkedin", Source.LINKEDIN),
    ("twitter", Source.TWITTER),
    ("instagram", Source.INSTAGRAM),
    ("youtube", Source.YOUTUBE),
)

# Too short for substring matching ("box.com" contains "x.com").
_EXACT_DOMAINS: tuple[tuple[str, Source], ...] = (("x.com", Source.TWITTER),)


def hostname_of(url: str) -> str:
    """Lower-cased hostname of *url*; empty string when it has none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def classify_host(host: str) -> Source:
    host = host.lower()
    for needle, source in _HOST_SUBSTRINGS:
        if needle in host:
            return source
    for domain, source in _EXACT_DOMAINS:
        if host == domain or host.endswith("." + domain):
            return source
    return Source.OTHER


def classify_source(url: str) -> Source:
    """Return the content source for a page location."""
    return classify_host(hostname_of(url))
