# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text and URL cleanup for extracted record fields.

Social markup is full of invisible characters: zero-width joiners between
emoji, bidi overrides around handles, stray control bytes from pasted text.
Records leave the page and get stored, so fields are normalized here:

1. clean_inline(): single-line fields (names, handles, URLs)
2. clean_block(): multi-line body text, newlines preserved
3. absolute_http_url(): permalink validation
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

# Zero-width chars, bidi overrides/isolates, BOM, C0/C1 controls except \t \n
_CONTROL_CHAR_RE = re.compile(
    r"[\u200B-\u200F\u202A-\u202E\u2060-\u2069\uFEFF\uFFF9-\uFFFB"
    r"\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]"
)

_INLINE_SPACE_RE = re.compile(r"[ \t\u00A0]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")

MAX_URL_LENGTH = 2048


def clean_inline(text: str | None, max_len: int = 512) -> str:
    """Single-line field: strip control chars, collapse all whitespace, truncate."""
    if not text:
        return ""
    text = _CONTROL_CHAR_RE.sub("", text)
    text = " ".join(text.split())
    return text[:max_len].rstrip()


def clean_block(text: str | None, max_len: int = 20_000) -> str:
    """Multi-line field: like clean_inline but keeps line structure.

    Spaces are collapsed within each line, lines are stripped, and runs of
    blank lines shrink to one.
    """
    if not text:
        return ""
    text = _CONTROL_CHAR_RE.sub("", text.replace("\r\n", "\n").replace("\r", "\n"))
    lines = [_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()
    return text[:max_len]


def absolute_http_url(value: str | None, base: str = "") -> str:
    """Resolve *value* against *base*; return it only if it is absolute http(s).

    Returns "" for anything that is not a syntactically valid absolute URL
    (relative without a usable base, javascript:, data:, missing host, ...).
    """
    value = clean_inline(value, max_len=MAX_URL_LENGTH)
    if not value:
        return ""
    try:
        resolved = urljoin(base, value) if base else value
        parsed = urlparse(resolved)
    except ValueError:
        return ""
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    try:
        if not parsed.hostname:
            return ""
    except ValueError:
        return ""
    return resolved
