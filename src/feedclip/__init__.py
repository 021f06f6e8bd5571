# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""feedclip: capture posts from live social/media pages.

Watches an externally-mutated document, attaches a save control to every
discovered post, and turns a post into a NormalizedRecord:
- source: which site the page belongs to
- canonical_url / body / author / media: best-effort fields, never missing
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum


class Source(StrEnum):
    """Content source a page belongs to. Values are the wire tags."""

    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    OTHER = "other"


@dataclass
class NormalizedRecord:
    """Source-agnostic extraction output. String fields are never None."""

    source: Source
    canonical_url: str
    body: str = ""
    author_name: str = ""
    author_handle: str = ""
    media_url: str = ""

    def to_message(self) -> dict[str, str]:
        """Wire shape sent to the persistence service."""
        return {
            "source": str(self.source),
            "canonicalUrl": self.canonical_url,
            "body": self.body,
            "authorName": self.author_name,
            "authorHandle": self.author_handle,
            "mediaUrl": self.media_url,
        }


# Fields a strategy may resolve (everything except source).
RECORD_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(NormalizedRecord) if f.name != "source")
