# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Instagram feed posts and post pages.

Instagram ships obfuscated class names, so nothing here keys on classes:
only tag structure (``article``, ``header``, ``time``, ``h1``) and URL shapes.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from feedclip import Source
from feedclip.document import Element, LiveDocument, closest, text_of
from feedclip.extraction.authors import AuthorRules, author_cascade
from feedclip.extraction.base import ExtractionContext, Fields, Pipeline, page_metadata

UNIT_XPATH = ".//article"

RULES = AuthorRules(
    platform="Instagram",
    deny_labels=frozenset(
        {
            "follow",
            "following",
            "share",
            "more options",
            "verified",
            "like",
            "comment",
            "save",
            "reply",
            "audio",
            "original audio",
            "sponsored",
            "paid partnership",
        }
    ),
    reserved_segments=frozenset(
        {
            "explore",
            "reels",
            "reel",
            "p",
            "tv",
            "stories",
            "accounts",
            "direct",
            "about",
            "legal",
            "developer",
            "privacy",
            "terms",
            "web",
            "challenge",
            "emails",
            "locations",
            "tags",
            "session",
            "static",
        }
    ),
)

_POST_PATH_RE = re.compile(r"/(?:p|reel|tv)/[A-Za-z0-9_-]+/?")
_NOT_IN_HEADER = "[not(ancestor::header)]"


def first_article(document: LiveDocument) -> Element | None:
    return document.query(UNIT_XPATH)


def time_permalink(ctx: ExtractionContext) -> Fields:
    for stamp in ctx.query_all(".//time"):
        link = closest(stamp, "a")
        if link is not None:
            href = ctx.document.absolute_url(link.get("href"))
            if href:
                return {"canonical_url": href}
    return {}


def post_anchor(ctx: ExtractionContext) -> Fields:
    for link in ctx.query_all(".//a[@href]"):
        href = ctx.document.absolute_url(link.get("href"))
        if href and _POST_PATH_RE.search(urlparse(href).path):
            return {"canonical_url": href}
    return {}


def caption(ctx: ExtractionContext) -> Fields:
    heading = ctx.query(".//h1")
    text = text_of(heading)
    if text:
        return {"body": text}
    # the caption is the longest text run outside the author header
    spans = [text_of(span) for span in ctx.query_all(f".//span{_NOT_IN_HEADER}")]
    spans = [s for s in spans if s and not RULES.is_denied_label(s)]
    return {"body": max(spans, key=len)} if spans else {}


def post_media(ctx: ExtractionContext) -> Fields:
    for xpath in (f".//img[@src]{_NOT_IN_HEADER}", ".//img[@src]"):
        img = ctx.query(xpath)
        if img is not None:
            return {"media_url": ctx.document.absolute_url(img.get("src"))}
    poster = ctx.query(".//video[@poster]")
    if poster is not None:
        return {"media_url": ctx.document.absolute_url(poster.get("poster"))}
    return {}


PIPELINE = Pipeline(
    source=Source.INSTAGRAM,
    strategies=(
        time_permalink,
        post_anchor,
        author_cascade(RULES),
        caption,
        post_media,
        page_metadata,
    ),
    default_scope=first_article,
)
