# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""X / Twitter tweets (``article[data-testid=tweet]``)."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from feedclip import Source
from feedclip.document import Element, LiveDocument, closest, text_of
from feedclip.extraction.base import ExtractionContext, Fields, Pipeline, page_metadata

UNIT_XPATH = ".//article[@data-testid='tweet']"

_STATUS_PATH_RE = re.compile(r"^/([A-Za-z0-9_]{1,15})/status/(\d+)")
_HANDLE_PATH_RE = re.compile(r"^/([A-Za-z0-9_]{1,15})/?$")


def first_tweet(document: LiveDocument) -> Element | None:
    return document.query(UNIT_XPATH)


def time_permalink(ctx: ExtractionContext) -> Fields:
    """The tweet's timestamp always links to its status page."""
    for stamp in ctx.query_all(".//time"):
        link = closest(stamp, "a")
        if link is not None:
            href = ctx.document.absolute_url(link.get("href"))
            if href:
                return {"canonical_url": href}
    return {}


def status_anchor(ctx: ExtractionContext) -> Fields:
    for link in ctx.query_all(".//a[contains(@href, '/status/')]"):
        href = ctx.document.absolute_url(link.get("href"))
        match = _STATUS_PATH_RE.match(urlparse(href).path)
        if match:
            return {"canonical_url": href, "author_handle": match.group(1)}
    return {}


def tweet_text(ctx: ExtractionContext) -> Fields:
    node = ctx.query(".//div[@data-testid='tweetText']")
    return {"body": text_of(node)}


def user_name(ctx: ExtractionContext) -> Fields:
    """Display name and @handle from the User-Name block's profile links."""
    name = handle = ""
    for link in ctx.query_all(".//div[@data-testid='User-Name']//a[@href]"):
        match = _HANDLE_PATH_RE.match(urlparse(ctx.document.absolute_url(link.get("href"))).path)
        if match and not handle:
            handle = match.group(1)
        text = text_of(link)
        if text and not text.startswith("@") and not name:
            name = text.split("\n")[0]
    return {"author_name": name, "author_handle": handle}


def tweet_media(ctx: ExtractionContext) -> Fields:
    for img in ctx.query_all(".//img[@alt='Image']"):
        src = img.get("src") or ""
        if "media" in src:
            return {"media_url": ctx.document.absolute_url(src)}
    poster = ctx.query(".//video[@poster]")
    if poster is not None:
        return {"media_url": ctx.document.absolute_url(poster.get("poster"))}
    return {}


PIPELINE = Pipeline(
    source=Source.TWITTER,
    strategies=(
        time_permalink,
        tweet_text,
        user_name,
        status_anchor,
        tweet_media,
        page_metadata,
    ),
    default_scope=first_tweet,
)
