# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""LinkedIn feed updates.

Permalink priority: activity URN attribute on the update (survives redesigns)
> timestamp/post anchors > any anchor carrying an activity URN.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from feedclip import Source
from feedclip.document import Element, LiveDocument, has_class, text_of
from feedclip.extraction.base import ExtractionContext, Fields, Pipeline, first_attr, first_text, page_metadata

UNIT_XPATH = f".//*[{has_class('feed-shared-update-v2')}]"

_PERMALINK_BASE = "https://www.linkedin.com/feed/update/"
_URN_ATTRS = ("data-urn", "data-activity-urn")
_ACTOR_NAME_XPATHS = (
    f".//*[{has_class('update-components-actor__name')}]",
    f".//*[{has_class('feed-shared-actor__name')}]",
)
_ACTOR_LINK_XPATHS = (
    f".//a[{has_class('update-components-actor__meta-link')}]",
    f".//*[{has_class('update-components-actor__container')}]//a[@href]",
    f".//*[{has_class('feed-shared-actor')}]//a[@href]",
)
_BODY_XPATHS = (
    f".//*[{has_class('feed-shared-update-v2__description')}]",
    f".//*[{has_class('update-components-text')}]",
)
_IMAGE_XPATHS = (
    f".//img[{has_class('update-components-image__image')}]",
    f".//img[{has_class('feed-shared-image__image')}]",
)
_PROFILE_PATH_RE = re.compile(r"^/(?:in|company)/([^/?#]+)")


def first_update(document: LiveDocument) -> Element | None:
    return document.query(UNIT_XPATH)


def urn_permalink(ctx: ExtractionContext) -> Fields:
    for attr in _URN_ATTRS:
        urn = (ctx.root.get(attr) or "").strip()
        if urn:
            return {"canonical_url": f"{_PERMALINK_BASE}{urn}/"}
    return {}


def timestamp_permalink(ctx: ExtractionContext) -> Fields:
    for link in ctx.query_all(".//a[contains(@href, '/feed/update/') or contains(@href, '/posts/')]"):
        href = ctx.document.absolute_url(link.get("href"))
        if "/feed/update/" in href or "/posts/" in href:
            return {"canonical_url": href}
    return {}


def activity_anchor(ctx: ExtractionContext) -> Fields:
    link = ctx.query(".//a[contains(@href, 'urn:li:activity')]")
    if link is None:
        return {}
    return {"canonical_url": ctx.document.absolute_url(link.get("href"))}


def update_text(ctx: ExtractionContext) -> Fields:
    return {"body": first_text(ctx, _BODY_XPATHS)}


def actor(ctx: ExtractionContext) -> Fields:
    name_node = None
    for xpath in _ACTOR_NAME_XPATHS:
        name_node = ctx.query(xpath)
        if name_node is not None:
            break
    # the visible name is often doubled for screen readers
    hidden = name_node.xpath(".//*[@aria-hidden='true']") if name_node is not None else []
    name = text_of(hidden[0]) if hidden else text_of(name_node)

    handle = ""
    for xpath in _ACTOR_LINK_XPATHS:
        for link in ctx.query_all(xpath):
            match = _PROFILE_PATH_RE.match(urlparse(ctx.document.absolute_url(link.get("href"))).path)
            if match:
                handle = match.group(1)
                break
        if handle:
            break
    return {"author_name": name.split("\n")[0], "author_handle": handle}


def update_image(ctx: ExtractionContext) -> Fields:
    return {"media_url": ctx.document.absolute_url(first_attr(ctx, _IMAGE_XPATHS, "src"))}


PIPELINE = Pipeline(
    source=Source.LINKEDIN,
    strategies=(
        urn_permalink,
        timestamp_permalink,
        activity_anchor,
        update_text,
        actor,
        update_image,
        page_metadata,
    ),
    default_scope=first_update,
)
