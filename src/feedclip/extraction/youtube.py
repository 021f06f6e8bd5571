# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""YouTube watch/shorts pages and video list entries.

Page-level: the video id in the URL is authoritative, so permalink and
thumbnail come from it; titles and channel names in the tree are decorative
and resolved best-effort. List entries have no page-level id, so every field
comes from the entry's own subtree.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from feedclip import Source
from feedclip.document import Element, has_class, text_of
from feedclip.extraction.base import ExtractionContext, Fields, Pipeline, first_text

ENTRY_TAGS = (
    "ytd-rich-item-renderer",
    "ytd-video-renderer",
    "ytd-compact-video-renderer",
    "ytd-grid-video-renderer",
)
UNIT_XPATH = " | ".join(f".//{tag}" for tag in ENTRY_TAGS)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
SHORTS_URL = "https://www.youtube.com/shorts/{video_id}"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
TITLE_SUFFIX = " - YouTube"

_CHANNEL_LINK_XPATHS = (
    ".//*[@id='channel-name']//a",
    ".//ytd-channel-name//a",
    ".//*[@id='owner-name']//a",
    f".//*[{has_class('ytd-channel-name')}]//a",
)
_WATCH_TITLE_XPATHS = (
    f".//h1[{has_class('ytd-video-primary-info-renderer')}]",
    f".//h1[{has_class('ytd-watch-metadata')}]",
    ".//*[@id='title']//h1",
)
_SHORTS_TITLE_XPATHS = (
    f".//*[{has_class('title')} and {has_class('ytd-reel-video-renderer')}]",
    f".//h2[{has_class('title')}]",
)
_DESCRIPTION_XPATHS = (
    ".//*[@id='description-text']",
    ".//*[@id='description-inline-expander']",
)
_ENTRY_TITLE_XPATHS = (
    ".//a[@id='video-title' or @id='video-title-link']",
    ".//a[contains(@href, '/watch?v=') or contains(@href, '/shorts/')]",
)


def video_id_from_url(url: str) -> tuple[str, bool]:
    """(video id, is_shorts) from a watch or shorts URL; ("", False) otherwise."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "", False
    segments = [s for s in parsed.path.split("/") if s]
    if "shorts" in segments:
        index = segments.index("shorts")
        if index + 1 < len(segments):
            return segments[index + 1], True
        return "", True
    if parsed.path == "/watch":
        return parse_qs(parsed.query).get("v", [""])[0], False
    return "", False


def is_video_page(url: str) -> bool:
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return path == "/watch" or "/shorts/" in path


def _channel_handle(ctx: ExtractionContext, link: Element) -> str:
    href = ctx.document.absolute_url(link.get("href"))
    if "/@" not in href:
        return ""
    return href.split("/@", 1)[1].split("/")[0].split("?")[0]


def _first_channel(ctx: ExtractionContext) -> tuple[str, str]:
    """(name, handle) from the first channel link with visible text.

    The handle is read from that same link only; other channel links on the
    page belong to other videos.
    """
    for xpath in _CHANNEL_LINK_XPATHS:
        for link in ctx.query_all(xpath):
            name = text_of(link)
            if name:
                return name, _channel_handle(ctx, link)
    return "", ""


# --- page-level strategies ----------------------------------------------------


def url_identifier(ctx: ExtractionContext) -> Fields:
    video_id, shorts = video_id_from_url(ctx.page_url)
    if not video_id:
        return {}
    template = SHORTS_URL if shorts else WATCH_URL
    return {
        "canonical_url": template.format(video_id=video_id),
        "media_url": THUMBNAIL_URL.format(video_id=video_id),
    }


def channel(ctx: ExtractionContext) -> Fields:
    name, handle = _first_channel(ctx)
    if not name:
        meta = ctx.query(".//span[@itemprop='author']//link[@itemprop='name']")
        name = (meta.get("content") or "") if meta is not None else ""
    return {"author_name": name, "author_handle": handle}


def watch_title(ctx: ExtractionContext) -> Fields:
    return {"body": first_text(ctx, _WATCH_TITLE_XPATHS)}


def shorts_title(ctx: ExtractionContext) -> Fields:
    _, shorts = video_id_from_url(ctx.page_url)
    return {"body": first_text(ctx, _SHORTS_TITLE_XPATHS)} if shorts else {}


def meta_title(ctx: ExtractionContext) -> Fields:
    doc = ctx.document
    title = doc.meta_content("title") or doc.meta_content("og:title")
    if not title:
        title = doc.title.removesuffix(TITLE_SUFFIX)
    return {"body": title}


def meta_thumbnail(ctx: ExtractionContext) -> Fields:
    doc = ctx.document
    return {"media_url": doc.absolute_url(doc.meta_content("og:image")) or doc.link_href("image_src")}


def append_description(ctx: ExtractionContext, fields: Fields) -> Fields:
    """Body becomes "<title>\\n\\n<description, truncated>" when both exist."""
    if not ctx.page_level or not fields.get("body"):
        return fields
    description = first_text(ctx, _DESCRIPTION_XPATHS) or ctx.document.meta_content("description")
    if not description:
        return fields
    limit = ctx.description_limit
    suffix = "..." if len(description) > limit else ""
    return {**fields, "body": f"{fields['body']}\n\n{description[:limit]}{suffix}"}


# --- list-entry strategies ----------------------------------------------------


def _entry_anchor(ctx: ExtractionContext) -> Element | None:
    for xpath in _ENTRY_TITLE_XPATHS:
        for link in ctx.query_all(xpath):
            if link.get("href"):
                return link
    return None


def entry_title(ctx: ExtractionContext) -> Fields:
    link = _entry_anchor(ctx)
    if link is None:
        return {}
    return {
        "canonical_url": ctx.document.absolute_url(link.get("href")),
        "body": text_of(link) or (link.get("title") or ""),
    }


def entry_channel(ctx: ExtractionContext) -> Fields:
    name, handle = _first_channel(ctx)
    return {"author_name": name, "author_handle": handle}


def entry_thumbnail(ctx: ExtractionContext) -> Fields:
    for xpath in (".//ytd-thumbnail//img[@src]", ".//img[@src]"):
        for img in ctx.query_all(xpath):
            src = ctx.document.absolute_url(img.get("src"))
            if src:
                return {"media_url": src}
    link = _entry_anchor(ctx)
    if link is not None:
        video_id, _ = video_id_from_url(ctx.document.absolute_url(link.get("href")))
        if video_id:
            return {"media_url": THUMBNAIL_URL.format(video_id=video_id)}
    return {}


PAGE_PIPELINE = Pipeline(
    source=Source.YOUTUBE,
    strategies=(
        url_identifier,
        channel,
        watch_title,
        shorts_title,
        meta_title,
        meta_thumbnail,
    ),
    finalize=append_description,
    name="youtube-page",
)

ENTRY_PIPELINE = Pipeline(
    source=Source.YOUTUBE,
    strategies=(entry_title, entry_channel, entry_thumbnail),
    name="youtube-entry",
)
