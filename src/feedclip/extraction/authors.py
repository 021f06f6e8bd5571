# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Author cascade for markup without a stable author marker.

Tiers, first success wins:
  1. profile-shaped link inside the unit's header
  2. profile-shaped link anywhere in the unit
  3. page title / og:title matching "<name> (@handle)" or "<name> on <platform>"
  4. short text nested in a link whose text equals the link's first path segment

A profile-shaped link points at ``/<segment>`` on the page's own host, where
the segment is not a reserved system route and the link's visible text is not
a UI label such as "Follow".
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from urllib.parse import urlparse

from feedclip.document import Element, text_of
from feedclip.extraction.base import ExtractionContext, Fields

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._]{1,30}$")
_MAX_FRAGMENT_LEN = 30


@dataclass(frozen=True)
class AuthorRules:
    """Per-platform vocabulary for the cascade."""

    platform: str
    deny_labels: frozenset[str]
    reserved_segments: frozenset[str]

    def is_denied_label(self, text: str) -> bool:
        return text.strip().lower() in self.deny_labels

    def is_reserved(self, segment: str) -> bool:
        return segment.lower() in self.reserved_segments


def _first_segment(ctx: ExtractionContext, link: Element) -> tuple[str, int]:
    """(first path segment, segment count) of a same-host link; ("", 0) otherwise."""
    href = ctx.document.absolute_url(link.get("href"))
    if not href:
        return "", 0
    parsed = urlparse(href)
    page_host = urlparse(ctx.page_url).hostname or ""
    if (parsed.hostname or "") != page_host:
        return "", 0
    segments = [s for s in parsed.path.split("/") if s]
    if not segments:
        return "", 0
    return segments[0], len(segments)


def _profile_link(ctx: ExtractionContext, link: Element, rules: AuthorRules) -> Fields:
    segment, depth = _first_segment(ctx, link)
    if depth != 1 or not _SEGMENT_RE.match(segment) or rules.is_reserved(segment):
        return {}
    label = text_of(link).split("\n")[0]
    if label and rules.is_denied_label(label):
        return {}
    # icon-only avatar links: the handle doubles as the display name
    return {"author_handle": segment, "author_name": label or segment}


def _scan_links(ctx: ExtractionContext, links: Sequence[Element], rules: AuthorRules) -> Fields:
    for link in links:
        found = _profile_link(ctx, link, rules)
        if found:
            return found
    return {}


def header_link(ctx: ExtractionContext, rules: AuthorRules) -> Fields:
    return _scan_links(ctx, ctx.query_all(".//header//a[@href]"), rules)


def any_link(ctx: ExtractionContext, rules: AuthorRules) -> Fields:
    return _scan_links(ctx, ctx.query_all(".//a[@href]"), rules)


def title_template(ctx: ExtractionContext, rules: AuthorRules) -> Fields:
    platform = re.escape(rules.platform)
    handle_form = re.compile(r"^(?P<name>.+?)\s*\(@(?P<handle>[A-Za-z0-9._]{1,30})\)")
    on_form = re.compile(rf"^(?P<name>.+?)\s+on\s+{platform}\b", re.IGNORECASE)
    for title in (ctx.document.meta_content("og:title"), ctx.document.title):
        if not title:
            continue
        match = handle_form.match(title)
        if match:
            return {"author_name": match.group("name").strip(), "author_handle": match.group("handle")}
        match = on_form.match(title)
        if match:
            name = match.group("name").strip().strip("\"'")
            if name and not rules.is_denied_label(name):
                return {"author_name": name}
    return {}


def segment_fragment(ctx: ExtractionContext, rules: AuthorRules) -> Fields:
    for link in ctx.query_all(".//a[@href]"):
        segment, _ = _first_segment(ctx, link)
        if not segment or rules.is_reserved(segment):
            continue
        for node in link.iter("span", "div", "a"):
            text = text_of(node).split("\n")[0]
            if text and len(text) <= _MAX_FRAGMENT_LEN and text.lower() == segment.lower():
                return {"author_handle": segment, "author_name": text}
    return {}


Tier = Callable[[ExtractionContext, AuthorRules], Fields]

TIERS: tuple[Tier, ...] = (header_link, any_link, title_template, segment_fragment)


def author_cascade(rules: AuthorRules, tiers: Sequence[Tier] = TIERS) -> Callable[[ExtractionContext], Fields]:
    """Build a pipeline strategy running the tiers until one resolves an author."""

    def resolve_author(ctx: ExtractionContext) -> Fields:
        for tier in tiers:
            found = tier(ctx, rules)
            if found.get("author_name") or found.get("author_handle"):
                return found
        return {}

    resolve_author.__name__ = f"{rules.platform.lower()}_author_cascade"
    return resolve_author
