# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Strategy pipeline: ordered fallback with per-field first-non-empty merge.

A strategy is a plain function ``(ExtractionContext) -> dict[str, str]``
returning whatever record fields it could resolve. Strategies run in order;
for each field the first non-empty value wins, so one strategy may supply the
author while a later one supplies the permalink.

Failure levels:
  - a strategy that finds nothing returns ``{}`` (not logged)
  - a strategy that raises is skipped (DEBUG), the rest still run
  - anything else inside ``Pipeline.run`` is caught at the boundary (WARNING)
    and the partial record resolved so far is returned
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from feedclip import RECORD_FIELDS, NormalizedRecord, Source
from feedclip.document import Element, LiveDocument, text_of
from feedclip.sanitizer import absolute_http_url, clean_block, clean_inline

logger = logging.getLogger(__name__)

Fields = dict[str, str]


@dataclass
class ExtractionContext:
    """What a strategy may look at.

    ``scope`` is the content unit the user acted on, or None for page-level
    extraction. ``root`` is where unit-local queries run: the scope, the
    pipeline's best-guess unit, or the document root.
    """

    document: LiveDocument
    scope: Element | None
    root: Element
    description_limit: int = 500

    @property
    def page_level(self) -> bool:
        return self.scope is None

    @property
    def page_url(self) -> str:
        return self.document.url

    def query(self, xpath: str) -> Element | None:
        return self.document.query(xpath, self.root)

    def query_all(self, xpath: str) -> list[Element]:
        return self.document.query_all(xpath, self.root)


Strategy = Callable[[ExtractionContext], Fields]
Finalizer = Callable[[ExtractionContext, Fields], Fields]
ScopeResolver = Callable[[LiveDocument], Element | None]


@dataclass(frozen=True)
class Pipeline:
    """Ordered strategies for one content source."""

    source: Source
    strategies: Sequence[Strategy]
    default_scope: ScopeResolver | None = None
    finalize: Finalizer | None = None
    name: str = field(default="")

    def run(
        self,
        document: LiveDocument,
        scope: Element | None = None,
        *,
        description_limit: int = 500,
    ) -> NormalizedRecord:
        """Extract a record. Never raises."""
        merged: Fields = {}
        try:
            root = scope if scope is not None else self._guess_root(document)
            ctx = ExtractionContext(document, scope, root, description_limit)
            for strategy in self.strategies:
                _merge(merged, _run_strategy(strategy, ctx))
                if len(merged) == len(RECORD_FIELDS):
                    break
            if self.finalize is not None:
                merged = self.finalize(ctx, merged)
        except Exception:
            logger.warning("%s extraction failed, returning partial record", self.label, exc_info=True)
        return assemble_record(self.source, merged, document.url)

    @property
    def label(self) -> str:
        return self.name or str(self.source)

    def _guess_root(self, document: LiveDocument) -> Element:
        if self.default_scope is not None:
            unit = self.default_scope(document)
            if unit is not None:
                return unit
        return document.root


def _run_strategy(strategy: Strategy, ctx: ExtractionContext) -> Fields:
    try:
        return strategy(ctx) or {}
    except Exception:
        logger.debug("strategy %s failed", getattr(strategy, "__name__", strategy), exc_info=True)
        return {}


def _merge(merged: Fields, found: Fields) -> None:
    for key, value in found.items():
        if key in RECORD_FIELDS and value and key not in merged:
            merged[key] = value


def assemble_record(source: Source, resolved: Fields, page_url: str) -> NormalizedRecord:
    """Build a record with every field defined and a valid absolute permalink."""
    canonical = absolute_http_url(resolved.get("canonical_url"), base=page_url)
    return NormalizedRecord(
        source=source,
        canonical_url=canonical or page_url,
        body=clean_block(resolved.get("body")),
        author_name=clean_inline(resolved.get("author_name")),
        author_handle=clean_inline(resolved.get("author_handle")).lstrip("@"),
        media_url=absolute_http_url(resolved.get("media_url"), base=page_url),
    )


# --- shared strategies -------------------------------------------------------


def page_metadata(ctx: ExtractionContext) -> Fields:
    """Last resort for page-level extraction: canonical link and Open Graph tags."""
    if not ctx.page_level:
        return {}
    doc = ctx.document
    return {
        "canonical_url": doc.link_href("canonical") or doc.absolute_url(doc.meta_content("og:url")),
        "body": doc.meta_content("og:description") or doc.meta_content("description"),
        "media_url": doc.absolute_url(doc.meta_content("og:image")),
    }


def first_attr(ctx: ExtractionContext, xpaths: Sequence[str], attr: str) -> str:
    """Value of *attr* on the first element matched by the first matching xpath."""
    for xpath in xpaths:
        node = ctx.query(xpath)
        if node is not None and node.get(attr):
            return node.get(attr)
    return ""


def first_text(ctx: ExtractionContext, xpaths: Sequence[str]) -> str:
    """Text of the first matched element that has any, trying *xpaths* in order."""
    for xpath in xpaths:
        for node in ctx.query_all(xpath):
            text = text_of(node)
            if text:
                return text
    return ""
