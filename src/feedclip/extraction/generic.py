# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fallback for unrecognized sites: page metadata only."""

from __future__ import annotations

from feedclip import Source
from feedclip.extraction.base import ExtractionContext, Fields, Pipeline


def canonical_link(ctx: ExtractionContext) -> Fields:
    doc = ctx.document
    return {"canonical_url": doc.link_href("canonical") or doc.absolute_url(doc.meta_content("og:url"))}


def description(ctx: ExtractionContext) -> Fields:
    doc = ctx.document
    return {
        "body": doc.meta_content("description") or doc.meta_content("og:description") or doc.title,
        "author_name": doc.meta_content("author"),
    }


def preview_image(ctx: ExtractionContext) -> Fields:
    doc = ctx.document
    return {"media_url": doc.absolute_url(doc.meta_content("og:image"))}


PIPELINE = Pipeline(
    source=Source.OTHER,
    strategies=(canonical_link, description, preview_image),
)
