# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-source extraction pipelines.

Usage:
    from feedclip.extraction import extract

    record = extract(document)              # page-level, best-guess unit
    record = extract(document, scope=unit)  # one content unit

``extract`` never raises; see ``feedclip.extraction.base`` for the merge and
failure rules.
"""

from __future__ import annotations

from feedclip import NormalizedRecord, Source
from feedclip.classifier import classify_source
from feedclip.document import Element, LiveDocument
from feedclip.extraction.base import ExtractionContext, Pipeline, Strategy

__all__ = ["ExtractionContext", "Pipeline", "Strategy", "extract", "pipeline_for"]


def pipeline_for(source: Source, *, scoped: bool = False) -> Pipeline:
    """Pipeline for *source*; sources with list entries use a scoped variant."""
    # sources imports the per-source modules, which import this package
    from feedclip.sources import profile_for_source

    profile = profile_for_source(source)
    if scoped and profile.entry_pipeline is not None:
        return profile.entry_pipeline
    return profile.pipeline


def extract(
    document: LiveDocument,
    scope: Element | None = None,
    *,
    source: Source | None = None,
    description_limit: int = 500,
) -> NormalizedRecord:
    """Extract a NormalizedRecord for the page or for one content unit."""
    if source is None:
        source = classify_source(document.url)
    pipeline = pipeline_for(source, scoped=scope is not None)
    return pipeline.run(document, scope, description_limit=description_limit)
