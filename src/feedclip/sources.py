# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Source profiles: one variant per content source.

A profile bundles everything source-specific the engine needs: the
extraction pipeline(s), the structural selector for content units, and
whether the source gets a floating page-level control and SPA navigation
tracking. The classifier picks the profile once per scan; nothing else in
the engine branches on the source.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from feedclip import Source
from feedclip.classifier import classify_source
from feedclip.extraction import generic, instagram, linkedin, twitter, youtube
from feedclip.extraction.base import Pipeline


@dataclass(frozen=True)
class SourceProfile:
    source: Source
    pipeline: Pipeline
    unit_xpath: str | None = None  # None: no per-unit controls
    entry_pipeline: Pipeline | None = None  # scoped extraction, when it differs
    floating_page: Callable[[str], bool] | None = None  # URL -> wants a floating control
    tracks_navigation: bool = False  # watch location changes on mutations


PROFILES: dict[Source, SourceProfile] = {
    Source.LINKEDIN: SourceProfile(Source.LINKEDIN, linkedin.PIPELINE, unit_xpath=linkedin.UNIT_XPATH),
    Source.TWITTER: SourceProfile(Source.TWITTER, twitter.PIPELINE, unit_xpath=twitter.UNIT_XPATH),
    Source.INSTAGRAM: SourceProfile(Source.INSTAGRAM, instagram.PIPELINE, unit_xpath=instagram.UNIT_XPATH),
    Source.YOUTUBE: SourceProfile(
        Source.YOUTUBE,
        youtube.PAGE_PIPELINE,
        unit_xpath=youtube.UNIT_XPATH,
        entry_pipeline=youtube.ENTRY_PIPELINE,
        floating_page=youtube.is_video_page,
        tracks_navigation=True,
    ),
    Source.OTHER: SourceProfile(Source.OTHER, generic.PIPELINE),
}


def profile_for_source(source: Source) -> SourceProfile:
    return PROFILES.get(source, PROFILES[Source.OTHER])


def profile_for(url: str) -> SourceProfile:
    """Classify *url* and return its profile."""
    return profile_for_source(classify_source(url))
