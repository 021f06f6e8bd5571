# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the Instagram pipeline and the author cascade."""

from __future__ import annotations

import pytest

from feedclip import Source
from feedclip.extraction import extract
from feedclip.extraction.authors import TIERS, author_cascade
from feedclip.extraction.base import ExtractionContext
from feedclip.extraction.instagram import RULES, UNIT_XPATH
from tests._engine_helpers import INSTAGRAM_HOME, instagram_post_html, make_document


def _unit_record(body: str, url: str = INSTAGRAM_HOME, head: str = ""):
    doc = make_document(body, url, head)
    return extract(doc, doc.query(UNIT_XPATH))


class TestPost:
    def test_full_post(self):
        record = _unit_record(instagram_post_html())
        assert record.source is Source.INSTAGRAM
        assert record.canonical_url == "https://www.instagram.com/p/C0deAbc123/"
        assert record.author_handle == "jane_doe"
        assert record.author_name == "jane_doe"
        assert record.body == "Sunset over the bay"
        assert record.media_url == "https://scontent.cdninstagram.com/v/post.jpg"

    def test_avatar_only_header_link_uses_segment(self):
        """Icon-only profile link: the path segment doubles as the name."""
        record = _unit_record(instagram_post_html(avatar_only=True))
        assert record.author_handle == "jane_doe"
        assert record.author_name == "jane_doe"

    def test_reel_anchor_when_no_timestamp(self):
        body = '<article><a href="/reel/Xyz_987/">watch</a></article>'
        assert _unit_record(body).canonical_url == "https://www.instagram.com/reel/Xyz_987/"

    def test_caption_prefers_heading(self):
        body = "<article><h1>The real caption</h1><span>a much longer span of unrelated text</span></article>"
        assert _unit_record(body).body == "The real caption"

    def test_caption_skips_ui_labels(self):
        body = "<article><span>Original audio</span><span>Nice</span></article>"
        assert _unit_record(body).body == "Nice"

    def test_video_poster(self):
        body = '<article><video poster="https://scontent.cdninstagram.com/poster.jpg"></video></article>'
        assert _unit_record(body).media_url == "https://scontent.cdninstagram.com/poster.jpg"

    def test_page_level_uses_first_article(self):
        body = instagram_post_html(shortcode="first") + instagram_post_html(handle="other", shortcode="second")
        record = extract(make_document(body, "https://www.instagram.com/p/first/"))
        assert record.canonical_url == "https://www.instagram.com/p/first/"
        assert record.author_handle == "jane_doe"


class TestAuthorCascade:
    def test_reserved_and_denied_links_skipped(self):
        body = (
            "<article><header>"
            '<a href="/explore/">Explore</a>'
            '<a href="/someone/">Follow</a>'
            '<a href="/jane_doe/">Jane Doe</a>'
            "</header></article>"
        )
        record = _unit_record(body)
        assert record.author_handle == "jane_doe"
        assert record.author_name == "Jane Doe"

    def test_link_outside_header(self):
        body = '<article><div><a href="/p/abc/">post</a><a href="/bob.smith">bob.smith</a></div></article>'
        record = _unit_record(body)
        assert record.author_handle == "bob.smith"

    def test_other_host_links_ignored(self):
        body = '<article><header><a href="https://example.com/jane_doe">site</a></header></article>'
        assert _unit_record(body).author_handle == ""

    def test_title_handle_form(self):
        head = '<meta property="og:title" content="Jane Doe (@jane_doe) &#8226; Instagram photos and videos">'
        record = _unit_record("<article><span>caption</span></article>", head=head)
        assert record.author_name == "Jane Doe"
        assert record.author_handle == "jane_doe"

    def test_title_on_platform_form(self):
        head = "<title>Jane Doe on Instagram: \"Sunset\"</title>"
        record = _unit_record("<article><span>caption</span></article>", head=head)
        assert record.author_name == "Jane Doe"
        assert record.author_handle == ""

    def test_nested_fragment_matching_segment(self):
        body = '<article><a href="/jane_doe/reels/"><span><span>jane_doe</span></span></a></article>'
        record = _unit_record(body)
        assert record.author_handle == "jane_doe"
        assert record.author_name == "jane_doe"

    def test_first_tier_short_circuits(self):
        calls = []

        def first(ctx, rules):
            calls.append("first")
            return {"author_handle": "from_first"}

        def second(ctx, rules):
            calls.append("second")
            return {"author_handle": "from_second"}

        doc = make_document("<article></article>", INSTAGRAM_HOME)
        ctx = ExtractionContext(doc, None, doc.root)
        assert author_cascade(RULES, (first, second))(ctx) == {"author_handle": "from_first"}
        assert calls == ["first"]

    def test_strategy_name(self):
        assert author_cascade(RULES).__name__ == "instagram_author_cascade"
        assert len(TIERS) == 4

    @pytest.mark.parametrize("label", ["Follow", "more options", "  SHARE "])
    def test_deny_labels_case_insensitive(self, label):
        assert RULES.is_denied_label(label)

    def test_reserved_segments(self):
        assert RULES.is_reserved("Explore")
        assert not RULES.is_reserved("jane_doe")
