# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for feedclip.scheduler: triggers, debounce, navigation and teardown."""

from __future__ import annotations

import logging

import pytest

from feedclip.config import CONTROL_ATTRIBUTE, FLOATING_CONTROL_ID, TOAST_ATTRIBUTE
from feedclip.errors import ContextInvalidatedError
from tests._engine_helpers import (
    TWITTER_HOME,
    YOUTUBE_HOME,
    YOUTUBE_WATCH,
    FakeChannel,
    make_document,
    tweet_html,
    youtube_entry_html,
    youtube_watch_body,
)


def _feed(n: int = 1):
    return make_document('<main id="feed">' + "".join(tweet_html(status_id=str(i)) for i in range(n)) + "</main>", TWITTER_HOME)


def _floating(doc):
    return doc.query_all(f".//*[@id='{FLOATING_CONTROL_ID}']")


class TestInitialize:
    def test_installs_timer_observer_and_scans(self, make_engine, timers):
        doc = _feed(2)
        engine = make_engine(doc)
        assert engine.initialize() is True
        assert engine.active
        assert engine.rescans == 1
        assert doc.observer_count == 1
        assert len(engine.injector.controls) == 2
        assert engine.runtime.scan_timer.running

    def test_reinitialize_does_not_leak(self, make_engine, timers):
        doc = _feed(1)
        engine = make_engine(doc)
        for _ in range(5):
            engine.initialize()
        assert doc.observer_count == 1
        # one periodic tick pending, nothing else
        assert timers.pending == 1
        timers.advance(60.0)
        assert engine.rescans == 5 + 1

    def test_reinitialize_disposes_previous_runtime(self, make_engine):
        engine = make_engine(_feed(1))
        engine.initialize()
        first = engine.runtime
        engine.initialize()
        assert first.disposed
        assert engine.runtime is not first

    def test_initialize_after_invalidation_is_refused(self, make_engine, caplog):
        channel = FakeChannel()
        engine = make_engine(_feed(1), channel)
        engine.initialize()
        engine.guard.invalidate("reload")
        with caplog.at_level(logging.WARNING, logger="feedclip.scheduler"):
            assert engine.initialize() is False
        assert "initialize skipped" in caplog.text
        assert not engine.active

    def test_initialize_with_dead_channel(self, make_engine):
        doc = _feed(1)
        engine = make_engine(doc, FakeChannel(connected=False))
        assert engine.initialize() is False
        assert doc.observer_count == 0
        assert doc.query_all(f".//*[@{CONTROL_ATTRIBUTE}]") == []


class TestTimerTrigger:
    def test_periodic_rescan_catches_silent_content(self, make_engine, timers):
        doc = _feed(1)
        engine = make_engine(doc, scan_interval=2.0)
        engine.initialize()
        timers.advance(0.5)  # flush the window opened by the first control
        # no structural mutation is reported for this unit
        doc.query(".//main").append(make_document(tweet_html(status_id="99"), TWITTER_HOME).query(".//article"))
        timers.advance(1.0)
        assert len(engine.injector.controls) == 1
        timers.advance(0.5)
        assert len(engine.injector.controls) == 2


class TestMutationTrigger:
    def test_burst_within_window_rescans_once(self, make_engine, timers):
        doc = _feed(0)
        engine = make_engine(doc)
        engine.initialize()
        feed = doc.query(".//main")
        for i in range(10):
            doc.insert_html(feed, tweet_html(status_id=str(100 + i)))
            timers.advance(0.05)
        assert engine.rescans == 1
        timers.advance(0.3)
        assert engine.rescans == 2
        assert len(engine.injector.controls) == 10

    @pytest.mark.parametrize("n", [1, 3, 6])
    def test_spaced_notifications_rescan_each(self, make_engine, timers, n):
        doc = _feed(0)
        engine = make_engine(doc)
        engine.initialize()
        feed = doc.query(".//main")
        for i in range(n):
            doc.insert_html(feed, tweet_html(status_id=str(200 + i)))
            timers.advance(0.5)
        # each insert restarts the window its predecessor's control opened
        assert engine.rescans == 1 + n

    def test_debounced_rescan_injects_new_units(self, make_engine, timers):
        doc = _feed(1)
        engine = make_engine(doc)
        engine.initialize()
        doc.insert_html(doc.query(".//main"), tweet_html(status_id="2"))
        timers.advance(0.3)
        assert len(doc.query_all(f".//button[@{CONTROL_ATTRIBUTE}='unit']")) == 2

    def test_floating_restored_after_host_rerender(self, make_engine, timers):
        doc = make_document(youtube_watch_body(), YOUTUBE_WATCH)
        engine = make_engine(doc)
        engine.initialize()
        (button,) = _floating(doc)
        doc.remove(button)
        timers.advance(0.3)
        assert len(_floating(doc)) == 1
        assert engine.injector.floating.element.getparent() is doc.body

    def test_feed_recycling_does_not_accumulate_controls(self, make_engine, timers):
        doc = _feed(0)
        engine = make_engine(doc)
        engine.initialize()
        feed = doc.query(".//main")
        for batch in range(3):
            doc.insert_html(feed, "".join(tweet_html(status_id=f"{batch}-{i}") for i in range(20)))
            timers.advance(0.3)
            for unit in list(feed):
                doc.remove(unit)
            timers.advance(0.3)
        assert engine.injector.controls == []


class TestNavigationTrigger:
    def test_navigation_drops_floating_and_rescans(self, make_engine, timers):
        doc = make_document(youtube_watch_body(), YOUTUBE_WATCH)
        engine = make_engine(doc)
        engine.initialize()
        assert len(_floating(doc)) == 1

        doc.navigate(YOUTUBE_HOME)
        doc.insert_html(doc.body, youtube_entry_html())
        assert _floating(doc) == []
        assert engine.runtime.last_url == YOUTUBE_HOME
        timers.advance(0.5)
        assert len(doc.query_all(f".//button[@{CONTROL_ATTRIBUTE}='unit']")) == 1

    def test_navigation_to_another_video_recreates_floating(self, make_engine, timers):
        doc = make_document(youtube_watch_body(), YOUTUBE_WATCH)
        engine = make_engine(doc)
        engine.initialize()
        first = engine.injector.floating

        doc.navigate("https://www.youtube.com/watch?v=next456")
        doc.insert_html(doc.body, "<div>next view</div>")
        timers.advance(0.5)
        assert len(_floating(doc)) == 1
        assert engine.injector.floating is not first

    def test_repeated_navigation_keeps_one_pending_rescan(self, make_engine, timers):
        doc = make_document(youtube_watch_body(), YOUTUBE_WATCH)
        engine = make_engine(doc, debounce_delay=10.0)
        engine.initialize()
        for vid in ("a1", "b2", "c3"):
            doc.navigate(f"https://www.youtube.com/watch?v={vid}")
            doc.insert_html(doc.body, "<span>x</span>")
        before = engine.rescans
        timers.advance(0.5)
        assert engine.rescans == before + 1

    def test_location_ignored_for_non_spa_sources(self, make_engine):
        doc = _feed(1)
        engine = make_engine(doc)
        engine.initialize()
        doc.navigate("https://x.com/explore")
        doc.insert_html(doc.query(".//main"), "<span>x</span>")
        assert engine.runtime.last_url == TWITTER_HOME


class TestInvalidation:
    def test_no_work_after_invalidation(self, make_engine, timers):
        channel = FakeChannel()
        doc = _feed(1)
        engine = make_engine(doc, channel, scan_interval=2.0)
        engine.initialize()
        runtime = engine.runtime

        channel.connected = ContextInvalidatedError("Extension context invalidated")
        timers.advance(2.0)  # the next trigger checks the dead context
        assert engine.guard.invalidated
        assert runtime.disposed
        rescans, checks = engine.rescans, channel.checks

        doc.insert_html(doc.query(".//main"), tweet_html(status_id="5"))
        timers.advance(30.0)
        assert engine.rescans == rescans
        assert channel.checks == checks
        assert channel.sent == []
        assert timers.pending == 0
        assert doc.observer_count == 0

    def test_teardown_removes_engine_ui(self, make_engine, timers):
        channel = FakeChannel()
        doc = make_document(youtube_watch_body() + youtube_entry_html(), YOUTUBE_WATCH)
        engine = make_engine(doc, channel)
        engine.initialize()
        engine.injector.show_toast("hello", "success")

        channel.connected = False
        assert engine.rescan() == 0
        assert doc.query_all(f".//*[@{CONTROL_ATTRIBUTE}]") == []
        assert doc.query_all(f".//*[@{TOAST_ATTRIBUTE}]") == []
        assert engine.runtime is None

    def test_teardown_logged_once(self, make_engine, timers, caplog):
        channel = FakeChannel()
        engine = make_engine(_feed(1), channel, scan_interval=1.0)
        engine.initialize()
        channel.connected = False
        with caplog.at_level(logging.WARNING):
            timers.advance(10.0)
            engine.rescan()
        assert caplog.text.count("Host context invalidated") == 1

    def test_pending_save_after_invalidation_fails_without_send(self, make_engine):
        channel = FakeChannel()
        doc = _feed(1)
        engine = make_engine(doc, channel)
        engine.initialize()
        (control,) = engine.injector.controls
        outcomes = []
        engine.guard.invalidate("reload")
        engine.adapter.send({"action": "save_post", "data": {}}, outcomes.append)
        assert outcomes == [{"success": False, "error": "Extension context invalidated"}]
        assert channel.sent == []
        assert control.removed


class TestExplicitTeardown:
    def test_teardown_then_initialize(self, make_engine, timers):
        doc = _feed(1)
        engine = make_engine(doc)
        engine.initialize()
        engine.teardown()
        assert not engine.active
        assert timers.pending == 0
        assert doc.observer_count == 0
        assert doc.query_all(f".//*[@{CONTROL_ATTRIBUTE}]") == []
        # the context is still valid, so the engine can come back
        assert engine.initialize() is True
