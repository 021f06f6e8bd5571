# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import feedclip  # noqa: F401
except ImportError:
    raise ImportError("feedclip is not installed. Run: pip install -e '.[dev]'") from None

import pytest
from tests._engine_helpers import FakeChannel, ManualTimers

from feedclip.config import EngineConfig


@pytest.fixture(autouse=True)
def _block_real_browser(request, monkeypatch):
    """Safety net: prevent real browser launches in unit tests.

    Tests that really need Chromium opt out with ``@pytest.mark.browser``.
    """
    if "browser" in request.keywords:
        return

    def _no_real_browser():
        raise RuntimeError("Test tried to launch a real browser. Patch 'feedclip.browser.capture_page' in your test.")

    monkeypatch.setattr("feedclip.browser.async_playwright", _no_real_browser)


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def config():
    # long scan interval so periodic ticks stay out of debounce assertions
    return EngineConfig(scan_interval=60.0)


@pytest.fixture
def make_engine(timers, config):
    """Factory: ``make_engine(document, channel=None, **config_overrides)``."""
    from dataclasses import replace

    from feedclip.scheduler import Engine

    def _make(document, channel=None, **overrides):
        cfg = replace(config, **overrides) if overrides else config
        return Engine(document, channel or FakeChannel(), timers=timers, config=cfg)

    return _make
