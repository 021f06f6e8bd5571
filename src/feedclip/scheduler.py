# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Engine controller: triggers feeding one ``rescan`` action.

Triggers:
  - repeating timer (``scan_interval``): rescans unconditionally, catching
    content that appeared without a mutation (lazy media)
  - mutation observer: debounced rescan, so a scroll-driven burst of
    mutations costs one scan
  - navigation (profiles with ``tracks_navigation``): on a location change
    seen during a mutation notification, drop the floating control and
    rescan after ``navigation_delay``

Every trigger asks the context guard first. ``initialize`` disposes the
previous runtime before installing a new one, so repeated calls never leave
duplicate timers or observers behind.

Usage:
    engine = Engine(document, channel)   # inside a running asyncio loop
    engine.initialize()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from feedclip.channel import ChannelAdapter, CommandChannel
from feedclip.config import EngineConfig
from feedclip.document import LiveDocument, Mutation
from feedclip.guard import ContextGuard
from feedclip.injection import InjectionManager
from feedclip.runtime import EngineRuntime
from feedclip.sources import profile_for
from feedclip.timers import Debouncer, RepeatingTimer, TimerSource

logger = logging.getLogger(__name__)


class Engine:
    def __init__(
        self,
        document: LiveDocument,
        channel: CommandChannel,
        *,
        timers: TimerSource | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.document = document
        self.config = config or EngineConfig()
        self.timers: TimerSource = timers if timers is not None else asyncio.get_running_loop()
        self.guard = ContextGuard(channel)
        self.adapter = ChannelAdapter(channel, self.guard)
        self.injector = InjectionManager(document, self.adapter, self.timers, self.config)
        self.runtime: EngineRuntime | None = None
        self.rescans = 0
        self.guard.on_teardown(self._release_runtime)
        self.guard.on_teardown(self.injector.remove_all)

    @property
    def active(self) -> bool:
        return self.runtime is not None and not self.runtime.disposed

    def initialize(self) -> bool:
        """Install timer and observer for the current page, then scan once.

        Returns False when the host context is already gone.
        """
        if self.guard.invalidated:
            logger.warning("initialize skipped: host context invalidated (%s)", self.guard.reason)
            return False
        if not self.guard.is_valid():
            return False

        self._release_runtime()
        runtime = EngineRuntime(last_url=self.document.url)
        runtime.scan_timer = RepeatingTimer(self.timers, self.config.scan_interval, self.rescan)
        runtime.debouncer = Debouncer(self.timers, self.config.debounce_delay, self.rescan)
        runtime.observation = self.document.observe(self._on_mutations)
        runtime.scan_timer.start()
        self.runtime = runtime
        self.guard.attach(runtime)

        profile = profile_for(self.document.url)
        logger.info("engine initialized for %s (%s)", self.document.url, profile.source)
        self.rescan()
        return True

    def rescan(self) -> int:
        """Scan once and inject missing controls. Returns the number injected."""
        if not self.guard.is_valid():
            return 0
        self.rescans += 1
        return self.injector.scan_and_inject(profile_for(self.document.url))

    def teardown(self) -> None:
        """Stop background work and remove engine UI; the context stays valid."""
        self._release_runtime()
        self.injector.remove_all()

    def _release_runtime(self) -> None:
        runtime, self.runtime = self.runtime, None
        if runtime is not None:
            self.guard.detach(runtime)
            runtime.dispose()

    def _on_mutations(self, mutations: Sequence[Mutation]) -> None:
        if not self.guard.is_valid():
            return
        runtime = self.runtime
        if runtime is None or runtime.disposed:
            return
        if profile_for(self.document.url).tracks_navigation and self.document.url != runtime.last_url:
            self._on_navigation(runtime)
        if runtime.debouncer is not None:
            runtime.debouncer.trigger()

    def _on_navigation(self, runtime: EngineRuntime) -> None:
        logger.debug("navigation %s -> %s", runtime.last_url, self.document.url)
        # update first: removing the floating control re-enters _on_mutations
        runtime.last_url = self.document.url
        self.injector.remove_floating()
        runtime.schedule_navigation(self.timers.call_later(self.config.navigation_delay, self.rescan))
