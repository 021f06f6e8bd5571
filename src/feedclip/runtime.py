# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-page engine runtime handles.

One EngineRuntime exists per initialized page context. ``Engine.initialize``
creates it; ``dispose`` (called by the engine on re-initialization or by the
context guard on invalidation) cancels everything it holds, exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from feedclip.document import Observation
from feedclip.timers import Cancellable, Debouncer, RepeatingTimer

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class EngineRuntime:
    last_url: str
    scan_timer: RepeatingTimer | None = None
    observation: Observation | None = None
    debouncer: Debouncer | None = None
    navigation_handle: Cancellable | None = None
    disposed: bool = False

    def schedule_navigation(self, handle: Cancellable) -> None:
        """Replace any pending post-navigation rescan with *handle*."""
        if self.navigation_handle is not None:
            self.navigation_handle.cancel()
        self.navigation_handle = handle

    def dispose(self) -> bool:
        """Cancel timer, observer and pending rescans. False if already disposed."""
        if self.disposed:
            return False
        self.disposed = True
        if self.scan_timer is not None:
            self.scan_timer.cancel()
        if self.observation is not None:
            self.observation.disconnect()
        if self.debouncer is not None:
            self.debouncer.cancel()
        if self.navigation_handle is not None:
            self.navigation_handle.cancel()
        self.scan_timer = None
        self.observation = None
        self.debouncer = None
        self.navigation_handle = None
        logger.debug("runtime disposed (last url %s)", self.last_url)
        return True
