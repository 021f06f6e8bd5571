# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Context guard: the single authority on whether the host context is alive.

The host can revoke the engine's context out-of-band (extension reload,
bridge shutdown) while the page keeps running. Every trigger and every
outbound call asks ``is_valid()`` first. The first negative answer tears the
engine down: runtime handles are disposed, teardown hooks remove engine UI,
and from then on ``is_valid()`` answers False without touching the host.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feedclip.channel import CommandChannel
    from feedclip.runtime import EngineRuntime

logger = logging.getLogger(__name__)


class ContextGuard:
    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel
        self._runtime: EngineRuntime | None = None
        self._hooks: list[Callable[[], object]] = []
        self._invalidated = False
        self.reason = ""

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    def attach(self, runtime: EngineRuntime) -> None:
        """Make *runtime* the one disposed on invalidation."""
        self._runtime = runtime

    def detach(self, runtime: EngineRuntime) -> None:
        if self._runtime is runtime:
            self._runtime = None

    def on_teardown(self, hook: Callable[[], object]) -> None:
        self._hooks.append(hook)

    def is_valid(self) -> bool:
        if self._invalidated:
            return False
        try:
            connected = bool(self._channel.is_connected())
            reason = "channel disconnected"
        except Exception as exc:
            # a liveness check that throws means the host is gone
            connected = False
            reason = f"{type(exc).__name__}: {exc}"
        if connected:
            return True
        self.invalidate(reason)
        return False

    def invalidate(self, reason: str = "context invalidated") -> None:
        """Tear down once; later calls are no-ops."""
        if self._invalidated:
            return
        self._invalidated = True
        self.reason = reason
        logger.warning("Host context invalidated (%s); stopping background work", reason)
        runtime, self._runtime = self._runtime, None
        if runtime is not None:
            runtime.dispose()
        for hook in self._hooks:
            try:
                hook()
            except Exception:
                logger.warning("teardown hook %r failed", hook, exc_info=True)
