# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Cancellable delayed actions on a cooperative event loop.

Anything with ``call_later(delay, callback) -> handle`` (``handle.cancel()``)
is a timer source; a running ``asyncio`` loop qualifies as-is. Keeping the
scheduler on this one seam is what lets tests drive it with a manual clock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class TimerSource(Protocol):
    def call_later(self, delay: float, callback: Callable[[], object], /) -> Cancellable: ...


class DebounceState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"


class Debouncer:
    """Coalesce bursts of triggers into one call after a quiet window.

    idle --trigger--> pending --(delay elapses)--> idle + action()
    pending --trigger--> pending (window restarts)
    """

    __slots__ = ("_timers", "_delay", "_action", "_handle")

    def __init__(self, timers: TimerSource, delay: float, action: Callable[[], object]) -> None:
        self._timers = timers
        self._delay = delay
        self._action = action
        self._handle: Cancellable | None = None

    @property
    def state(self) -> DebounceState:
        return DebounceState.PENDING if self._handle is not None else DebounceState.IDLE

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._timers.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._action()


class RepeatingTimer:
    """Fixed-period tick, rescheduled before each action runs (setInterval semantics)."""

    __slots__ = ("_timers", "_interval", "_action", "_handle", "ticks")

    def __init__(self, timers: TimerSource, interval: float, action: Callable[[], object]) -> None:
        self._timers = timers
        self._interval = interval
        self._action = action
        self._handle: Cancellable | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._timers.call_later(self._interval, self._tick)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self._handle = self._timers.call_later(self._interval, self._tick)
        self.ticks += 1
        try:
            self._action()
        except Exception:
            # one failed tick must not stop the schedule
            logger.exception("Periodic action failed (tick %d)", self.ticks)
