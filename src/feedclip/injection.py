# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Save-control injection.

Every content unit matched by the source's structural selector gets exactly
one save control. The unit is marked with ``data-feedclip-processed`` before
the control is attached; a marked unit is never touched again. The mark lives
on the host's element, so a unit the host destroys and recreates (virtualized
lists) is unmarked and gets a fresh control. Controls whose element the host
took out of the page are forgotten at the start of the next scan.

Control lifecycle::

    idle --activate--> pending --outcome--> success --delay--> removed
                                        \\-> failure --delay--> idle

Floating controls (one per page, for page-level sources) revert to idle on
success instead of removing themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

import lxml.html

from feedclip import NormalizedRecord
from feedclip.channel import ChannelAdapter, Outcome, failure
from feedclip.config import (
    CONTROL_ATTRIBUTE,
    FLOATING_CONTROL_ID,
    MARKER_ATTRIBUTE,
    TOAST_ATTRIBUTE,
    EngineConfig,
)
from feedclip.document import Element, LiveDocument
from feedclip.extraction import extract
from feedclip.sources import SourceProfile
from feedclip.timers import Cancellable, TimerSource

logger = logging.getLogger(__name__)

SAVE_ACTION = "save_post"


class ControlState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


_LABELS = {
    ControlState.IDLE: "Save",
    ControlState.PENDING: "Saving...",
    ControlState.SUCCESS: "Saved!",
    ControlState.FAILURE: "Error",
}
_COLORS = {
    ControlState.IDLE: "#4f46e5",
    ControlState.PENDING: "#4f46e5",
    ControlState.SUCCESS: "#10b981",
    ControlState.FAILURE: "#ef4444",
}
_UNIT_CONTROL_STYLE = (
    "position: absolute; top: 10px; right: 10px; z-index: 9999; color: white; border: none; "
    "padding: 6px 12px; border-radius: 4px; font-size: 12px; cursor: pointer"
)
_FLOATING_CONTROL_STYLE = (
    "position: fixed; bottom: 80px; right: 20px; z-index: 9999; color: white; border: none; "
    "padding: 12px 20px; border-radius: 50px; font-size: 14px; font-weight: 600; cursor: pointer"
)


class SaveControl:
    """One injected button bound to one extraction target."""

    def __init__(
        self,
        element: Element,
        *,
        document: LiveDocument,
        adapter: ChannelAdapter,
        timers: TimerSource,
        extractor: Callable[[], NormalizedRecord],
        feedback_delay: float,
        remove_on_success: bool = True,
        on_removed: Callable[[SaveControl], object] | None = None,
    ) -> None:
        self.element = element
        self._document = document
        self._adapter = adapter
        self._timers = timers
        self._extractor = extractor
        self._feedback_delay = feedback_delay
        self._remove_on_success = remove_on_success
        self._on_removed = on_removed
        self._feedback: Cancellable | None = None
        self.state = ControlState.IDLE
        self.removed = False
        self.last_record: NormalizedRecord | None = None
        self._base_style = element.get("style") or ""
        self._render()

    def activate(self) -> bool:
        """User click. Returns False when ignored (not idle, or removed)."""
        if self.removed or self.state is not ControlState.IDLE:
            logger.debug("activation ignored in state %s", self.state)
            return False
        self._set_state(ControlState.PENDING)
        try:
            record = self._extractor()
        except Exception as exc:
            logger.exception("extraction for save control failed")
            self._on_outcome(failure(str(exc) or type(exc).__name__))
            return True
        self.last_record = record
        self._adapter.send({"action": SAVE_ACTION, "data": record.to_message()}, self._on_outcome)
        return True

    def reset(self) -> None:
        self._feedback = None
        if not self.removed:
            self._set_state(ControlState.IDLE)

    def remove(self) -> None:
        if self.removed:
            return
        self.removed = True
        if self._feedback is not None:
            self._feedback.cancel()
            self._feedback = None
        self._document.remove(self.element)
        if self._on_removed is not None:
            self._on_removed(self)

    def discard(self) -> None:
        """Forget a control whose element the host already took out of the page."""
        if self.removed:
            return
        self.removed = True
        if self._feedback is not None:
            self._feedback.cancel()
            self._feedback = None
        if self._on_removed is not None:
            self._on_removed(self)

    def _on_outcome(self, outcome: Outcome) -> None:
        if self.removed:
            return
        if outcome.get("success"):
            self._set_state(ControlState.SUCCESS)
            after = self.remove if self._remove_on_success else self.reset
        else:
            self._set_state(ControlState.FAILURE)
            after = self.reset
        self._feedback = self._timers.call_later(self._feedback_delay, after)

    def _set_state(self, state: ControlState) -> None:
        self.state = state
        self._render()

    def _render(self) -> None:
        self.element.text = _LABELS[self.state]
        self.element.set("data-state", str(self.state))
        self.element.set("style", f"{self._base_style}; background: {_COLORS[self.state]}")


def ensure_positioned(unit: Element) -> bool:
    """Give a statically positioned unit ``position: relative``.

    Only the inline style is visible here; a unit without an inline position
    is treated as static. Returns True when the style was changed.
    """
    style = unit.get("style") or ""
    position = "static"
    for declaration in _split_declarations(style):
        name, sep, value = declaration.partition(":")
        if sep and name.strip().lower() == "position":
            position = value.strip().lower()
    if position != "static":
        return False
    # appended rather than re-serialized so the host's declarations stay byte for byte
    kept = style.rstrip().rstrip(";").rstrip()
    unit.set("style", f"{kept}; position: relative" if kept else "position: relative")
    return True


def _split_declarations(style: str) -> list[str]:
    """Split an inline style on ``;`` outside quotes and parentheses."""
    parts: list[str] = []
    start = depth = 0
    quote = ""
    for i, char in enumerate(style):
        if quote:
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == ";" and depth == 0:
            parts.append(style[start:i])
            start = i + 1
    parts.append(style[start:])
    return parts


class InjectionManager:
    """Finds content units and attaches save controls, at most once each."""

    def __init__(
        self,
        document: LiveDocument,
        adapter: ChannelAdapter,
        timers: TimerSource,
        config: EngineConfig | None = None,
    ) -> None:
        self._document = document
        self._adapter = adapter
        self._timers = timers
        self._config = config or EngineConfig()
        self._controls: list[SaveControl] = []
        self._floating: SaveControl | None = None
        self._toasts: list[tuple[Element, Cancellable]] = []

    @property
    def controls(self) -> list[SaveControl]:
        return list(self._controls)

    @property
    def floating(self) -> SaveControl | None:
        return self._floating

    def control_for(self, element: Element) -> SaveControl | None:
        return next((c for c in self._controls if c.element is element), None)

    def scan_and_inject(self, profile: SourceProfile) -> int:
        """Attach controls to unmarked units in document order. Returns how many."""
        self._prune_detached()
        if profile.floating_page is not None:
            self.sync_floating(profile)
        if profile.unit_xpath is None:
            return 0
        injected = 0
        for unit in self._document.query_all(profile.unit_xpath):
            if unit.get(MARKER_ATTRIBUTE):
                continue
            unit.set(MARKER_ATTRIBUTE, "true")
            ensure_positioned(unit)
            self._attach(unit, profile)
            injected += 1
        if injected:
            logger.debug("injected %d %s controls", injected, profile.source)
        return injected

    def _attach(self, unit: Element, profile: SourceProfile) -> SaveControl:
        element = lxml.html.Element("button", {"type": "button", CONTROL_ATTRIBUTE: "unit", "style": _UNIT_CONTROL_STYLE})
        control = self._make_control(
            element,
            lambda: extract(
                self._document, unit, source=profile.source, description_limit=self._config.description_limit
            ),
            remove_on_success=True,
        )
        self._document.append_child(unit, element)
        return control

    def sync_floating(self, profile: SourceProfile) -> None:
        """Create the floating control on pages that want one, drop it elsewhere."""
        wanted = profile.floating_page is not None and profile.floating_page(self._document.url)
        if not wanted:
            self.remove_floating()
            return
        if self._floating is not None:
            if not self._floating.removed and self._document.contains(self._floating.element):
                return
            # the host dropped it (body re-render, SPA swap); recreate
            self._floating.discard()
            self._floating = None
        element = lxml.html.Element(
            "button",
            {"type": "button", "id": FLOATING_CONTROL_ID, CONTROL_ATTRIBUTE: "floating", "style": _FLOATING_CONTROL_STYLE},
        )
        self._floating = self._make_control(
            element,
            lambda: extract(self._document, None, source=profile.source, description_limit=self._config.description_limit),
            remove_on_success=False,
        )
        self._document.append_child(self._document.body, element)

    def remove_floating(self) -> None:
        if self._floating is not None:
            self._floating.remove()
            self._floating = None
        # a stale element may survive a host re-render of <body>
        for stale in self._document.query_all(f".//*[@id='{FLOATING_CONTROL_ID}']"):
            self._document.remove(stale)

    def show_toast(self, message: str, status: str) -> Element:
        color = _COLORS[ControlState.SUCCESS] if status == "success" else _COLORS[ControlState.FAILURE]
        toast = lxml.html.Element(
            "div",
            {
                TOAST_ATTRIBUTE: status,
                "style": f"position: fixed; bottom: 20px; right: 20px; z-index: 10000; color: white; background: {color}",
            },
        )
        toast.text = message
        self._document.append_child(self._document.body, toast)
        handle = self._timers.call_later(self._config.toast_duration, lambda: self._dismiss_toast(toast))
        self._toasts.append((toast, handle))
        return toast

    def _dismiss_toast(self, toast: Element) -> None:
        self._toasts = [(t, h) for t, h in self._toasts if t is not toast]
        self._document.remove(toast)

    def remove_all(self) -> None:
        """Remove every engine-owned element (teardown)."""
        for control in list(self._controls):
            control.remove()
        self.remove_floating()
        for toast, handle in self._toasts:
            handle.cancel()
            self._document.remove(toast)
        self._toasts.clear()

    def _make_control(
        self,
        element: Element,
        extractor: Callable[[], NormalizedRecord],
        *,
        remove_on_success: bool,
    ) -> SaveControl:
        control = SaveControl(
            element,
            document=self._document,
            adapter=self._adapter,
            timers=self._timers,
            extractor=extractor,
            feedback_delay=self._config.feedback_delay,
            remove_on_success=remove_on_success,
            on_removed=self._forget,
        )
        self._controls.append(control)
        return control

    def _prune_detached(self) -> None:
        """Drop controls whose unit the host destroyed along with the control."""
        for control in list(self._controls):
            if control is not self._floating and not self._document.contains(control.element):
                control.discard()

    def _forget(self, control: SaveControl) -> None:
        if control in self._controls:
            self._controls.remove(control)
