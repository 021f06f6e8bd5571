# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Engine timing and extraction limits.

Defaults match what live feeds tolerate: a 2 s safety-net scan, a short
debounce for scroll-driven mutation bursts, and a 2 s feedback window on the
injected control. Environment overrides use the ``FEEDCLIP_`` prefix.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, replace

MARKER_ATTRIBUTE = "data-feedclip-processed"
CONTROL_ATTRIBUTE = "data-feedclip-control"
TOAST_ATTRIBUTE = "data-feedclip-toast"
FLOATING_CONTROL_ID = "feedclip-floating-save"

SAVE_ENDPOINT_ENV = "FEEDCLIP_SAVE_ENDPOINT"

# env var -> (field, parser)
_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "FEEDCLIP_SCAN_INTERVAL": ("scan_interval", float),
    "FEEDCLIP_DEBOUNCE_DELAY": ("debounce_delay", float),
    "FEEDCLIP_NAVIGATION_DELAY": ("navigation_delay", float),
    "FEEDCLIP_FEEDBACK_DELAY": ("feedback_delay", float),
    "FEEDCLIP_TOAST_DURATION": ("toast_duration", float),
    "FEEDCLIP_DESCRIPTION_LIMIT": ("description_limit", int),
}


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable engine configuration (all durations in seconds)."""

    scan_interval: float = 2.0  # periodic rescan tick
    debounce_delay: float = 0.3  # quiet window before a mutation-driven rescan
    navigation_delay: float = 0.5  # wait for the new SPA view to render
    feedback_delay: float = 2.0  # Saved!/Error display time on a control
    toast_duration: float = 3.0
    description_limit: int = 500  # video description chars appended to body

    def __post_init__(self) -> None:
        if self.scan_interval <= 0:
            raise ValueError(f"scan_interval must be > 0, got {self.scan_interval}")
        if self.debounce_delay < 0:
            raise ValueError(f"debounce_delay must be >= 0, got {self.debounce_delay}")
        if self.navigation_delay < 0:
            raise ValueError(f"navigation_delay must be >= 0, got {self.navigation_delay}")
        if self.feedback_delay < 0:
            raise ValueError(f"feedback_delay must be >= 0, got {self.feedback_delay}")
        if self.toast_duration < 0:
            raise ValueError(f"toast_duration must be >= 0, got {self.toast_duration}")
        if self.description_limit <= 0:
            raise ValueError(f"description_limit must be > 0, got {self.description_limit}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> EngineConfig:
        """Build a config from ``FEEDCLIP_*`` variables, then apply *overrides*.

        Unparsable values are ignored; parsed values still go through validation.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for var, (name, parse) in _ENV_FIELDS.items():
            raw = env.get(var, "").strip()
            if not raw:
                continue
            with suppress(ValueError):
                values[name] = parse(raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return replace(cls(), **values)
