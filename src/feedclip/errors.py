# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""feedclip exception hierarchy.

All feedclip-specific errors inherit from FeedclipError. The engine itself
never lets these escape its public operations; they travel between the host
adapters (channels, browser bridge) and the components that translate them
into outcomes.
"""

from __future__ import annotations


class FeedclipError(Exception):
    """Base exception for all feedclip errors."""


class ContextInvalidatedError(FeedclipError):
    """The host execution context was revoked while the page keeps running."""


class ChannelError(FeedclipError):
    """A message could not be delivered over the command channel."""

    def __init__(self, message: str, *, action: str = "") -> None:
        super().__init__(message)
        self.action = action


class BrowserError(FeedclipError):
    """Browser launch or page capture failure."""
