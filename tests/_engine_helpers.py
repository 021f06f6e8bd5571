# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared helper utilities for engine test files.

Underscore prefix prevents pytest collection.
These are plain utility classes and builders (not fixtures; conftest.py is
reserved for fixtures).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from feedclip.document import LiveDocument

_EPSILON = 1e-9


class _Handle:
    __slots__ = ("when", "seq", "callback", "cancelled")

    def __init__(self, when: float, seq: int, callback: Callable[[], object]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Timer source driven by ``advance()`` instead of wall-clock time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[_Handle] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[[], object], /) -> _Handle:
        self._seq += 1
        handle = _Handle(self.now + delay, self._seq, callback)
        self._queue.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """Run every callback due within the next *seconds*, in due order."""
        target = self.now + seconds
        while True:
            due = [h for h in self._queue if not h.cancelled and h.when <= target + _EPSILON]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = target
        self._queue = [h for h in self._queue if not h.cancelled]


class FakeChannel:
    """In-memory command channel.

    ``connected`` may be a bool or an exception instance (raised by
    ``is_connected``). With ``auto_reply`` off, callbacks queue up until ``reply()``.
    """

    def __init__(
        self,
        *,
        connected: bool | BaseException = True,
        response: Any = None,
        error: str | None = None,
        raise_on_send: BaseException | None = None,
        auto_reply: bool = True,
    ) -> None:
        self.connected = connected
        self.response = {"success": True} if response is None and error is None else response
        self.error = error
        self.raise_on_send = raise_on_send
        self.auto_reply = auto_reply
        self.sent: list[dict] = []
        self.callbacks: list[Callable[[Any, str | None], None]] = []
        self.checks = 0

    def is_connected(self) -> bool:
        self.checks += 1
        if isinstance(self.connected, BaseException):
            raise self.connected
        return self.connected

    def send_message(self, message: dict, callback: Callable[[Any, str | None], None]) -> None:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        self.sent.append(message)
        if self.auto_reply:
            callback(self.response, self.error)
        else:
            self.callbacks.append(callback)

    def reply(self, response: Any = None, error: str | None = None) -> None:
        callback = self.callbacks.pop(0)
        callback({"success": True} if response is None and error is None else response, error)


class Recorder:
    """Callable that records every call's single argument."""

    def __init__(self) -> None:
        self.calls: list[Any] = []

    def __call__(self, value: Any) -> None:
        self.calls.append(value)


# ---------------------------------------------------------------------------
# Fixture builders
# ---------------------------------------------------------------------------

TWITTER_HOME = "https://x.com/home"
INSTAGRAM_HOME = "https://www.instagram.com/"
LINKEDIN_FEED = "https://www.linkedin.com/feed/"
YOUTUBE_HOME = "https://www.youtube.com/"
YOUTUBE_WATCH = "https://www.youtube.com/watch?v=abc123"


def page(body: str, head: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


def make_document(body: str, url: str, head: str = "") -> LiveDocument:
    return LiveDocument.from_html(page(body, head), url)


def tweet_html(
    status_id: str = "1700000000000000001",
    handle: str = "jack",
    name: str = "Jack",
    text: str = "just setting up my twttr",
    media: str | None = None,
) -> str:
    media_html = f'<div><img alt="Image" src="https://pbs.twimg.com/media/{media}.jpg"></div>' if media else ""
    return (
        '<article data-testid="tweet">'
        '<div data-testid="User-Name">'
        f'<a href="/{handle}"><span>{name}</span></a>'
        f'<a href="/{handle}"><span>@{handle}</span></a>'
        f'<a href="/{handle}/status/{status_id}"><time datetime="2024-01-01T00:00:00Z">Jan 1</time></a>'
        "</div>"
        f'<div data-testid="tweetText"><span>{text}</span></div>'
        f"{media_html}"
        "</article>"
    )


def linkedin_update_html(
    urn: str = "urn:li:activity:7100000000000000000",
    name: str = "Ada Lovelace",
    slug: str = "ada-lovelace",
    text: str = "Shipping the analytical engine.",
) -> str:
    return (
        f'<div class="feed-shared-update-v2 artdeco-card" data-urn="{urn}">'
        '<div class="update-components-actor__container">'
        f'<a class="update-components-actor__meta-link" href="https://www.linkedin.com/in/{slug}/">'
        '<span class="update-components-actor__name">'
        f'<span aria-hidden="true">{name}</span><span class="visually-hidden">{name}</span>'
        "</span></a></div>"
        f'<div class="feed-shared-update-v2__description"><span>{text}</span></div>'
        '<img class="update-components-image__image" src="https://media.licdn.com/dms/image/post.jpg">'
        "</div>"
    )


def instagram_post_html(
    handle: str = "jane_doe",
    shortcode: str = "C0deAbc123",
    caption: str = "Sunset over the bay",
    avatar_only: bool = False,
) -> str:
    label = "" if avatar_only else handle
    return (
        "<article>"
        "<header>"
        f'<a href="/{handle}/"><img alt="" src="https://scontent.cdninstagram.com/avatar.jpg">{label}</a>'
        '<button type="button">Follow</button>'
        "</header>"
        '<div><img src="https://scontent.cdninstagram.com/v/post.jpg"></div>'
        f"<div><span>{caption}</span></div>"
        f'<a href="/p/{shortcode}/"><time datetime="2024-01-01">1d</time></a>'
        "</article>"
    )


def youtube_entry_html(
    href: str = "/watch?v=abc123",
    title: str = "My Talk",
    channel: str = "Conference Channel",
    channel_handle: str = "confchannel",
    tag: str = "ytd-rich-item-renderer",
) -> str:
    return (
        f"<{tag}>"
        f'<ytd-thumbnail><a id="thumbnail" href="{href}"><img src="https://i.ytimg.com/vi/abc123/hq720.jpg"></a></ytd-thumbnail>'
        f'<a id="video-title-link" href="{href}"><span id="video-title">{title}</span></a>'
        f'<ytd-channel-name><a href="/@{channel_handle}">{channel}</a></ytd-channel-name>'
        f"</{tag}>"
    )


def youtube_watch_body(
    title: str = "Building Engines",
    channel: str = "Conference Channel",
    channel_handle: str = "confchannel",
    description: str = "A talk about engines.",
) -> str:
    return (
        '<div id="title"><h1 class="style-scope ytd-watch-metadata">'
        f"<span>{title}</span></h1></div>"
        f'<div id="owner"><ytd-channel-name><a href="/@{channel_handle}">{channel}</a></ytd-channel-name></div>'
        f'<div id="description-inline-expander"><span>{description}</span></div>'
    )
