# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Inbound commands from the coordinator.

- ``scrape_and_save``: page-level extraction, overridden by whatever the
  user right-clicked (selection, link, image), forwarded as ``save_post``.
  The reply arrives asynchronously.
- ``show_notification``: transient toast. Replied to never.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from feedclip import NormalizedRecord
from feedclip.channel import INVALIDATED_ERROR, Outcome, failure
from feedclip.extraction import extract
from feedclip.injection import SAVE_ACTION
from feedclip.sanitizer import absolute_http_url, clean_block

if TYPE_CHECKING:
    from feedclip.scheduler import Engine

logger = logging.getLogger(__name__)

Reply = Callable[[Outcome], object]


class ContextInfo(BaseModel):
    """What the user invoked the context menu on."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    selection_text: str | None = Field(None, alias="selectionText", description="Selected text")
    link_url: str | None = Field(None, alias="linkUrl", description="Link under the pointer")
    src_url: str | None = Field(None, alias="srcUrl", description="Image or video source")


class ScrapeAndSaveRequest(BaseModel):
    action: Literal["scrape_and_save"]
    info: ContextInfo = Field(default_factory=ContextInfo)


class ShowNotificationRequest(BaseModel):
    action: Literal["show_notification"]
    message: str
    status: str = Field("success", description='"success" or anything else for an error toast')


def apply_context(record: NormalizedRecord, info: ContextInfo) -> NormalizedRecord:
    """Override body, canonical URL and media URL from the context-menu target.

    The link only replaces the canonical URL when it is a valid absolute URL.
    """
    changes: dict[str, str] = {}
    if info.selection_text:
        body = clean_block(info.selection_text)
        if body:
            changes["body"] = body
    link = absolute_http_url(info.link_url)
    if link:
        changes["canonical_url"] = link
    media = absolute_http_url(info.src_url, base=record.canonical_url)
    if media:
        changes["media_url"] = media
    return replace(record, **changes) if changes else record


class CommandHandler:
    """Dispatches coordinator messages to the engine that owns the page."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def handle(self, request: Any, reply: Reply) -> bool:
        """Handle one inbound message. True when *reply* will be called later."""
        action = request.get("action") if isinstance(request, dict) else None
        if action == "scrape_and_save":
            return self._scrape_and_save(request, reply)
        if action == "show_notification":
            self._show_notification(request)
            return False
        logger.debug("ignoring inbound action %r", action)
        return False

    def _scrape_and_save(self, request: dict[str, Any], reply: Reply) -> bool:
        try:
            command = ScrapeAndSaveRequest.model_validate(request)
        except ValidationError as exc:
            logger.warning("invalid scrape_and_save request: %s", exc.errors()[0].get("msg", exc))
            reply(failure(f"Invalid request: {exc.error_count()} validation error(s)"))
            return False
        engine = self._engine
        if not engine.guard.is_valid():
            reply(failure(INVALIDATED_ERROR))
            return False
        record = extract(engine.document, None, description_limit=engine.config.description_limit)
        record = apply_context(record, command.info)
        engine.adapter.send({"action": SAVE_ACTION, "data": record.to_message()}, reply)
        return True

    def _show_notification(self, request: dict[str, Any]) -> None:
        try:
            command = ShowNotificationRequest.model_validate(request)
        except ValidationError:
            logger.debug("malformed show_notification ignored")
            return
        if not self._engine.guard.is_valid():
            return
        self._engine.injector.show_toast(command.message, command.status)
