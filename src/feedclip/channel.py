# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Command channel boundary.

``CommandChannel`` is the host's messaging capability (the coordinator that
owns persistence). ``ChannelAdapter`` wraps it for the engine:

- asks the context guard first; a dead context yields a failure outcome
  without touching the host
- maps delivery faults and synchronous send errors to
  ``{"success": False, "error": ...}``
- invokes the caller's callback exactly once per send

``HttpCommandChannel`` is a concrete channel that POSTs messages to a
persistence endpoint with httpx.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from feedclip.errors import ContextInvalidatedError
from feedclip.guard import ContextGuard

logger = logging.getLogger(__name__)

Message = dict[str, Any]
Outcome = dict[str, Any]
ResponseCallback = Callable[[Any, str | None], None]
OutcomeCallback = Callable[[Outcome], None]

INVALIDATED_ERROR = "Extension context invalidated"
NO_RESPONSE_ERROR = "No response from command channel"


class CommandChannel(Protocol):
    def is_connected(self) -> bool:
        """False (or raising) once the host context has been revoked."""
        ...

    def send_message(self, message: Message, callback: ResponseCallback) -> None:
        """Deliver *message*; later call ``callback(response, error)`` once."""
        ...


def failure(error: str) -> Outcome:
    return {"success": False, "error": error}


def to_outcome(response: Any, error: str | None) -> Outcome:
    if error:
        return failure(error)
    if not isinstance(response, dict):
        return failure(NO_RESPONSE_ERROR)
    if response.get("success"):
        return {**response, "success": True}
    return failure(str(response.get("error") or "Request failed"))


class ChannelAdapter:
    """Invalidation-aware, exactly-once wrapper over a CommandChannel."""

    def __init__(self, channel: CommandChannel, guard: ContextGuard) -> None:
        self._channel = channel
        self._guard = guard

    @property
    def guard(self) -> ContextGuard:
        return self._guard

    def send(self, message: Message, callback: OutcomeCallback) -> None:
        action = message.get("action", "")
        if not self._guard.is_valid():
            _deliver(callback, failure(INVALIDATED_ERROR), action)
            return

        completed = False

        def complete(response: Any, error: str | None = None) -> None:
            nonlocal completed
            if completed:
                logger.debug("duplicate completion for %r ignored", action)
                return
            completed = True
            outcome = to_outcome(response, error)
            if not outcome["success"]:
                logger.warning("%s failed: %s", action or "message", outcome["error"])
            _deliver(callback, outcome, action)

        try:
            self._channel.send_message(message, complete)
        except ContextInvalidatedError as exc:
            self._guard.invalidate(str(exc) or INVALIDATED_ERROR)
            complete(None, str(exc) or INVALIDATED_ERROR)
        except Exception as exc:
            complete(None, str(exc) or type(exc).__name__)

    async def request(self, message: Message) -> Outcome:
        """Awaitable form of ``send`` for asyncio callers."""
        future: asyncio.Future[Outcome] = asyncio.get_running_loop().create_future()

        def resolve(outcome: Outcome) -> None:
            if not future.done():
                future.set_result(outcome)

        self.send(message, resolve)
        return await future


def _deliver(callback: OutcomeCallback, outcome: Outcome, action: str) -> None:
    try:
        callback(outcome)
    except Exception:
        logger.exception("outcome callback for %r raised", action)


class HttpCommandChannel:
    """POST each message as JSON to a persistence endpoint.

    Sends run as tasks on the running asyncio loop; the callback receives the
    decoded JSON body, or the transport error text.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    def is_connected(self) -> bool:
        return not self._closed

    def send_message(self, message: Message, callback: ResponseCallback) -> None:
        if self._closed:
            raise ContextInvalidatedError(INVALIDATED_ERROR)
        task = asyncio.get_running_loop().create_task(self._post(message, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, message: Message, callback: ResponseCallback) -> None:
        try:
            response = await self._client.post(self.endpoint, json=message)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            callback(None, f"HTTP {exc.response.status_code} from {self.endpoint}")
        except httpx.HTTPError as exc:
            callback(None, f"{type(exc).__name__}: {exc}")
        except ValueError:
            callback(None, f"Invalid JSON from {self.endpoint}")
        else:
            callback(body, None)

    async def aclose(self) -> None:
        """Disconnect: pending sends finish, new sends are refused."""
        self._closed = True
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
