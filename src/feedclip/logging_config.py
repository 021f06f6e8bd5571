# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Log rendering for the feedclip CLI and for hosts that embed the engine.

Engine modules only ever call ``logging.getLogger(__name__)``. What reaches
stderr through here, and is worth reading, is:

- engine start-up per page (``feedclip.scheduler``), and injected control
  counts at DEBUG (``feedclip.injection``);
- the one-time "Host context invalidated" warning (``feedclip.guard``);
- failed ``save_post`` round trips and HTTP errors (``feedclip.channel``);
- browser capture status for ``feedclip extract --url`` (``feedclip.browser``).

Records from feedclip loggers carry a ``component`` key (``guard``,
``scheduler``, ...) so JSON lines can be filtered without parsing logger
names. Leaf module, no feedclip imports.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Transport libraries that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "asyncio")

_PACKAGE_PREFIX = "feedclip."


def add_component(logger, method_name, event_dict):
    """Tag feedclip records with the engine module that emitted them."""
    name = event_dict.get("logger") or ""
    if name.startswith(_PACKAGE_PREFIX):
        event_dict.setdefault("component", name[len(_PACKAGE_PREFIX) :])
    return event_dict


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route stdlib logging through structlog processors onto stderr.

    Args:
        json_output: JSON lines instead of the human-readable console renderer.
        level: Root logger level name; unknown names fall back to INFO.
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_component,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(root_level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
