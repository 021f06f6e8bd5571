# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright capture bridge.

Loads a live page in headless Chromium, lets the feed render, and returns a
``LiveDocument`` snapshot (rendered HTML plus final URL) for offline
extraction. Used by the CLI; the engine itself never launches a browser.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Route, async_playwright

from feedclip.document import LiveDocument
from feedclip.errors import BrowserError

logger = logging.getLogger(__name__)

# Dangerous URL schemes blocked at context level.
BLOCKED_URL_SCHEMES = (
    "chrome://",
    "devtools://",
    "chrome-extension://",
    "file://",
    "view-source://",
    "blob:",
    "data:",
)
DEFAULT_LOCALE = "en-US"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """Capture configuration."""

    headless: bool = True
    locale: str = DEFAULT_LOCALE
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    timeout_ms: int = 30000
    wait_until: str = "load"
    render_wait_ms: int = 1500  # feeds hydrate after the load event


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    return [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-dev-shm-usage",
        "--disable-background-networking",
        "--disable-sync",
        "--disable-gpu",
        "--no-first-run",
        "--deny-permission-prompts",
        "--noerrdialogs",
    ]


async def _block_schemes(route: Route) -> None:
    url = route.request.url
    if url == "about:blank":
        await route.continue_()
        return
    if url.startswith(BLOCKED_URL_SCHEMES) or url.startswith("about:"):
        logger.debug("Scheme blocked: %s", url)
        await route.abort("blockedbyclient")
        return
    await route.continue_()


async def capture_page(url: str, config: BrowserConfig | None = None) -> LiveDocument:
    """Render *url* and snapshot it.

    Raises:
        BrowserError: launch, navigation or snapshot failed.
    """
    config = config or BrowserConfig()
    if url.startswith(BLOCKED_URL_SCHEMES):
        raise BrowserError(f"Refusing to capture blocked URL scheme: {url}")

    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=config.headless, args=chromium_launch_args(config))
        except PlaywrightError as exc:
            if "executable doesn't exist" in str(exc).lower():
                raise BrowserError("Chromium is not installed. Please run: playwright install chromium") from exc
            raise BrowserError(f"Browser launch failed: {exc}") from exc
        try:
            context = await browser.new_context(
                viewport={"width": config.viewport_width, "height": config.viewport_height},
                locale=config.locale,
                user_agent=config.user_agent,
                service_workers="block",
                permissions=[],
                accept_downloads=False,
            )
            await context.route("**/*", _block_schemes)
            page = await context.new_page()
            response = await page.goto(url, wait_until=config.wait_until, timeout=config.timeout_ms)
            if response is not None and response.status >= 400:
                logger.warning("HTTP %d while capturing %s", response.status, url)
            if config.render_wait_ms:
                await page.wait_for_timeout(config.render_wait_ms)
            html = await page.content()
            final_url = page.url
        except PlaywrightError as exc:
            raise BrowserError(f"Capture of {url} failed: {exc}") from exc
        finally:
            with suppress(PlaywrightError):
                await browser.close()

    logger.info("Captured %s (%d chars)", final_url, len(html))
    return LiveDocument.from_html(html, final_url)
