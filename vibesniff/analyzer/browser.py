"""Playwright-based page rendering."""

from __future__ import annotations

import logging
import os
from typing import Optional

from playwright.async_api import Browser, Error as PlaywrightError, async_playwright

from .browser_models import RenderedPage

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class PageRenderer:
    """Renders pages in a headless Chromium owned by the caller.

    The browser is a scoped resource: start it once, share it across scans,
    and stop it when done (or use ``async with``).
    """

    def __init__(self, timeout: int = 30, headless: bool = True, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout * 1000  # Convert to ms
        self.headless = headless
        self.user_agent = user_agent
        self._playwright = None
        self._browser: Optional[Browser] = None

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def start(self):
        """Start the browser instance."""
        if self._browser:
            return
        self._playwright = await async_playwright().start()
        disable_sandbox = os.getenv("VIBESNIFF_DISABLE_CHROMIUM_SANDBOX") == "1"
        sandbox_args: list[str] = []
        if disable_sandbox:
            sandbox_args = ["--no-sandbox", "--disable-setuid-sandbox"]
            logger.warning("Chromium sandbox disabled via VIBESNIFF_DISABLE_CHROMIUM_SANDBOX=1")
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            chromium_sandbox=not disable_sandbox,
            args=["--disable-dev-shm-usage", "--disable-gpu", *sandbox_args],
        )
        logger.info("Browser started")

    async def stop(self):
        """Stop the browser instance."""
        try:
            if self._browser:
                await self._browser.close()
        except PlaywrightError as exc:
            logger.warning("Browser close failed: %s", exc)
        finally:
            self._browser = None

        try:
            if self._playwright:
                await self._playwright.stop()
        except PlaywrightError as exc:
            logger.warning("Playwright stop failed: %s", exc)
        finally:
            self._playwright = None

        logger.info("Browser stopped")

    async def __aenter__(self) -> "PageRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
        return False

    async def render(self, url: str) -> RenderedPage:
        """Load url, wait for the network to settle and capture the page."""
        if not self._browser:
            await self.start()

        result = RenderedPage(url=url, success=False)
        context = None
        page = None

        try:
            context = await self._browser.new_context(
                viewport={"width": 1920, "height": 1080},
                user_agent=self.user_agent,
                ignore_https_errors=True,
                locale="en-US",
            )
            page = await context.new_page()

            try:
                response = await page.goto(url, timeout=self.timeout, wait_until="networkidle")
            except PlaywrightError as exc:
                result.error = f"Failed to load: {str(exc)[:200]}"
                logger.warning("Failed to load %s: %s", url, exc)
                return result

            result.status_code = response.status if response else None
            result.final_url = page.url
            result.title = await page.title()
            result.html = await page.content()
            result.screenshot = await page.screenshot(full_page=True)
            result.success = True
            logger.info("Rendered %s (status %s)", url, result.status_code)

        except PlaywrightError as exc:
            result.error = f"Render error: {str(exc)[:200]}"
            logger.error("Error rendering %s: %s", url, exc)

        finally:
            if page:
                await page.close()
            if context:
                await context.close()

        return result
