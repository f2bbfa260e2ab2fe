# access_scout/browser/playwright_page.py
"""
Playwright binding of the browser-automation collaborator.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from access_scout.browser.base import ClipRect, NavigationResponse
from access_scout.errors import AnalyzerFailure, NavigationFailure

__all__ = ("PlaywrightPage", "PlaywrightSession")


class PlaywrightPage:
    """Adapter exposing a Playwright :class:`Page` as a :class:`BrowserPage`."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self.logger = logging.getLogger("AccessScout")

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> NavigationResponse:
        try:
            response = await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationFailure(f"timeout after {timeout_ms} ms", url=url) from exc
        except PlaywrightError as exc:
            raise NavigationFailure(str(exc).splitlines()[0], url=url) from exc
        if response is None:
            return NavigationResponse(url=self._page.url)
        headers = await response.all_headers()
        return NavigationResponse(
            url=self._page.url,
            status=response.status,
            content_type=headers.get("content-type", "").split(";", 1)[0].strip().lower(),
        )

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise AnalyzerFailure(f"evaluation failed: {str(exc).splitlines()[0]}", url=self._page.url) from exc

    async def press(self, key: str) -> None:
        try:
            await self._page.keyboard.press(key)
        except PlaywrightError as exc:
            raise AnalyzerFailure(f"key press {key} failed: {exc}", url=self._page.url) from exc

    async def frame_urls(self) -> List[str]:
        main = self._page.main_frame
        return [f.url for f in self._page.frames if f is not main and f.url and f.url != "about:blank"]

    async def screenshot(self, clip: ClipRect) -> bytes:
        try:
            return await self._page.screenshot(clip=dict(clip))
        except PlaywrightError as exc:
            raise AnalyzerFailure(f"screenshot failed: {exc}", url=self._page.url) from exc

    async def content(self) -> str:
        try:
            return await self._page.content()
        except PlaywrightError as exc:
            raise AnalyzerFailure(f"cannot read document: {exc}", url=self._page.url) from exc

    async def wait(self, ms: int) -> None:
        await self._page.wait_for_timeout(ms)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return False
        return True

    async def click(self, selector: str, timeout_ms: int = 2000) -> bool:
        locator = self._page.locator(selector).first
        try:
            if not await locator.is_visible(timeout=timeout_ms):
                return False
            await locator.click(timeout=timeout_ms)
        except PlaywrightError as exc:
            self.logger.debug("click %s failed: %s", selector, exc)
            return False
        return True

    async def add_init_script(self, script: str) -> None:
        await self._page.add_init_script(script)

    async def add_script(self, path: str) -> None:
        await self._page.add_script_tag(path=path)


class PlaywrightSession:
    """Async context manager owning one headless Chromium page."""

    def __init__(self, *, user_agent: str, headless: bool = True) -> None:
        self.user_agent = user_agent
        self.headless = headless
        self._pw: Any = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[PlaywrightPage] = None

    async def __aenter__(self) -> PlaywrightPage:
        self._pw = await async_playwright().start()
        self._browser = await self._pw.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(user_agent=self.user_agent)
        self.page = PlaywrightPage(await self._context.new_page())
        return self.page

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._pw is not None:
            await self._pw.stop()
