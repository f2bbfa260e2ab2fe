# access_scout/browser/base.py
"""
Contract of the browser-automation collaborator.

The crawl engine and every analyzer talk to a page only through
:class:`BrowserPage`; the Playwright binding lives in
:mod:`access_scout.browser.playwright_page`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, TypedDict, runtime_checkable


class ClipRect(TypedDict):
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class NavigationResponse:
    """Main-document response of a navigation."""

    url: str
    status: Optional[int] = None
    content_type: str = ""

    @property
    def is_html(self) -> bool:
        return not self.content_type or "html" in self.content_type.lower()


@runtime_checkable
class BrowserPage(Protocol):
    """One live page handle. All calls are suspension points."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> NavigationResponse:
        """Navigate; raise :class:`~access_scout.errors.NavigationFailure` on timeout/network errors."""

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def press(self, key: str) -> None: ...

    async def frame_urls(self) -> List[str]: ...

    async def screenshot(self, clip: ClipRect) -> bytes: ...

    async def content(self) -> str: ...

    async def wait(self, ms: int) -> None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool: ...

    async def click(self, selector: str, timeout_ms: int = 2000) -> bool: ...

    async def add_init_script(self, script: str) -> None: ...

    async def add_script(self, path: str) -> None: ...


__all__ = ["BrowserPage", "ClipRect", "NavigationResponse"]
