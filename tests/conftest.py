# File: tests/conftest.py
from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit

import pytest
from aiohttp import web

from access_scout.browser.base import ClipRect, NavigationResponse
from access_scout.browser.probes import probe_name
from access_scout.config import CrawlConfig, build_config
from access_scout.errors import NavigationFailure
from access_scout.models import AnalyzerResult
from access_scout.pipeline.base import Analyzer, AnalyzerContext, ArtifactStore
from access_scout.logger import module_logger


class FakePage:
    """In-memory BrowserPage answering probes by name.

    *probes* maps a probe name to a JSON reply or to a callable taking the
    probe argument. *site* maps URL paths to HTML. *focus* is the sequence
    of FOCUSED_ELEMENT replies walked by Tab; *trap_at* pins focus to one
    position, *forward_trap_at* pins it for Tab only.
    """

    def __init__(
        self,
        probes: Optional[Mapping[str, Any]] = None,
        *,
        site: Optional[Mapping[str, str]] = None,
        focus: Iterable[Mapping[str, Any]] = (),
        trap_at: Optional[int] = None,
        forward_trap_at: Optional[int] = None,
        content_types: Optional[Mapping[str, str]] = None,
        broken: Iterable[str] = (),
        clickable: Iterable[str] = (),
    ) -> None:
        self.probes: Dict[str, Any] = dict(probes or {})
        self.site: Dict[str, str] = dict(site or {})
        self.focus: List[Mapping[str, Any]] = list(focus)
        self.trap_at = trap_at
        self.forward_trap_at = forward_trap_at
        self.content_types = dict(content_types or {})
        self.broken = set(broken)
        self.clickable = set(clickable)

        self.visits: List[str] = []
        self.keys: List[str] = []
        self.clicked: List[str] = []
        self.init_scripts: List[str] = []
        self.scripts: List[str] = []
        self.screenshots: List[ClipRect] = []
        self.evaluated: List[str] = []
        self._url = "about:blank"
        self._pos: Optional[int] = None

    @property
    def url(self) -> str:
        return self._url

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> NavigationResponse:
        path = urlsplit(url).path or "/"
        self.visits.append(url)
        if path in self.broken:
            raise NavigationFailure("net::ERR_CONNECTION_RESET", url=url)
        self._url = url
        self._pos = None
        if path in self.content_types:
            return NavigationResponse(url=url, status=200, content_type=self.content_types[path])
        status = 200 if path in self.site else 404
        return NavigationResponse(url=url, status=status, content_type="text/html")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        name = probe_name(script)
        self.evaluated.append(name or "?")
        if name == "focused_element":
            if self._pos is None or not 0 <= self._pos < len(self.focus):
                return None
            return copy.deepcopy(dict(self.focus[self._pos]))
        value = self.probes.get(name or "")
        if callable(value):
            return value(arg)
        return copy.deepcopy(value)

    async def press(self, key: str) -> None:
        self.keys.append(key)
        if self._pos is not None and self._pos == self.trap_at:
            return
        if key == "Tab":
            if self._pos is not None and self._pos == self.forward_trap_at:
                return
            self._pos = 0 if self._pos is None else self._pos + 1
        elif key == "Shift+Tab" and self._pos:
            self._pos -= 1

    async def frame_urls(self) -> List[str]:
        return []

    async def screenshot(self, clip: ClipRect) -> bytes:
        self.screenshots.append(clip)
        return b"\x89PNG fake"

    async def content(self) -> str:
        return self.site.get(urlsplit(self._url).path or "/", "<html><body></body></html>")

    async def wait(self, ms: int) -> None:
        return None

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        return True

    async def click(self, selector: str, timeout_ms: int = 2000) -> bool:
        if selector in self.clickable:
            self.clicked.append(selector)
            return True
        return False

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def add_script(self, path: str) -> None:
        self.scripts.append(path)


def focus_stop(selector: str, **overrides: Any) -> Dict[str, Any]:
    """FOCUSED_ELEMENT reply with a clearly visible 2px black outline."""
    info = {
        "selector": selector,
        "tag": "a",
        "rect": {"x": 10, "y": 10, "width": 100, "height": 20},
        "visible": True,
        "outlineStyle": "solid",
        "outlineWidth": 2,
        "outlineColor": "rgb(0, 0, 0)",
        "boxShadow": "none",
        "backgroundColor": "rgb(255, 255, 255)",
        "tabindex": None,
    }
    info.update(overrides)
    return info


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest.fixture()
def serve_app():
    return _serve_app


@pytest.fixture()
def fake_page_cls():
    return FakePage


@pytest.fixture()
def make_focus():
    return focus_stop


@pytest.fixture()
def make_config(tmp_path: Path) -> Callable[..., CrawlConfig]:
    """Validated config with test-friendly timing; keyword overrides win."""

    def _make(**overrides: Any) -> CrawlConfig:
        data: Dict[str, Any] = {
            "start_url": "https://example.org/",
            "rate_limit_delay_ms": (0, 0),
            "settle_delay_ms": 0,
            "http_timeout": 2.0,
            "output_dir": tmp_path / "out",
            "keyboard": {"step_delay_ms": 0},
        }
        data.update(overrides)
        return build_config(data)

    return _make


@pytest.fixture()
def config(make_config) -> CrawlConfig:
    return make_config()


@pytest.fixture()
def run_analyzer(config: CrawlConfig, tmp_path: Path):
    """Run one analyzer directly against a page and return its result."""

    async def _run(
        analyzer: Analyzer,
        page: FakePage,
        *,
        cfg: Optional[CrawlConfig] = None,
        url: str = "https://example.org/",
        results: Optional[Dict[str, AnalyzerResult]] = None,
    ) -> AnalyzerResult:
        ctx = AnalyzerContext(
            page=page,
            url=url,
            config=cfg or config,
            logger=module_logger(analyzer.slug, url),
            artifacts=ArtifactStore(tmp_path / "artifacts-root"),
            module=analyzer.slug,
            results=dict(results or {}),
        )
        await analyzer.init(ctx)
        try:
            return await analyzer.run(ctx)
        finally:
            await analyzer.dispose(ctx)

    return _run
