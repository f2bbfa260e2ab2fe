# === FILE: access_scout/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from typing import Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from aiohttp import ClientSession, ClientTimeout

from access_scout.aggregator import ScanResult
from access_scout.browser.base import BrowserPage
from access_scout.browser.probes import SCROLL_TO_BOTTOM, SPA_ROUTE_HOOK, SPA_ROUTES, run_probe
from access_scout.config import CrawlConfig
from access_scout.crawler.downloads import DocumentInspector, is_download
from access_scout.crawler.link_extractor import extract_links, in_scope, normalize_url
from access_scout.crawler.robots import RobotsRuleSet, fetch_robots, robots_url_for
from access_scout.crawler.sitemap import discover_sitemap_urls
from access_scout.errors import NavigationFailure, RobotsFetchFailure, ScoutError
from access_scout.models import FrontierItem, PageResult
from access_scout.pipeline.base import ArtifactStore
from access_scout.pipeline.runner import Pipeline

__all__ = ("AuditCrawler", "VisitedSet", "CONSENT_SELECTORS")

# Tried in order when consent_click == "auto".
CONSENT_SELECTORS: Tuple[str, ...] = (
    "#onetrust-accept-btn-handler",
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    "[data-testid='uc-accept-all-button']",
    "button#accept-all",
    ".cc-allow",
    "button:has-text('Alle akzeptieren')",
    "button:has-text('Accept all')",
)


class VisitedSet:
    """Normalized URLs that were dequeued and loaded; never exceeds *limit*."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._urls: Set[str] = set()
        self._order: List[str] = []

    def add(self, url: str) -> bool:
        if url in self._urls or self.full:
            return False
        self._urls.add(url)
        self._order.append(url)
        return True

    @property
    def full(self) -> bool:
        return len(self._urls) >= self.limit

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)


class AuditCrawler:
    """Breadth-first crawl over one browser page, running the analyzer pipeline per page."""

    def __init__(
        self,
        config: CrawlConfig,
        page: BrowserPage,
        pipeline: Pipeline,
        *,
        artifacts: Optional[ArtifactStore] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config
        self.page = page
        self.pipeline = pipeline
        self.artifacts = artifacts or ArtifactStore(config.output_dir)
        self.session = session
        self._own_session = session is None
        self.logger = logging.getLogger("AccessScout")

        self.start_url = normalize_url(config.start, config.keep_query)
        self.visited = VisitedSet(config.max_pages)
        self.frontier: Deque[FrontierItem] = deque()
        self._seen: Set[str] = set()
        self._pending_downloads: List[Tuple[str, str]] = []
        self._download_urls: Set[str] = set()
        self.robots = RobotsRuleSet.empty()
        self._robots_by_origin: Dict[str, RobotsRuleSet] = {}
        self.result = ScanResult.start(self.start_url)

    async def __aenter__(self) -> AuditCrawler:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.http_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._own_session and self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # main loop
    # ------------------------------------------------------------------ #

    async def crawl(self) -> ScanResult:
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with AuditCrawler(...)'")
        self.logger.info("Start crawl: %s (scope=%s, robots=%s)", self.start_url, self.config.scope,
                         self.config.respect_robots)
        started = time.monotonic()

        await self._load_robots()
        self._enqueue(self.start_url, 0, source=self.start_url)
        if self.config.seed_sitemap:
            await self._seed_from_sitemap()
        await self.page.add_init_script(SPA_ROUTE_HOOK)

        while self.frontier and not self.visited.full:
            item = self.frontier.popleft()
            rules = await self._robots_for(item.url)
            disallowed = not rules.allows(item.url)
            if disallowed and self.config.respect_robots == "respect":
                self.result.summary.robots_blocked += 1
                self.logger.debug("robots.txt blocks %s", item.url)
                continue
            if len(self.visited):
                await self._rate_limit()
            self.visited.add(item.url)
            await self._visit(item, disallowed)

        await self._inspect_downloads()
        duration = time.monotonic() - started
        self.logger.info(
            "Finished: %d page(s) in %.2f s (%.2f pages/s)",
            len(self.visited), duration, len(self.visited) / duration if duration else 0,
        )
        if self.result.summary.robots_blocked or self.result.summary.robots_audited:
            self.logger.info("robots.txt: %d blocked, %d audited",
                             self.result.summary.robots_blocked, self.result.summary.robots_audited)
        return self.result

    async def _visit(self, item: FrontierItem, disallowed: bool) -> None:
        audited = disallowed and self.config.respect_robots == "audit"
        simulate = audited and self.config.simulate_disallowed
        if audited:
            self.result.summary.robots_audited += 1

        record = PageResult(url=item.url, depth=item.depth, robots_disallowed=audited)
        try:
            response = await self.page.goto(
                item.url,
                timeout_ms=self.config.navigation_timeout_ms,
                wait_until=self.config.wait_until,
            )
            record.http_status = response.status
            if not response.is_html and is_download(item.url, self.config.downloads.types, response.content_type):
                self.logger.debug("%s is a %s document", item.url, response.content_type)
                self._queue_download(item.url, item.url)
                return
            await self._settle()

            outcome = None
            if simulate:
                record.status = "simulated"
                record.simulated = True
            else:
                outcome = await self.pipeline.run(self.page, item.url, self.config, self.artifacts)
                record.modules = [r.module for r in outcome.results]
            self.result.add_page(record, outcome)
        except ScoutError as exc:
            if exc.url is None:
                exc = NavigationFailure(exc.message, url=item.url)
            self.logger.warning("Failed %s: %s", item.url, exc.message)
            record.status = "failed"
            record.error = exc.message
            self.result.add_page(record)
            self.result.add_failure(exc.to_record())
            return

        try:
            await self._discover(item)
        except ScoutError as exc:
            self.logger.warning("Link discovery on %s failed: %s", item.url, exc.message)
            self.result.add_failure(exc.to_record())

    # ------------------------------------------------------------------ #
    # frontier
    # ------------------------------------------------------------------ #

    def _admit(self, url: str) -> Optional[str]:
        """Normalized *url* when it is well-formed and in scope, else None."""
        try:
            norm = normalize_url(url, self.config.keep_query)
            admitted = in_scope(norm, self.start_url, self.config.scope, self.config.allowed_domains)
        except ValueError as exc:
            self.logger.debug("Skipping malformed URL %r: %s", url, exc)
            return None
        return norm if admitted else None

    def _enqueue(self, url: str, depth: int, *, source: str) -> bool:
        norm = self._admit(url)
        if norm is None:
            return False
        if is_download(norm, self.config.downloads.types):
            self._queue_download(norm, source)
            return False
        if depth > self.config.max_depth or norm in self._seen:
            return False
        self._seen.add(norm)
        self.frontier.append(FrontierItem(url=norm, depth=depth))
        return True

    def _enqueue_all(self, urls: Iterable[str], depth: int, source: str) -> int:
        return sum(1 for u in urls if self._enqueue(u, depth, source=source))

    async def _discover(self, item: FrontierItem) -> None:
        html = await self.page.content()
        base = self.page.url or item.url
        links = extract_links(html, base, include_iframes=self.config.check_iframes)
        if self.config.check_iframes:
            links.extend(await self.page.frame_urls())
        routes = await run_probe(self.page, SPA_ROUTES) or []
        links.extend(str(r) for r in routes)
        if item.depth + 1 > self.config.max_depth:
            for url in links:
                # documents are still collected at the depth limit
                norm = self._admit(url)
                if norm is not None and is_download(norm, self.config.downloads.types):
                    self._queue_download(norm, item.url)
            return
        added = self._enqueue_all(links, item.depth + 1, item.url)
        self.logger.debug("%s: %d link(s), %d new", item.url, len(links), added)

    # ------------------------------------------------------------------ #
    # page preparation
    # ------------------------------------------------------------------ #

    async def _settle(self) -> None:
        cfg = self.config
        if cfg.wait_for_selector:
            found = await self.page.wait_for_selector(cfg.wait_for_selector, cfg.navigation_timeout_ms)
            if not found:
                self.logger.debug("selector %s did not appear on %s", cfg.wait_for_selector, self.page.url)
        if cfg.settle_delay_ms:
            await self.page.wait(cfg.settle_delay_ms)
        await run_probe(self.page, SCROLL_TO_BOTTOM)
        await self._handle_consent()

    async def _handle_consent(self) -> None:
        mode = self.config.consent_click
        if mode == "off":
            return
        selectors = CONSENT_SELECTORS if mode == "auto" else (self.config.consent_selector or "",)
        for selector in selectors:
            if selector and await self.page.click(selector):
                self.logger.debug("consent accepted via %s", selector)
                return
        self.logger.debug("no consent control clicked on %s", self.page.url)

    async def _rate_limit(self) -> None:
        low, high = self.config.rate_limit_delay_ms
        delay = random.uniform(low, high) / 1000
        if delay > 0:
            await asyncio.sleep(delay)

    # ------------------------------------------------------------------ #
    # robots / sitemap / downloads
    # ------------------------------------------------------------------ #

    async def _fetch_rules(self, url: str) -> RobotsRuleSet:
        assert self.session is not None
        try:
            return await fetch_robots(self.session, url)
        except RobotsFetchFailure as exc:
            self.logger.warning("robots.txt unavailable, treating as empty: %s", exc.message)
            self.result.add_failure(exc.to_record())
            return RobotsRuleSet.empty()

    async def _load_robots(self) -> None:
        rules = await self._fetch_rules(self.start_url)
        if self.config.respect_robots == "ignore":
            # keep Sitemap: lines only
            sitemaps = rules.sitemaps
            rules = RobotsRuleSet.empty()
            rules.sitemaps.extend(sitemaps)
        self.robots = rules
        self._robots_by_origin[robots_url_for(self.start_url)] = rules

    async def _robots_for(self, url: str) -> RobotsRuleSet:
        """Rules of *url*'s own origin, fetched once per origin."""
        if self.config.respect_robots == "ignore":
            return self.robots
        origin = robots_url_for(url)
        if origin not in self._robots_by_origin:
            self._robots_by_origin[origin] = await self._fetch_rules(url)
        return self._robots_by_origin[origin]

    async def _seed_from_sitemap(self) -> None:
        assert self.session is not None
        candidates = [self.config.sitemap_url] if self.config.sitemap_url else []
        candidates.extend(self.robots.sitemaps)
        urls = await discover_sitemap_urls(self.session, self.start_url, candidates)
        added = self._enqueue_all(urls, 0, self.start_url)
        self.logger.info("Sitemap seeding: %d of %d URL(s) in scope", added, len(urls))

    def _queue_download(self, url: str, source: str) -> None:
        if not self.config.downloads.enabled or url in self._download_urls:
            return
        self._download_urls.add(url)
        self._pending_downloads.append((url, source))

    async def _inspect_downloads(self) -> None:
        if not self._pending_downloads:
            return
        assert self.session is not None
        inspector = DocumentInspector(self.session, self.config.downloads)
        for url, source in self._pending_downloads:
            self.result.add_download(await inspector.inspect(url, source))
        for failure in inspector.failures:
            self.result.add_failure(failure)
        self.logger.info("Downloads: %d found, %d probed", len(self._pending_downloads), inspector.inspected)
