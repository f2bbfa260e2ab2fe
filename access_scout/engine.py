# File: access_scout/engine.py
"""access_scout.engine: orchestration of one audit run, from config to written results."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Union

from access_scout.aggregator import ScanResult
from access_scout.browser.base import BrowserPage
from access_scout.browser.playwright_page import PlaywrightSession
from access_scout.config import CrawlConfig, load_config
from access_scout.crawler.crawler import AuditCrawler
from access_scout.logger import logger
from access_scout.norms.mapping import NormMapper
from access_scout.pipeline.base import ArtifactStore
from access_scout.pipeline.registry import AnalyzerRegistry, default_registry
from access_scout.pipeline.runner import Pipeline

__all__ = ["Engine"]


class Engine:
    """Facade for the CLI and for tests: load config, crawl, map norms, score, write."""

    @staticmethod
    def load_config(path: Union[str, Path, None], **overrides) -> CrawlConfig:
        return load_config(path, **overrides)

    def __init__(self, config: CrawlConfig, registry: Optional[AnalyzerRegistry] = None) -> None:
        self.config = config
        self.registry = registry or default_registry()
        # fails fast on unknown norm tables and analyzer slugs
        self.mapper = NormMapper.from_file(config.norms_table)
        self.pipeline = Pipeline(self.registry.create(config.modules))

    async def scan(self, page: BrowserPage) -> ScanResult:
        """Crawl with an already opened *page* and return the finalized result."""
        artifacts = ArtifactStore(self.config.output_dir)
        async with AuditCrawler(self.config, page, self.pipeline, artifacts=artifacts) as crawler:
            result = await crawler.crawl()
        result.finalize(self.mapper, self.config.scoring)
        return result

    async def run(self, write: bool = True) -> ScanResult:
        logger.info("Starting scan of %s with modules: %s", self.config.start, ", ".join(self.pipeline.slugs))
        async with PlaywrightSession(user_agent=self.config.user_agent, headless=self.config.headless) as page:
            result = await self.scan(page)
        if write:
            paths = result.write(self.config.output_dir)
            logger.info("Results written to %s (%d files)", self.config.output_dir, len(paths))
        logger.info(
            "Score %.1f (%s), %d finding(s) on %d page(s)",
            result.summary.score, self.config.scoring, len(result.findings), result.summary.pages_crawled,
        )
        return result

    def start_scan(self, timeout: Optional[float] = None) -> ScanResult:
        """Blocking wrapper around :meth:`run`, with an optional overall timeout in seconds."""
        try:
            if timeout:
                return asyncio.run(asyncio.wait_for(self.run(), timeout=timeout))
            return asyncio.run(self.run())
        except asyncio.TimeoutError:
            logger.error("Scan did not finish within %s seconds", timeout)
            raise
        except Exception as exc:
            logger.error("Scan failed: %s", exc)
            raise
