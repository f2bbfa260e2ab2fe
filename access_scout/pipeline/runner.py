# access_scout/pipeline/runner.py
"""
Sequential, failure-isolated execution of analyzer modules on one page.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from access_scout.browser.base import BrowserPage
from access_scout.config import CrawlConfig
from access_scout.errors import AnalyzerFailure, ConfigValidationFailure, FailureRecord
from access_scout.logger import module_logger
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext, ArtifactStore

__all__ = ("Pipeline", "PipelineOutcome", "resolve_order")


@dataclass(slots=True)
class PipelineOutcome:
    results: List[AnalyzerResult] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)

    @property
    def findings(self) -> List[Finding]:
        return [f for r in self.results for f in r.findings]


def resolve_order(analyzers: Sequence[Analyzer]) -> List[Analyzer]:
    """Registration order, with enabled prerequisites moved in front of their dependents.

    Prerequisites that are not enabled are left for :meth:`Pipeline.run`
    to fail closed on. A dependency cycle is a configuration error.
    """
    by_slug = {a.slug: a for a in analyzers}
    ordered: List[Analyzer] = []
    state: Dict[str, str] = {}

    def visit(a: Analyzer, chain: List[str]) -> None:
        mark = state.get(a.slug)
        if mark == "done":
            return
        if mark == "active":
            raise ConfigValidationFailure(f"analyzer dependency cycle: {' -> '.join(chain + [a.slug])}")
        state[a.slug] = "active"
        for dep in a.requires:
            if dep in by_slug:
                visit(by_slug[dep], chain + [a.slug])
        state[a.slug] = "done"
        ordered.append(a)

    for analyzer in analyzers:
        visit(analyzer, [])
    return ordered


class Pipeline:
    """Runs every enabled analyzer against the current page, one after another."""

    def __init__(self, analyzers: Sequence[Analyzer]) -> None:
        self.analyzers = resolve_order(analyzers)
        self.logger = logging.getLogger("AccessScout")

    @property
    def slugs(self) -> List[str]:
        return [a.slug for a in self.analyzers]

    async def run(
        self,
        page: BrowserPage,
        url: str,
        config: CrawlConfig,
        artifacts: ArtifactStore,
    ) -> PipelineOutcome:
        outcome = PipelineOutcome()
        done: Dict[str, AnalyzerResult] = {}

        for analyzer in self.analyzers:
            log = module_logger(analyzer.slug, url)
            missing = [dep for dep in analyzer.requires if dep not in done]
            if missing:
                failure = AnalyzerFailure(
                    f"prerequisite result(s) missing: {', '.join(missing)}",
                    url=url,
                    module=analyzer.slug,
                )
                log.warning("skipped: %s", failure.message)
                outcome.failures.append(failure.to_record())
                continue

            ctx = AnalyzerContext(
                page=page,
                url=url,
                config=config,
                logger=log,
                artifacts=artifacts,
                module=analyzer.slug,
                results=dict(done),
            )
            started = time.monotonic()
            try:
                result = await self._execute(analyzer, ctx)
            except Exception as exc:  # isolation boundary: one module never stops the others
                log.error("failed: %s", exc, exc_info=log.isEnabledFor(logging.DEBUG))
                outcome.failures.append(
                    FailureRecord(kind=AnalyzerFailure.kind, url=url, module=analyzer.slug, message=str(exc) or type(exc).__name__)
                )
                continue

            result = self._tag(result, analyzer, url)
            done[analyzer.slug] = result
            outcome.results.append(result)
            log.debug("%d finding(s) in %.2f s", len(result.findings), time.monotonic() - started)

        return outcome

    @staticmethod
    async def _execute(analyzer: Analyzer, ctx: AnalyzerContext) -> AnalyzerResult:
        await analyzer.init(ctx)
        try:
            result = await analyzer.run(ctx)
        finally:
            await analyzer.dispose(ctx)
        if not isinstance(result, AnalyzerResult):
            raise AnalyzerFailure(f"run() returned {type(result).__name__}", url=ctx.url, module=analyzer.slug)
        return result

    @staticmethod
    def _tag(result: AnalyzerResult, analyzer: Analyzer, url: str) -> AnalyzerResult:
        """Ensure each finding names exactly this module and this page."""
        result.module = analyzer.slug
        result.findings = [
            f if (f.module == analyzer.slug and f.page_url == url)
            else dataclasses.replace(f, module=analyzer.slug, page_url=url)
            for f in result.findings
        ]
        return result
