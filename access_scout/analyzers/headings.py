# access_scout/analyzers/headings.py
"""Heading outline: missing or repeated h1, skipped levels, empty headings."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, List, Mapping

from access_scout.browser.probes import HEADINGS, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    text: str
    selector: str
    id: str = ""
    role_heading: bool = False

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any]) -> "Heading":
        level = int(raw.get("level") or 2)
        return cls(
            level=min(max(level, 1), 6),
            text=str(raw.get("text") or "").strip(),
            selector=str(raw.get("selector") or ""),
            id=str(raw.get("id") or ""),
            role_heading=bool(raw.get("roleHeading")),
        )


class HeadingsAnalyzer(Analyzer):
    slug = "headings"
    version = "0.1.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        headings = [Heading.from_probe(h) for h in await run_probe(ctx.page, HEADINGS) or []]
        findings: List[Finding] = []

        def add(fid: str, severity: str, summary: str, selectors: List[str]) -> None:
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    selectors=tuple(selectors),
                    page_url=ctx.url,
                )
            )

        h1s = [h for h in headings if h.level == 1]
        if not h1s:
            add("headings:missing-h1", "moderate", "Missing H1", [])
        elif len(h1s) > 1:
            add("headings:multiple-h1", "minor", "Multiple H1 elements", [h.selector for h in h1s[:5]])

        jumps = 0
        for prev, cur in zip(headings, headings[1:]):
            if cur.level - prev.level > 1:
                jumps += 1
                add("headings:jump-level", "minor", f"Heading level jumps from h{prev.level} to h{cur.level}",
                    [prev.selector, cur.selector])

        for h in headings:
            if not h.text:
                add("headings:empty-text", "minor", "Empty heading text", [h.selector])

        stats = {
            "hasH1": bool(h1s),
            "multipleH1": len(h1s) > 1,
            "maxDepth": max((h.level for h in headings), default=0),
            "jumps": jumps,
        }
        outline = [asdict(h) for h in headings]
        path = ctx.save_artifact("headings_outline.json", outline)
        return self.result(findings=findings, stats=stats, artifacts={"outline": path}, data={"outline": outline})
