# access_scout/analyzers/skiplinks.py
"""
Skip-link detection and validation.

Reads the tab-order trace recorded by the keyboard module; without that
result the pipeline does not run this module at all.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from access_scout.browser.probes import SKIP_LINK_ACTIVATE, SKIP_LINK_CANDIDATES, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

_TEXT_RE = re.compile(r"skip|jump|bypass|sprung|zum inhalt|zum content")
_CLASS_RE = re.compile(r"skip|visually-hidden|sr-only")
_ID_RE = re.compile(r"skip")


@dataclass(slots=True)
class SkipLink:
    text: str
    href: str
    selector: str
    class_name: str = ""
    id: str = ""

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any]) -> "SkipLink":
        return cls(
            text=str(raw.get("text") or ""),
            href=str(raw.get("href") or ""),
            selector=str(raw.get("selector") or ""),
            class_name=str(raw.get("className") or ""),
            id=str(raw.get("id") or ""),
        )

    @property
    def target(self) -> str:
        return self.href.lstrip("#").lower()


def is_candidate(link: SkipLink) -> bool:
    return bool(
        _TEXT_RE.search(link.text.lower())
        or _CLASS_RE.search(link.class_name.lower())
        or _ID_RE.search(link.id.lower())
    )


def trace_step(trace: Sequence[Mapping[str, Any]], selector: str) -> int:
    """1-based position of *selector* in the tab trace, 0 when absent."""
    for i, entry in enumerate(trace, start=1):
        if entry.get("selector") == selector:
            return i
    return 0


class SkipLinksAnalyzer(Analyzer):
    slug = "skiplinks"
    version = "0.2.0"
    requires = ("keyboard",)

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        threshold = ctx.config.skiplinks.threshold
        trace: List[Dict[str, Any]] = ctx.upstream("keyboard").data.get("trace", [])

        dom = await run_probe(ctx.page, SKIP_LINK_CANDIDATES) or {}
        links = [SkipLink.from_probe(l) for l in dom.get("links") or []]
        targets = {str(t).lower() for t in dom.get("targets") or []}
        candidates = [l for l in links if is_candidate(l)]

        findings: List[Finding] = []
        stats = {"total": len(candidates), "valid": 0, "late": 0, "targetMissing": 0}
        overview: List[Dict[str, Any]] = []
        by_target: "OrderedDict[str, List[SkipLink]]" = OrderedDict()

        def add(fid: str, severity: str, summary: str, details: str, selectors: Sequence[str]) -> None:
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    details=details,
                    selectors=tuple(selectors),
                    page_url=ctx.url,
                )
            )

        for link in candidates:
            step = trace_step(trace, link.selector)
            exists = bool(link.target) and link.target in targets
            entry: Dict[str, Any] = {
                "text": link.text,
                "href": link.href,
                "selector": link.selector,
                "stepIndex": step,
                "targetExists": exists,
            }
            overview.append(entry)
            by_target.setdefault(link.target, []).append(link)

            if not exists:
                stats["targetMissing"] += 1
                add("skiplinks:target-missing", "serious", "Skip link target missing",
                    f"Target {link.href} does not exist", [link.selector])
                continue

            late = step > threshold or (step == 0 and bool(trace))
            if late:
                stats["late"] += 1
                where = f"tab step {step}" if step else "not reached in the recorded tab order"
                add("skiplinks:late", "moderate", "Skip link late in focus order", where, [link.selector])
            else:
                stats["valid"] += 1

            result = await run_probe(ctx.page, SKIP_LINK_ACTIVATE, {"selector": link.selector, "hash": link.target})
            result = result or {}
            entry.update(focusable=bool(result.get("focusable")), focusTransfer=bool(result.get("focusTransfer")))
            if not result.get("focusable"):
                add("skiplinks:target-not-focusable", "minor", "Skip link target not focusable",
                    'Target should carry tabindex="-1"', [link.selector])
            if not result.get("focusTransfer"):
                add("skiplinks:no-focus-transfer", "moderate", "Focus does not move to the target",
                    "Focus stays on the link after activation", [link.selector])

        for target, group in by_target.items():
            if target and len(group) > 1:
                add("skiplinks:redundant", "minor", "Multiple skip links to the same target",
                    f"{len(group)} skip links to #{target}", [l.selector for l in group][:20])

        if not candidates:
            add("skiplinks:missing", "serious", "No skip link present",
                "Page offers no bypass link to the main content", [])

        path = ctx.save_artifact("skiplinks_overview.json", overview)
        return self.result(findings=findings, stats=stats, artifacts={"overview": path})
