# access_scout/analyzers/landmarks.py
"""
Landmark classification and coverage.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from access_scout.browser.probes import LANDMARKS, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

LANDMARK_ROLES = frozenset(
    {"main", "banner", "navigation", "complementary", "contentinfo", "search", "region", "form"}
)
TOP_LEVEL_ROLES = ("banner", "contentinfo", "main")
COVERAGE_LOW = 80.0
ORPHAN_SAMPLE = 10


@dataclass(slots=True)
class Candidate:
    index: int
    tag: str
    role: str = ""
    selector: str = ""
    has_name: bool = False
    in_sectioning: bool = False
    ancestors: List[int] = field(default_factory=list)

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any]) -> "Candidate":
        return cls(
            index=int(raw["index"]),
            tag=str(raw.get("tag", "")).lower(),
            role=str(raw.get("role", "")).strip().lower(),
            selector=str(raw.get("selector", "")),
            has_name=bool(raw.get("hasName")),
            in_sectioning=bool(raw.get("inSectioning")),
            ancestors=[int(a) for a in raw.get("ancestors") or []],
        )


def landmark_role(c: Candidate) -> Optional[str]:
    """Explicit role wins; otherwise the implicit role of the tag, if any."""
    if c.role:
        first = c.role.split()[0]
        return first if first in LANDMARK_ROLES else None
    if c.tag == "main":
        return "main"
    if c.tag == "nav":
        return "navigation"
    if c.tag == "aside":
        return "complementary"
    if c.tag == "header":
        return None if c.in_sectioning else "banner"
    if c.tag == "footer":
        return None if c.in_sectioning else "contentinfo"
    if c.tag in ("section", "form"):
        return ("region" if c.tag == "section" else "form") if c.has_name else None
    return None


def coverage_badge(percent: float) -> str:
    if percent >= 95:
        return "green"
    if percent >= COVERAGE_LOW:
        return "yellow"
    return "red"


def compute_coverage(
    nodes: Sequence[Mapping[str, Any]], landmark_indices: Set[int]
) -> Tuple[float, List[str]]:
    """Percentage of visible nodes inside a landmark, plus a sample of the rest."""
    if not nodes:
        return 100.0, []
    covered = 0
    orphans: List[str] = []
    for node in nodes:
        if landmark_indices.intersection(node.get("ancestors") or ()):
            covered += 1
        elif len(orphans) < ORPHAN_SAMPLE:
            orphans.append(str(node.get("selector", "")))
    return round(covered / len(nodes) * 100, 1), orphans


class LandmarksAnalyzer(Analyzer):
    slug = "landmarks"
    version = "0.2.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        raw = await run_probe(ctx.page, LANDMARKS) or {}
        candidates = [Candidate.from_probe(c) for c in raw.get("candidates") or []]

        roles: Dict[int, str] = {}
        for c in candidates:
            role = landmark_role(c)
            if role:
                roles[c.index] = role
        by_index = {c.index: c for c in candidates}
        counts = Counter(roles.values())

        coverage, orphans = compute_coverage(raw.get("nodes") or [], set(roles))
        badge = coverage_badge(coverage)

        findings: List[Finding] = []

        def add(fid: str, severity: str, summary: str, selectors: Sequence[str] = (), details: str = "") -> None:
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

        def selectors_of(role: str) -> List[str]:
            return [by_index[i].selector for i, r in roles.items() if r == role]

        if counts["main"] == 0:
            add("landmarks:missing-main", "moderate", "No main landmark present")
        elif counts["main"] > 1:
            add("landmarks:duplicate-main", "minor", "Multiple main landmarks", selectors_of("main"))
        if counts["banner"] > 1:
            add("landmarks:duplicate-banner", "minor", "Multiple banner landmarks", selectors_of("banner"))
        if counts["contentinfo"] > 1:
            add("landmarks:duplicate-contentinfo", "minor", "Multiple contentinfo landmarks", selectors_of("contentinfo"))

        for role in TOP_LEVEL_ROLES:
            nested = [
                by_index[i].selector
                for i, r in roles.items()
                if r == role and any(a in roles for a in by_index[i].ancestors)
            ]
            if nested:
                add(f"landmarks:nesting-{role}", "minor", f"{role.capitalize()} landmark is nested", nested,
                    "Expected a top-level placement outside other landmarks")

        if coverage < COVERAGE_LOW:
            add("landmarks:coverage-low", "minor", f"Landmark coverage {coverage}%", orphans,
                f"{len(orphans)} sampled element(s) outside any landmark")

        outline = [
            {"role": roles[c.index], "tag": c.tag, "selector": c.selector}
            for c in candidates
            if c.index in roles
        ]
        path = ctx.save_artifact("landmarks.json", {"landmarks": outline, "orphans": orphans})
        return self.result(
            findings=findings,
            stats={"counts": dict(counts), "coveragePercent": coverage, "orphans": orphans},
            metrics={"coveragePercent": coverage, "badge": badge},
            artifacts={"landmarks": path},
        )
