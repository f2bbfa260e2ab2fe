# access_scout/analyzers/rule_engine.py
"""
Adapter for an in-page rule engine (axe-core compatible API).

The engine script is injected from ``rule_engine.script_path``; its
violations become ``axe:<rule-id>`` findings.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from access_scout.browser.probes import RULE_ENGINE_RUN, run_probe
from access_scout.errors import AnalyzerFailure
from access_scout.models import SEVERITIES, AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

MAX_SELECTORS = 5


def impact_to_severity(impact: Any) -> str:
    value = str(impact or "").lower()
    return value if value in SEVERITIES else "serious"


def violation_to_finding(violation: Mapping[str, Any], url: str, module: str) -> Finding:
    selectors: List[str] = []
    for node in violation.get("nodes") or []:
        for target in node.get("target") or []:
            if len(selectors) < MAX_SELECTORS:
                selectors.append(str(target))
    return Finding(
        id=f"axe:{violation['id']}",
        module=module,
        severity=impact_to_severity(violation.get("impact")),  # type: ignore[arg-type]
        summary=str(violation.get("help") or violation["id"]),
        details=str(violation.get("description") or ""),
        selectors=tuple(selectors),
        page_url=url,
        tags=tuple(str(t) for t in violation.get("tags") or ()),
        help_url=str(violation.get("helpUrl") or ""),
        metrics={"nodes": len(violation.get("nodes") or [])},
    )


class RuleEngineAnalyzer(Analyzer):
    slug = "rule-engine"
    version = "0.2.0"

    async def init(self, ctx: AnalyzerContext) -> None:
        script = ctx.config.rule_engine.script_path
        if script is None or not script.is_file():
            raise AnalyzerFailure(f"rule engine script not found: {script}", url=ctx.url, module=self.slug)
        await ctx.page.add_script(str(script))

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        raw: Dict[str, Any] = await run_probe(ctx.page, RULE_ENGINE_RUN) or {}
        violations = raw.get("violations") or []
        incomplete = raw.get("incomplete") or []
        findings = [violation_to_finding(v, ctx.url, self.slug) for v in violations]

        per_rule = {f.rule_id: int(f.metrics.get("nodes", 0)) for f in findings}
        path = ctx.save_artifact("axe_raw.json", raw)
        return self.result(
            findings=findings,
            stats={"violations": len(violations), "incomplete": len(incomplete), "nodesByRule": per_rule},
            artifacts={"raw": path},
        )
