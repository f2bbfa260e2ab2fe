# access_scout/analyzers/contrast.py
"""
Text contrast analyzer.

Every visible text run is measured against its effective background; runs
below 4.5:1 (3:1 for large text) become findings.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from access_scout.analyzers.color import WHITE, RGBA, composite, contrast_ratio, parse_color
from access_scout.browser.probes import TEXT_RUNS, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext, stat_map

LARGE_BOLD_PX = 14.0
LARGE_NORMAL_PX = 18.66
NORMAL_MIN_RATIO = 4.5
LARGE_MIN_RATIO = 3.0


@dataclass(slots=True)
class TextRun:
    text: str
    selector: str
    color: str
    background: str
    opacity: float = 1.0
    font_size_px: float = 16.0
    font_weight: int = 400
    ratio: Optional[float] = None

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any]) -> "TextRun":
        return cls(
            text=str(raw.get("text", "")),
            selector=str(raw.get("selector", "")),
            color=str(raw.get("color", "")),
            background=str(raw.get("background", "")),
            opacity=float(raw.get("opacity", 1.0) or 0.0),
            font_size_px=float(raw.get("fontSizePx", 16.0) or 0.0),
            font_weight=int(raw.get("fontWeight", 400) or 400),
        )

    @property
    def is_large(self) -> bool:
        return is_large_text(self.font_size_px, self.font_weight)


def is_large_text(font_size_px: float, font_weight: int) -> bool:
    if font_weight >= 700:
        return font_size_px >= LARGE_BOLD_PX
    return font_size_px >= LARGE_NORMAL_PX


def effective_colors(color: str, background: str, opacity: float = 1.0) -> Optional[tuple[RGBA, RGBA]]:
    """Opaque (foreground, background) pair as perceived on screen."""
    fg = parse_color(color)
    bg = parse_color(background)
    if fg is None or bg is None:
        return None
    if bg.a < 1:
        bg = composite(bg, WHITE)
    fg = RGBA(fg.r, fg.g, fg.b, fg.a * max(0.0, min(1.0, opacity)))
    if fg.a < 1:
        fg = composite(fg, bg)
    return fg, bg


def run_contrast(color: str, background: str, opacity: float = 1.0) -> Optional[float]:
    pair = effective_colors(color, background, opacity)
    if pair is None:
        return None
    return contrast_ratio(*pair)


def percentile_95(values: List[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    return ordered[math.floor(0.95 * (len(ordered) - 1))]


class ContrastAnalyzer(Analyzer):
    slug = "contrast"
    version = "0.2.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        raw = await run_probe(ctx.page, TEXT_RUNS, {"maxRuns": ctx.config.contrast.max_runs}) or []
        runs = [TextRun.from_probe(r) for r in raw]

        findings: List[Finding] = []
        ratios: List[float] = []
        failing = failing_large = 0
        for run in runs:
            ratio = run_contrast(run.color, run.background, run.opacity)
            if ratio is None:
                ctx.logger.debug("unparseable colours on %s: %s / %s", run.selector, run.color, run.background)
                continue
            run.ratio = ratio
            ratios.append(ratio)

            expected = LARGE_MIN_RATIO if run.is_large else NORMAL_MIN_RATIO
            if ratio >= expected:
                continue
            if run.is_large:
                failing_large += 1
            else:
                failing += 1
            findings.append(
                Finding(
                    id="contrast:large-text-low" if run.is_large else "contrast:text-low",
                    module=self.slug,
                    severity="moderate" if run.is_large else "serious",
                    summary="Large text contrast below 3:1" if run.is_large else "Text contrast below 4.5:1",
                    details=f"Contrast {ratio:.2f}:1, expected {expected:g}:1 for \"{run.text[:60]}\"",
                    selectors=(run.selector,),
                    page_url=ctx.url,
                    metrics={"ratio": round(ratio, 2), "expected": expected},
                )
            )

        stats: Dict[str, Any] = stat_map(
            {
                "sampled": len(ratios),
                "failing": failing,
                "failingLarge": failing_large,
                "avgRatio": sum(ratios) / len(ratios) if ratios else 0.0,
                "p95Ratio": percentile_95(ratios),
            }
        )
        path = ctx.save_artifact("text_contrast.json", [asdict(r) for r in runs if r.ratio is not None])
        return self.result(findings=findings, stats=stats, artifacts={"textContrast": path})
