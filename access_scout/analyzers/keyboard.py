# access_scout/analyzers/keyboard.py
"""
Keyboard focus and tab-order analyzer.

The page is walked with simulated Tab presses. For every focus stop the
focus indicator (outline, else box-shadow) is measured in Python: its
area relative to the element and its contrast against the background.
The resulting trace is shared with downstream modules via
``result.data["trace"]``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from access_scout.analyzers.contrast import effective_colors
from access_scout.analyzers.color import contrast_ratio
from access_scout.browser.base import ClipRect
from access_scout.browser.probes import FOCUSABLE_ELEMENTS, FOCUSABLE_SELECTOR, FOCUSED_ELEMENT, run_probe
from access_scout.errors import AnalyzerFailure
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext, stat_map

_PX_RE = re.compile(r"(-?\d*\.?\d+)px")
_COLOR_RE = re.compile(r"rgba?\([^)]+\)")
_LAYER_SPLIT = re.compile(r",(?![^(]*\))")

SCREENSHOT_MARGIN = 16


@dataclass(frozen=True, slots=True)
class FocusIndicator:
    width: float
    color: str
    has_outline: bool
    has_shadow: bool
    area_ratio: float
    contrast: float

    @property
    def suppressed(self) -> bool:
        return not (self.has_outline or self.has_shadow)


def _shadow_geometry(box_shadow: str) -> Tuple[float, str]:
    """Spread (4th length) and colour of the first box-shadow layer."""
    first = _LAYER_SPLIT.split(box_shadow)[0]
    lengths = [float(v) for v in _PX_RE.findall(first)]
    spread = lengths[3] if len(lengths) >= 4 else 0.0
    m = _COLOR_RE.search(first)
    return spread, m.group(0) if m else ""


def measure_indicator(info: Mapping[str, Any]) -> FocusIndicator:
    """Derive focus-indicator geometry from a FOCUSED_ELEMENT probe reply."""
    outline_style = str(info.get("outlineStyle") or "none")
    outline_width = float(info.get("outlineWidth") or 0.0)
    has_outline = outline_style != "none" and outline_width > 0

    box_shadow = str(info.get("boxShadow") or "none").strip()
    has_shadow = bool(box_shadow) and box_shadow != "none"

    if has_outline:
        inflate, color = outline_width, str(info.get("outlineColor") or "")
    elif has_shadow:
        spread, color = _shadow_geometry(box_shadow)
        inflate = max(spread, 0.0)
    else:
        inflate, color = 0.0, ""

    rect = info.get("rect") or {}
    w = float(rect.get("width") or 0.0)
    h = float(rect.get("height") or 0.0)
    area = w * h
    ratio = (((w + 2 * inflate) * (h + 2 * inflate)) - area) / area if area > 0 and inflate > 0 else 0.0

    contrast = 1.0
    if color:
        pair = effective_colors(color, str(info.get("backgroundColor") or "rgb(255, 255, 255)"))
        if pair is not None:
            contrast = contrast_ratio(*pair)

    return FocusIndicator(
        width=inflate,
        color=color,
        has_outline=has_outline,
        has_shadow=has_shadow,
        area_ratio=ratio,
        contrast=contrast,
    )


def _clip(rect: Mapping[str, Any]) -> ClipRect:
    return ClipRect(
        x=max(float(rect.get("x", 0)) - SCREENSHOT_MARGIN, 0.0),
        y=max(float(rect.get("y", 0)) - SCREENSHOT_MARGIN, 0.0),
        width=float(rect.get("width", 0)) + 2 * SCREENSHOT_MARGIN,
        height=float(rect.get("height", 0)) + 2 * SCREENSHOT_MARGIN,
    )


def _tabindex(value: Any) -> int:
    try:
        return int(str(value or "0").strip())
    except ValueError:
        return 0


def tab_order_jumps(trace_selectors: List[str], dom_order: List[str]) -> List[Dict[str, Any]]:
    """Steps whose element comes earlier in document order than the previous stop."""
    index = {sel: i for i, sel in reversed(list(enumerate(dom_order)))}
    anomalies: List[Dict[str, Any]] = []
    last_idx, last_sel = -1, ""
    for sel in trace_selectors:
        idx = index.get(sel)
        if idx is None:
            continue
        if idx < last_idx:
            anomalies.append({"prev": last_sel, "cur": sel, "prevIdx": last_idx, "idx": idx})
        last_idx, last_sel = idx, sel
    return anomalies


class KeyboardAnalyzer(Analyzer):
    slug = "keyboard"
    version = "0.3.0"

    async def _focused(self, ctx: AnalyzerContext) -> Optional[Dict[str, Any]]:
        return await run_probe(ctx.page, FOCUSED_ELEMENT)

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        opts = ctx.config.keyboard
        findings: List[Finding] = []
        trace: List[Dict[str, Any]] = []
        screens: List[str] = []

        def finding(fid: str, severity: str, summary: str, details: str, selectors: Tuple[str, ...]) -> None:
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    details=details,
                    selectors=selectors,
                    page_url=ctx.url,
                )
            )

        weak = 0
        contrast_sum = area_sum = 0.0
        first_selector: Optional[str] = None
        previous: Optional[str] = None
        trapped = False

        for step in range(1, opts.max_tabs + 1):
            await ctx.page.press("Tab")
            await ctx.page.wait(opts.step_delay_ms)
            info = await self._focused(ctx)
            if info is None:
                break
            selector = str(info.get("selector", ""))

            if selector == previous:
                await ctx.page.press("Shift+Tab")
                await ctx.page.wait(opts.step_delay_ms)
                after = await self._focused(ctx)
                if after is None or after.get("selector") == selector:
                    details = "Focus did not move after Tab/Shift+Tab"
                else:
                    # Shift+Tab escapes but Tab keeps returning here
                    details = "Tab does not move focus forward; only Shift+Tab leaves the element"
                finding("keyboard:focus-trap", "serious", "Keyboard focus trapped", details, (selector,))
                trapped = True
                break
            if selector == first_selector:
                break
            if first_selector is None:
                first_selector = selector

            indicator = measure_indicator(info)
            contrast_sum += indicator.contrast
            area_sum += indicator.area_ratio

            rule = ""
            if indicator.suppressed:
                rule = "keyboard:outline-suppressed"
                finding(rule, "serious", "Outline suppressed without replacement",
                        "Focused element has no outline and no box-shadow", (selector,))
            elif indicator.area_ratio < opts.min_area_ratio or indicator.contrast < opts.min_contrast:
                weak += 1
                rule = "keyboard:focus-indicator-weak"
                finding(rule, "serious", "Focus indicator weak",
                        f"Contrast {indicator.contrast:.2f}, area ratio {indicator.area_ratio:.3f}", (selector,))
            if not info.get("visible", True):
                finding("keyboard:focus-not-visible", "serious", "Focused element outside the viewport",
                        "Focused element is hidden or scrolled out of view", (selector,))

            shot = ""
            if opts.screenshots:
                try:
                    data = await ctx.page.screenshot(_clip(info.get("rect") or {}))
                    shot = ctx.save_binary(f"step-{step:02d}.png", data)
                except AnalyzerFailure as exc:
                    ctx.logger.warning("screenshot of step %d failed: %s", step, exc)
                screens.append(shot)

            trace.append(
                {
                    "step": step,
                    "action": "Tab",
                    "selector": selector,
                    "tag": info.get("tag", ""),
                    "boundingBox": info.get("rect"),
                    "indicatorContrast": round(indicator.contrast, 3),
                    "indicatorAreaRatio": round(indicator.area_ratio, 4),
                    "rule": rule,
                    "screenshot": shot,
                }
            )
            previous = selector

        dom = await run_probe(ctx.page, FOCUSABLE_ELEMENTS, {"selector": FOCUSABLE_SELECTOR}) or []
        dom_order = [str(d.get("selector", "")) for d in dom]
        positive = [(str(d.get("selector", "")), _tabindex(d.get("tabindex"))) for d in dom]
        positive = [(sel, ti) for sel, ti in positive if ti > 0]
        for sel, ti in positive:
            finding("keyboard:tabindex-gt-zero", "moderate", "tabindex greater than zero",
                    f"Element {sel} has tabindex {ti}", (sel,))

        anomalies = tab_order_jumps([t["selector"] for t in trace], dom_order)
        if anomalies:
            details = "; ".join(f"jump from {a['prev']} ({a['prevIdx']}) to {a['cur']} ({a['idx']})" for a in anomalies)
            finding("keyboard:tab-order-anomaly", "moderate", "Unexpected tab order", details,
                    tuple(a["cur"] for a in anomalies[:5]))

        steps = len(trace)
        metrics = stat_map(
            {
                "steps": steps,
                "weakIndicators": weak,
                "avgIndicatorContrast": contrast_sum / steps if steps else 0.0,
                "avgIndicatorAreaRatio": area_sum / steps if steps else 0.0,
                "tabOrderJumps": len(anomalies),
                "tabindexGtZero": len(positive),
            }
        )
        path = ctx.save_artifact("keyboard_trace.json", trace)
        ctx.logger.debug("%d tab stop(s), trap=%s", steps, trapped)
        return self.result(
            findings=findings,
            stats={"focusTrap": trapped},
            metrics=metrics,
            artifacts={"trace": path, "screens": screens},
            data={"trace": trace},
        )
