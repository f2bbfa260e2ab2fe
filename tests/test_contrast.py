# File: tests/test_contrast.py
import json

import pytest

from access_scout.analyzers.color import WHITE, RGBA, contrast_ratio, parse_color
from access_scout.analyzers.contrast import ContrastAnalyzer, effective_colors, is_large_text, run_contrast


def _run(text, color, background="rgb(255, 255, 255)", size=16, weight=400, opacity=1, selector="p"):
    return {
        "text": text,
        "selector": selector,
        "color": color,
        "background": background,
        "opacity": opacity,
        "fontSizePx": size,
        "fontWeight": weight,
    }


def test_parse_color_variants():
    assert parse_color("rgb(10, 20, 30)") == RGBA(10, 20, 30, 1.0)
    assert parse_color("rgba(0, 0, 0, 0.5)").a == 0.5
    assert parse_color("#fff") == WHITE
    assert parse_color("#00000080").a == pytest.approx(128 / 255)
    assert parse_color("transparent").a == 0
    assert parse_color("linear-gradient(red, blue)") is None
    assert parse_color("") is None


def test_black_on_white_is_21():
    assert contrast_ratio(RGBA(0, 0, 0), WHITE) == pytest.approx(21.0)


def test_grey_777_just_below_threshold():
    ratio = run_contrast("rgb(119, 119, 119)", "rgb(255, 255, 255)")
    assert ratio == pytest.approx(4.48, abs=0.01)
    assert run_contrast("rgb(118, 118, 118)", "rgb(255, 255, 255)") > 4.5


def test_translucent_background_composited_over_white():
    fg, bg = effective_colors("rgb(0, 0, 0)", "rgba(0, 0, 0, 0)")
    assert bg == WHITE
    assert fg == RGBA(0, 0, 0, 1.0)


def test_opacity_lowers_contrast():
    full = run_contrast("rgb(0, 0, 0)", "rgb(255, 255, 255)")
    faded = run_contrast("rgb(0, 0, 0)", "rgb(255, 255, 255)", opacity=0.4)
    assert faded < full


@pytest.mark.parametrize(
    "size,weight,expected",
    [(24, 400, True), (18.66, 400, True), (18, 400, False), (14, 700, True), (13, 700, False)],
)
def test_large_text_rule(size, weight, expected):
    assert is_large_text(size, weight) is expected


@pytest.mark.asyncio()
async def test_low_contrast_text_is_serious(fake_page_cls, run_analyzer):
    page = fake_page_cls({"text_runs": [_run("Grey body text", "rgb(119, 119, 119)", selector="#intro")]})
    result = await run_analyzer(ContrastAnalyzer(), page)

    assert [f.id for f in result.findings] == ["contrast:text-low"]
    finding = result.findings[0]
    assert finding.severity == "serious"
    assert finding.selectors == ("#intro",)
    assert finding.metrics["ratio"] == pytest.approx(4.48, abs=0.01)
    assert finding.metrics["expected"] == 4.5
    assert result.stats["sampled"] == 1
    assert result.stats["failing"] == 1


@pytest.mark.asyncio()
async def test_large_text_uses_lower_threshold(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {
            "text_runs": [
                _run("Heading", "rgb(119, 119, 119)", size=24),
                _run("Pale heading", "rgb(200, 200, 200)", size=24, selector="h2"),
            ]
        }
    )
    result = await run_analyzer(ContrastAnalyzer(), page)

    assert [f.id for f in result.findings] == ["contrast:large-text-low"]
    assert result.findings[0].severity == "moderate"
    assert result.stats["failingLarge"] == 1
    assert result.stats["failing"] == 0


@pytest.mark.asyncio()
async def test_unparseable_colours_are_not_sampled(fake_page_cls, run_analyzer):
    page = fake_page_cls({"text_runs": [_run("x", "currentcolor")]})
    result = await run_analyzer(ContrastAnalyzer(), page)
    assert result.findings == []
    assert result.stats["sampled"] == 0


@pytest.mark.asyncio()
async def test_same_input_same_output(fake_page_cls, run_analyzer):
    runs = [_run(f"t{i}", f"rgb({i * 20}, {i * 20}, {i * 20})", selector=f"#t{i}") for i in range(10)]
    first = await run_analyzer(ContrastAnalyzer(), fake_page_cls({"text_runs": runs}))
    second = await run_analyzer(ContrastAnalyzer(), fake_page_cls({"text_runs": runs}))

    assert first.findings == second.findings
    assert first.stats == second.stats
    with open(first.artifacts["textContrast"], encoding="utf-8") as fh:
        assert len(json.load(fh)) == 10
