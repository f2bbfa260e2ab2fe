# File: tests/test_keyboard.py
import pytest

from access_scout.analyzers.keyboard import KeyboardAnalyzer, measure_indicator, tab_order_jumps


def test_outline_indicator_geometry(make_focus):
    indicator = measure_indicator(make_focus("#a"))
    assert indicator.has_outline
    assert not indicator.suppressed
    # (104 * 24 - 100 * 20) / (100 * 20)
    assert indicator.area_ratio == pytest.approx(0.248)
    assert indicator.contrast == pytest.approx(21.0)


def test_box_shadow_replaces_outline(make_focus):
    info = make_focus(
        "#a",
        outlineStyle="none",
        outlineWidth=0,
        boxShadow="rgb(0, 95, 204) 0px 0px 0px 3px, rgba(0, 0, 0, 0.2) 0px 1px 2px 0px",
    )
    indicator = measure_indicator(info)
    assert not indicator.has_outline
    assert indicator.has_shadow
    assert indicator.width == 3
    assert indicator.color == "rgb(0, 95, 204)"
    assert indicator.contrast > 3


def test_no_outline_no_shadow_is_suppressed(make_focus):
    indicator = measure_indicator(make_focus("#a", outlineStyle="none", outlineWidth=0))
    assert indicator.suppressed
    assert indicator.area_ratio == 0


def test_tab_order_jumps():
    jumps = tab_order_jumps(["#c", "#a", "#b"], ["#a", "#b", "#c"])
    assert jumps == [{"prev": "#c", "cur": "#a", "prevIdx": 2, "idx": 0}]
    assert tab_order_jumps(["#a", "#b"], ["#a", "#b"]) == []


@pytest.mark.asyncio()
async def test_outline_suppressed_is_serious(fake_page_cls, make_focus, run_analyzer):
    page = fake_page_cls(
        focus=[
            make_focus("#ok"),
            make_focus("#bare", outlineStyle="none", outlineWidth=0, boxShadow="none"),
        ]
    )
    result = await run_analyzer(KeyboardAnalyzer(), page)

    ids = [f.id for f in result.findings]
    assert ids == ["keyboard:outline-suppressed"]
    assert result.findings[0].severity == "serious"
    assert result.findings[0].selectors == ("#bare",)
    assert result.metrics["steps"] == 2
    assert result.stats == {"focusTrap": False}
    trace = result.data["trace"]
    assert [t["selector"] for t in trace] == ["#ok", "#bare"]
    assert trace[1]["rule"] == "keyboard:outline-suppressed"


@pytest.mark.asyncio()
async def test_weak_indicator(fake_page_cls, make_focus, run_analyzer):
    page = fake_page_cls(focus=[make_focus("#faint", outlineColor="rgb(240, 240, 240)")])
    result = await run_analyzer(KeyboardAnalyzer(), page)

    assert [f.id for f in result.findings] == ["keyboard:focus-indicator-weak"]
    assert result.metrics["weakIndicators"] == 1


@pytest.mark.asyncio()
async def test_focus_trap_detected(fake_page_cls, make_focus, run_analyzer):
    page = fake_page_cls(focus=[make_focus("#a"), make_focus("#widget")], trap_at=1)
    result = await run_analyzer(KeyboardAnalyzer(), page)

    trap = [f for f in result.findings if f.id == "keyboard:focus-trap"]
    assert len(trap) == 1
    assert trap[0].selectors == ("#widget",)
    assert result.stats["focusTrap"] is True
    assert "Shift+Tab" in page.keys


@pytest.mark.asyncio()
async def test_walk_stops_at_max_tabs(fake_page_cls, make_focus, make_config, run_analyzer):
    cfg = make_config(keyboard={"max_tabs": 3, "step_delay_ms": 0})
    page = fake_page_cls(focus=[make_focus(f"#l{i}") for i in range(10)])
    result = await run_analyzer(KeyboardAnalyzer(), page, cfg=cfg)

    assert result.metrics["steps"] == 3
    assert page.keys.count("Tab") == 3


@pytest.mark.asyncio()
async def test_tabindex_and_order_anomaly(fake_page_cls, make_focus, run_analyzer):
    page = fake_page_cls(
        {"focusable_elements": [{"selector": "#a", "tabindex": "0"}, {"selector": "#b", "tabindex": "2"}]},
        focus=[make_focus("#b"), make_focus("#a")],
    )
    result = await run_analyzer(KeyboardAnalyzer(), page)

    ids = sorted(f.id for f in result.findings)
    assert ids == ["keyboard:tab-order-anomaly", "keyboard:tabindex-gt-zero"]
    assert result.metrics["tabindexGtZero"] == 1
    assert result.metrics["tabOrderJumps"] == 1


@pytest.mark.asyncio()
async def test_focus_screenshots(fake_page_cls, make_focus, make_config, run_analyzer):
    cfg = make_config(keyboard={"screenshots": True, "step_delay_ms": 0})
    page = fake_page_cls(focus=[make_focus("#a")])
    result = await run_analyzer(KeyboardAnalyzer(), page, cfg=cfg)

    assert len(result.artifacts["screens"]) == 1
    assert result.artifacts["screens"][0].endswith("step-01.png")
    assert page.screenshots[0] == {"x": 0.0, "y": 0.0, "width": 132.0, "height": 52.0}


@pytest.mark.asyncio()
async def test_forward_only_stop_ends_walk(fake_page_cls, make_focus, run_analyzer):
    page = fake_page_cls(
        focus=[make_focus("#a"), make_focus("#b", outlineStyle="none", outlineWidth=0)],
        forward_trap_at=1,
    )
    result = await run_analyzer(KeyboardAnalyzer(), page)

    ids = [f.id for f in result.findings]
    assert ids == ["keyboard:outline-suppressed", "keyboard:focus-trap"]
    assert "only Shift+Tab" in result.findings[1].details
    assert result.metrics["steps"] == 2
    assert [t["selector"] for t in result.data["trace"]] == ["#a", "#b"]
    assert page.keys == ["Tab", "Tab", "Tab", "Shift+Tab"]
    assert result.stats["focusTrap"] is True
