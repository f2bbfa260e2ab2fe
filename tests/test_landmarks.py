# File: tests/test_landmarks.py
import pytest

from access_scout.analyzers.landmarks import (
    Candidate,
    LandmarksAnalyzer,
    compute_coverage,
    coverage_badge,
    landmark_role,
)


def _cand(index, tag, role="", ancestors=(), in_sectioning=False, has_name=False):
    return {
        "index": index,
        "tag": tag,
        "role": role,
        "selector": f"{tag}:nth-of-type({index + 1})",
        "parentIsBody": not ancestors,
        "hasName": has_name,
        "inSectioning": in_sectioning,
        "ancestors": list(ancestors),
    }


def _nodes(covered, orphaned, landmark=1):
    nodes = [{"selector": f"p.c{i}", "ancestors": [landmark]} for i in range(covered)]
    nodes += [{"selector": f"p.o{i}", "ancestors": []} for i in range(orphaned)]
    return nodes


@pytest.mark.parametrize(
    "raw,expected",
    [
        (_cand(0, "main"), "main"),
        (_cand(0, "nav"), "navigation"),
        (_cand(0, "header"), "banner"),
        (_cand(0, "header", in_sectioning=True), None),
        (_cand(0, "footer"), "contentinfo"),
        (_cand(0, "section"), None),
        (_cand(0, "section", has_name=True), "region"),
        (_cand(0, "div", role="search"), "search"),
        (_cand(0, "main", role="presentation"), None),
    ],
)
def test_landmark_role(raw, expected):
    assert landmark_role(Candidate.from_probe(raw)) == expected


def test_coverage_and_badge():
    percent, orphans = compute_coverage(_nodes(3, 1), {1})
    assert percent == 75.0
    assert orphans == ["p.o0"]
    assert coverage_badge(percent) == "red"
    assert coverage_badge(85) == "yellow"
    assert coverage_badge(95) == "green"
    assert compute_coverage([], set()) == (100.0, [])


@pytest.mark.asyncio()
async def test_well_structured_page(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {
            "landmarks": {
                "candidates": [_cand(0, "header"), _cand(1, "main"), _cand(2, "footer")],
                "nodes": _nodes(20, 0),
            }
        }
    )
    result = await run_analyzer(LandmarksAnalyzer(), page)

    assert result.findings == []
    assert result.stats["counts"] == {"banner": 1, "main": 1, "contentinfo": 1}
    assert result.metrics == {"coveragePercent": 100.0, "badge": "green"}


@pytest.mark.asyncio()
async def test_missing_main_and_low_coverage(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {"landmarks": {"candidates": [_cand(0, "nav")], "nodes": _nodes(1, 3, landmark=0)}}
    )
    result = await run_analyzer(LandmarksAnalyzer(), page)

    by_id = {f.id: f for f in result.findings}
    assert set(by_id) == {"landmarks:missing-main", "landmarks:coverage-low"}
    assert by_id["landmarks:missing-main"].severity == "moderate"
    assert by_id["landmarks:coverage-low"].selectors == ("p.o0", "p.o1", "p.o2")
    assert result.metrics["badge"] == "red"


@pytest.mark.asyncio()
async def test_duplicates_and_nesting(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {
            "landmarks": {
                "candidates": [
                    _cand(0, "main"),
                    _cand(1, "header", ancestors=[0]),
                    _cand(2, "div", role="main", ancestors=[0]),
                ],
                "nodes": _nodes(5, 0, landmark=0),
            }
        }
    )
    result = await run_analyzer(LandmarksAnalyzer(), page)

    ids = {f.id for f in result.findings}
    assert "landmarks:duplicate-main" in ids
    assert "landmarks:nesting-main" in ids
    assert "landmarks:nesting-banner" in ids
    assert all(f.severity == "minor" for f in result.findings)
