# File: tests/test_images.py
import json
from pathlib import Path

import pytest

from access_scout.analyzers.images import ImageInfo, ImagesAnalyzer, file_stem


def _img(selector, alt=None, src="/img/photo.jpg", **extra):
    data = {"type": "img", "selector": selector, "alt": alt, "src": src, "decorative": False,
            "parentText": "", "naturalWidth": 200, "naturalHeight": 200}
    data.update(extra)
    return data


def test_file_stem():
    assert file_stem("https://cdn.example.org/a/Team_Photo-2024.JPG?v=3") == "team photo 2024"
    assert file_stem("") == ""


def test_missing_alt_attribute_is_kept_apart_from_empty_alt():
    assert ImageInfo.from_probe(_img("#a")).alt is None
    assert ImageInfo.from_probe(_img("#b", alt="")).alt == ""


@pytest.mark.asyncio()
async def test_alt_rules(fake_page_cls, run_analyzer):
    images = [
        _img("#no-alt"),
        _img("#spacer", alt=""),
        _img("#logo", alt="Logo", decorative=True),
        _img("#file", alt="team photo", src="/img/team-photo.jpg"),
        _img("#home", alt="Home", parentText=" home "),
        _img("#banner", alt="Sale today", naturalWidth=600, naturalHeight=40),
    ]
    result = await run_analyzer(ImagesAnalyzer(), fake_page_cls({"images": images}))

    by_id = {f.id: f.selectors for f in result.findings}
    assert by_id == {
        "images:missing-alt": ("#no-alt",),
        "images:filename-as-alt": ("#file",),
        "images:redundant-alt": ("#home",),
        "images:decorative-with-alt": ("#logo",),
        "images:image-of-text": ("#banner",),
    }
    assert result.stats == {"total": 6, "withAlt": 4, "missingAlt": 1, "decorative": 2, "svgCount": 0}


@pytest.mark.asyncio()
async def test_svg_buttons_and_areas(fake_page_cls, run_analyzer):
    items = [
        {"type": "svg", "selector": "#icon", "named": False, "role": "", "decorative": False, "inLink": True},
        {"type": "svg", "selector": "#deco", "named": False, "role": "", "decorative": True, "inLink": True},
        {"type": "svg", "selector": "#chart", "named": True, "role": "img", "decorative": False, "inLink": False},
        {"type": "svg", "selector": "#bg", "named": False, "role": "", "decorative": False, "inLink": False},
        {"type": "input-image", "selector": "#go", "alt": ""},
        {"type": "input-image", "selector": "#send", "alt": "Send"},
        {"type": "area", "selector": "#north", "alt": "", "ariaLabel": ""},
        {"type": "area", "selector": "#south", "alt": "", "ariaLabel": "South"},
    ]
    result = await run_analyzer(ImagesAnalyzer(), fake_page_cls({"images": items}))

    assert [(f.id, f.severity, f.selectors) for f in result.findings] == [
        ("images:svg-missing-title", "minor", ("#icon",)),
        ("images:input-image-missing-alt", "serious", ("#go",)),
        ("images:imagemap-area-missing-alt", "serious", ("#north",)),
    ]
    assert result.stats["svgCount"] == 4


@pytest.mark.asyncio()
async def test_selectors_are_capped_and_index_saved(fake_page_cls, run_analyzer):
    images = [_img(f"#i{n}") for n in range(25)]
    result = await run_analyzer(ImagesAnalyzer(), fake_page_cls({"images": images}))

    [finding] = result.findings
    assert len(finding.selectors) == 20
    assert finding.details == "25 element(s)"
    saved = json.loads(Path(result.artifacts["index"]).read_text(encoding="utf-8"))
    assert len(saved) == 25


@pytest.mark.asyncio()
async def test_page_without_images(fake_page_cls, run_analyzer):
    result = await run_analyzer(ImagesAnalyzer(), fake_page_cls({}))

    assert result.findings == []
    assert result.stats["total"] == 0
