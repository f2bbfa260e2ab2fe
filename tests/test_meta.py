# File: tests/test_meta.py
import pytest

from access_scout.analyzers.meta import MetaAnalyzer, is_valid_lang, primary_subtag


def _meta(**overrides):
    data = {"title": "Startseite der Stadtwerke", "lang": "de", "xmlLang": "", "metaCharset": "utf-8",
            "navLang": "en-US", "domLang": ""}
    data.update(overrides)
    return {"document_meta": data}


@pytest.mark.parametrize("lang", ["de", "de-DE", "en-GB", "zh-Hant-TW", "gsw"])
def test_valid_lang(lang):
    assert is_valid_lang(lang)


@pytest.mark.parametrize("lang", ["german", "d", "de_DE", "en-", "12"])
def test_invalid_lang(lang):
    assert not is_valid_lang(lang)


def test_primary_subtag():
    assert primary_subtag("DE-at") == "de"


@pytest.mark.asyncio()
async def test_clean_document(fake_page_cls, run_analyzer):
    result = await run_analyzer(MetaAnalyzer(), fake_page_cls(_meta()))

    assert result.findings == []
    assert result.stats == {
        "hasTitle": True,
        "titleLength": 25,
        "lang": "de",
        "xmlLang": "",
        "langValid": True,
        "metaCharset": "utf-8",
    }


@pytest.mark.asyncio()
async def test_missing_title_and_lang(fake_page_cls, run_analyzer):
    result = await run_analyzer(MetaAnalyzer(), fake_page_cls(_meta(title="", lang="")))

    assert [(f.id, f.severity, f.selectors) for f in result.findings] == [
        ("meta:title-missing", "serious", ("title",)),
        ("meta:lang-missing", "serious", ("html",)),
    ]


@pytest.mark.asyncio()
async def test_short_title_invalid_lang_and_xml_mismatch(fake_page_cls, run_analyzer):
    page = fake_page_cls(_meta(title="Home", lang="deutsch", xmlLang="en"))
    result = await run_analyzer(MetaAnalyzer(), page)

    assert [f.id for f in result.findings] == [
        "meta:title-too-short",
        "meta:lang-invalid",
        "meta:lang-xml-mismatch",
    ]
    assert result.stats["langValid"] is False


@pytest.mark.asyncio()
async def test_title_length_is_configurable(fake_page_cls, run_analyzer, make_config):
    cfg = make_config(meta={"min_title_length": 3})
    result = await run_analyzer(MetaAnalyzer(), fake_page_cls(_meta(title="Home")), cfg=cfg)

    assert result.findings == []


@pytest.mark.asyncio()
async def test_content_language_heuristic(fake_page_cls, run_analyzer, make_config):
    page = fake_page_cls(_meta(lang="de-DE", domLang="en"))
    off = await run_analyzer(MetaAnalyzer(), page)
    on = await run_analyzer(MetaAnalyzer(), page, cfg=make_config(meta={"contentHeuristics": True}))

    assert off.findings == []
    assert [f.id for f in on.findings] == ["meta:lang-content-mismatch"]
    assert "'en'" in on.findings[0].details


@pytest.mark.asyncio()
async def test_no_probe_reply(fake_page_cls, run_analyzer):
    result = await run_analyzer(MetaAnalyzer(), fake_page_cls({}))

    assert [f.id for f in result.findings] == ["meta:title-missing", "meta:lang-missing"]
