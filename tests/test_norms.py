# File: tests/test_norms.py
import pytest

from access_scout.errors import ConfigValidationFailure
from access_scout.models import Finding, NormReference
from access_scout.norms import NormMapper, audit_norms, load_norm_table
from access_scout.norms.mapping import derive_bitv, derive_en, normalize_wcag_tags


def _finding(fid, **kw):
    return Finding(id=fid, module=kw.pop("module", "rule-engine"), severity=kw.pop("severity", "serious"),
                   summary="s", **kw)


@pytest.fixture(scope="module")
def mapper():
    return NormMapper.from_file()


def test_wcag_tag_normalization():
    assert normalize_wcag_tags(["wcag2a", "wcag111", "cat.forms", "wcag143"]) == ("1.1.1", "1.4.3")
    assert normalize_wcag_tags([], "https://www.w3.org/WAI/WCAG21/Understanding/x?wcag244") == ("2.4.4",)


def test_derivation():
    assert derive_bitv(["1.3.1", "2.4.4"]) == ("9.1.3.1a", "9.1.3.1b", "9.2.4.4")
    assert derive_bitv(["1.4.3"]) == ("9.1.4.3",)
    assert derive_en(["1.3.1"]) == ("9.1.3.1",)


def test_table_entry_wins(mapper):
    mapped = mapper.map_finding(_finding("axe:image-alt", tags=("wcag244",)))
    assert mapped.norms.wcag == ("1.1.1",)
    assert mapped.norms.bitv == ("9.1.1.1a", "9.1.1.1b")
    assert mapped.norms.legal_context == "BITV 2.0 / EN 301 549 V3.2.1"
    assert not mapped.norms.inferred
    assert not mapped.norms.unmapped


def test_internal_finding_completed_by_derivation(mapper):
    mapped = mapper.map_finding(_finding("headings:missing-h1", module="headings"))
    assert mapped.norms.wcag == ("1.3.1", "2.4.6")
    assert mapped.norms.en301549 == ("9.1.3.1", "9.2.4.6")
    assert mapped.norms.inferred
    assert mapped.norms.complete


def test_unknown_rule_falls_back_to_tags(mapper):
    mapped = mapper.map_finding(_finding("axe:brand-new-rule", tags=("wcag2aa", "wcag412")))
    assert mapped.norms.wcag == ("4.1.2",)
    assert mapped.norms.bitv == ("9.4.1.2",)
    assert mapped.norms.inferred


def test_unmapped_rule_is_reported(mapper):
    findings = mapper.map_all([_finding("axe:mystery"), _finding("axe:mystery"), _finding("axe:image-alt")])
    assert findings[0].norms.unmapped
    audit = audit_norms(findings)
    assert audit.missing == 2
    assert audit.to_dict() == {"missing": 2, "missingByRule": {"mystery": 2}}


def test_mapping_is_idempotent(mapper):
    original = [
        _finding("axe:image-alt"),
        _finding("axe:new", tags=("wcag131",)),
        _finding("links:raw-url", module="links"),
        _finding("axe:mystery"),
    ]
    once = mapper.map_all(original)
    twice = mapper.map_all(once)
    assert once == twice
    assert all(a is b for a, b in zip(once, twice))


def test_prior_norms_are_kept(mapper):
    prior = NormReference(wcag=("2.5.8",))
    mapped = mapper.map_finding(_finding("custom:target-size", norms=prior))
    assert mapped.norms.wcag == ("2.5.8",)
    assert mapped.norms.bitv == ("9.2.5.8",)


def test_custom_table(tmp_path):
    table = tmp_path / "table.yaml"
    table.write_text("custom-rule:\n  wcag: 1.4.11\n", encoding="utf-8")
    mapper = NormMapper.from_file(table)
    mapped = mapper.map_finding(_finding("axe:custom-rule"))
    assert mapped.norms.wcag == ("1.4.11",)


def test_invalid_table(tmp_path):
    table = tmp_path / "table.yaml"
    table.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigValidationFailure):
        load_norm_table(table)
