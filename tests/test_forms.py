# File: tests/test_forms.py
import pytest

from access_scout.analyzers.forms import FormsAnalyzer, build_field, expected_purpose, resolve_name


def _control(selector, **fields):
    raw = {
        "selector": selector,
        "tag": "input",
        "type": "text",
        "name": "",
        "id": "",
        "labelFor": [],
        "wrapperLabel": "",
        "ariaLabel": "",
        "labelledby": [],
        "title": "",
        "placeholder": "",
        "required": False,
        "ariaRequired": False,
        "ariaInvalid": False,
        "validationAttrs": [],
        "describedBy": [],
        "autocomplete": "",
        "group": None,
    }
    raw.update(fields)
    return raw


def test_name_resolution_priority():
    assert resolve_name(_control("#a", labelFor=["Name"], ariaLabel="x")) == ("Name", "label[for]")
    assert resolve_name(_control("#a", wrapperLabel="City")) == ("City", "label-wrapper")
    assert resolve_name(_control("#a", labelledby=["First", "name"])) == ("First name", "aria-labelledby")
    assert resolve_name(_control("#a", placeholder="Search")) == ("Search", "placeholder")
    assert resolve_name(_control("#a")) == ("", "")


def test_expected_purpose():
    assert expected_purpose("e-mail adresse") == ("email", "email")
    assert expected_purpose("plz") == (None, "postal-code")
    assert expected_purpose("vorname") is None


def test_error_binding_requires_live_region():
    bound = build_field(
        _control("#a", required=True, describedBy=[{"id": "err", "exists": True, "role": "alert", "ariaLive": ""}])
    )
    unbound = build_field(
        _control("#b", required=True, describedBy=[{"id": "hint", "exists": True, "role": "", "ariaLive": "off"}])
    )
    assert bound.error_bound
    assert not unbound.error_bound


@pytest.mark.asyncio()
async def test_unlabelled_control_is_serious(fake_page_cls, run_analyzer):
    page = fake_page_cls({"form_controls": [_control("#q")]})
    result = await run_analyzer(FormsAnalyzer(), page)

    assert [f.id for f in result.findings] == ["forms:label-missing"]
    assert result.findings[0].severity == "serious"
    assert result.stats["unlabeled"] == 1


@pytest.mark.asyncio()
async def test_required_without_indicator(fake_page_cls, run_analyzer):
    alert = [{"id": "e", "exists": True, "role": "alert", "ariaLive": ""}]
    page = fake_page_cls(
        {
            "form_controls": [
                _control("#plain", labelFor=["Name"], required=True, describedBy=alert),
                _control("#star", labelFor=["Name *"], required=True, describedBy=alert),
                _control("#aria", labelFor=["Name"], required=True, ariaRequired=True, describedBy=alert),
            ]
        }
    )
    result = await run_analyzer(FormsAnalyzer(), page)

    flagged = [f for f in result.findings if f.id == "forms:required-not-indicated"]
    assert [f.selectors for f in flagged] == [("#plain",)]
    assert result.stats["requiredMissingIndicator"] == 1
    assert result.stats["errorNotBound"] == 0


@pytest.mark.asyncio()
async def test_error_not_associated(fake_page_cls, run_analyzer):
    page = fake_page_cls({"form_controls": [_control("#zip", labelFor=["Code *"], validationAttrs=["pattern"])]})
    result = await run_analyzer(FormsAnalyzer(), page)

    assert [f.id for f in result.findings] == ["forms:error-not-associated"]


@pytest.mark.asyncio()
async def test_autocomplete_and_type(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {
            "form_controls": [
                _control("#mail", labelFor=["E-Mail"]),
                _control("#mail-ok", labelFor=["E-Mail"], type="email", autocomplete="email"),
            ]
        }
    )
    result = await run_analyzer(FormsAnalyzer(), page)

    flagged = [f.selectors[0] for f in result.findings if f.id == "forms:autocomplete-missing"]
    assert flagged == ["#mail"]
    assert result.findings[0].severity == "minor"


@pytest.mark.asyncio()
async def test_ambiguous_labels_and_radio_group(fake_page_cls, run_analyzer):
    page = fake_page_cls(
        {
            "form_controls": [
                _control("#f", labelFor=["First"], wrapperLabel="Second"),
                _control("#s", type="radio", name="size", wrapperLabel="S"),
                _control("#m", type="radio", name="size", wrapperLabel="M"),
                _control("#c1", type="checkbox", name="opts", wrapperLabel="A", group={"legend": "Options"}),
                _control("#c2", type="checkbox", name="opts", wrapperLabel="B", group={"legend": "Options"}),
            ]
        }
    )
    result = await run_analyzer(FormsAnalyzer(), page)

    by_id = {}
    for f in result.findings:
        by_id.setdefault(f.id, []).append(f)
    assert by_id["forms:label-ambiguous"][0].selectors == ("#f",)
    assert len(by_id["forms:group-missing-legend"]) == 1
    assert by_id["forms:group-missing-legend"][0].selectors == ("#s", "#m")
    assert result.stats["groupsWithoutLegend"] == 1
