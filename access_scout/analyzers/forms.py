# access_scout/analyzers/forms.py
"""
Form control labelling, required-state, error binding and autocomplete.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from access_scout.browser.probes import FORM_CONTROLS, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

_REQUIRED_WORDS = re.compile(r"required|erforderlich|pflichtfeld|mandatory|obligatory")

# (label pattern, expected input type or None, expected autocomplete token)
PURPOSES: Tuple[Tuple[re.Pattern, Optional[str], str], ...] = (
    (re.compile(r"e-?mail"), "email", "email"),
    (re.compile(r"phone|\btel\b|telefon"), "tel", "tel"),
    (re.compile(r"postleitzahl|\bplz\b|postal|\bzip\b"), None, "postal-code"),
    (re.compile(r"website|homepage|\burl\b"), "url", "url"),
)

LIVE_ROLES = ("alert", "status")


@dataclass(slots=True)
class FormField:
    selector: str
    type: str
    name: str
    accessible_name: str
    name_source: str
    label_texts: List[str] = field(default_factory=list)
    required: bool = False
    aria_required: bool = False
    validation: bool = False
    error_bound: bool = False
    autocomplete: str = ""
    group_labelled: bool = False
    problems: List[str] = field(default_factory=list)


def resolve_name(raw: Mapping[str, Any]) -> Tuple[str, str]:
    """Accessible name and its source, by association priority."""
    for text in raw.get("labelFor") or []:
        if text.strip():
            return text.strip(), "label[for]"
    wrapper = str(raw.get("wrapperLabel") or "").strip()
    if wrapper:
        return wrapper, "label-wrapper"
    labelledby = " ".join(t for t in raw.get("labelledby") or [] if t).strip()
    if labelledby:
        return labelledby, "aria-labelledby"
    aria = str(raw.get("ariaLabel") or "").strip()
    if aria:
        return aria, "aria-label"
    for key in ("title", "placeholder"):
        value = str(raw.get(key) or "").strip()
        if value:
            return value, key
    return "", ""


def label_texts(raw: Mapping[str, Any]) -> List[str]:
    """Distinct texts of explicit and wrapping labels."""
    texts = [t.strip() for t in raw.get("labelFor") or []]
    texts.append(str(raw.get("wrapperLabel") or "").strip())
    return list(OrderedDict.fromkeys(t for t in texts if t))


def has_error_binding(described_by: List[Mapping[str, Any]]) -> bool:
    for ref in described_by:
        if not ref.get("exists"):
            continue
        live = str(ref.get("ariaLive") or "").lower()
        if str(ref.get("role") or "").lower() in LIVE_ROLES or (live and live != "off"):
            return True
    return False


def expected_purpose(text: str) -> Optional[Tuple[Optional[str], str]]:
    for pattern, input_type, token in PURPOSES:
        if pattern.search(text):
            return input_type, token
    return None


def build_field(raw: Mapping[str, Any]) -> FormField:
    name, source = resolve_name(raw)
    required = bool(raw.get("required"))
    aria_required = bool(raw.get("ariaRequired"))
    group = raw.get("group") or {}
    return FormField(
        selector=str(raw.get("selector") or ""),
        type=str(raw.get("type") or "text").lower(),
        name=str(raw.get("name") or ""),
        accessible_name=name,
        name_source=source,
        label_texts=label_texts(raw),
        required=required,
        aria_required=aria_required,
        validation=required or aria_required or bool(raw.get("ariaInvalid")) or bool(raw.get("validationAttrs")),
        error_bound=has_error_binding(list(raw.get("describedBy") or [])),
        autocomplete=str(raw.get("autocomplete") or "").lower(),
        group_labelled=bool(str(group.get("legend") or "").strip())
        or (group.get("role") in ("group", "radiogroup") and bool(str(group.get("name") or "").strip())),
    )


class FormsAnalyzer(Analyzer):
    slug = "forms"
    version = "0.4.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        raw = await run_probe(ctx.page, FORM_CONTROLS) or []
        fields = [build_field(r) for r in raw]

        findings: List[Finding] = []
        stats: Dict[str, int] = {
            "totalControls": len(fields),
            "unlabeled": 0,
            "ambiguous": 0,
            "errorNotBound": 0,
            "requiredMissingIndicator": 0,
            "autocompleteMissing": 0,
            "groupsWithoutLegend": 0,
        }

        def add(f: Optional[FormField], fid: str, severity: str, summary: str, details: str,
                selectors: List[str], counter: str) -> None:
            stats[counter] += 1
            if f is not None:
                f.problems.append(fid)
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    details=details,
                    selectors=tuple(selectors),
                    page_url=ctx.url,
                )
            )

        groups: "OrderedDict[str, List[FormField]]" = OrderedDict()
        for f in fields:
            if not f.accessible_name:
                add(f, "forms:label-missing", "serious", "Form control has no label",
                    "Control element lacks an accessible name", [f.selector], "unlabeled")
            elif len(f.label_texts) > 1:
                add(f, "forms:label-ambiguous", "moderate", "Form control has ambiguous labels",
                    "Labels: " + " | ".join(f.label_texts), [f.selector], "ambiguous")

            if f.required and not f.aria_required:
                text = f.accessible_name.lower()
                if "*" not in text and not _REQUIRED_WORDS.search(text):
                    add(f, "forms:required-not-indicated", "moderate", "Required field not indicated",
                        "Field is required but neither its label nor aria-required says so",
                        [f.selector], "requiredMissingIndicator")

            if f.validation and not f.error_bound:
                add(f, "forms:error-not-associated", "moderate", "Validation error not associated",
                    "No aria-describedby target with role alert/status or an active aria-live",
                    [f.selector], "errorNotBound")

            purpose = expected_purpose(f"{f.accessible_name} {f.name}".lower())
            if purpose is not None:
                input_type, token = purpose
                if (input_type and input_type != f.type) or f.autocomplete != token:
                    add(f, "forms:autocomplete-missing", "minor", "Autocomplete/type missing or wrong",
                        f"Expected type={input_type or 'any'} autocomplete={token}", [f.selector],
                        "autocompleteMissing")

            if f.type in ("radio", "checkbox") and f.name:
                groups.setdefault(f.name, []).append(f)

        for name, members in groups.items():
            if len(members) > 1 and not any(m.group_labelled for m in members):
                add(members[0], "forms:group-missing-legend", "moderate", "Form controls missing fieldset/legend",
                    f"Group '{name}' of radio buttons or checkboxes lacks a labelled grouping container",
                    [m.selector for m in members], "groupsWithoutLegend")

        path = ctx.save_artifact("forms_overview.json", [asdict(f) for f in fields])
        return self.result(findings=findings, stats=stats, artifacts={"overview": path})
