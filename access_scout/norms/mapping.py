# access_scout/norms/mapping.py
"""
Resolution of findings to WCAG, BITV and EN 301 549 references.

An explicit table (YAML, keyed by rule id) wins; missing or empty lists
are derived deterministically: WCAG from ``wcagXYZ`` tags or the help URL,
BITV and EN 301 549 from WCAG by prefixing ``9.``.
"""
from __future__ import annotations

import dataclasses
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from access_scout.errors import ConfigValidationFailure
from access_scout.models import Finding, NormReference

__all__ = (
    "DEFAULT_TABLE",
    "NormEntry",
    "NormAudit",
    "NormMapper",
    "load_norm_table",
    "normalize_wcag_tags",
    "derive_bitv",
    "derive_en",
    "audit_norms",
)

DEFAULT_TABLE = Path(__file__).with_name("rules_mapping.yaml")

_WCAG_TAG = re.compile(r"^wcag(\d)(\d)(\d)([a-z])?$", re.IGNORECASE)
_WCAG_URL = re.compile(r"wcag(\d)(\d)(\d)([a-z])?", re.IGNORECASE)

# One WCAG criterion, several BITV test steps.
BITV_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    "1.1.1": ("9.1.1.1a", "9.1.1.1b"),
    "1.3.1": ("9.1.3.1a", "9.1.3.1b"),
    "1.4.3": ("9.1.4.3",),
}


@dataclass(frozen=True, slots=True)
class NormEntry:
    wcag: Tuple[str, ...] = ()
    bitv: Tuple[str, ...] = ()
    en301549: Tuple[str, ...] = ()
    legal_context: Optional[str] = None


@dataclass(slots=True)
class NormAudit:
    missing: int = 0
    missing_by_rule: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"missing": self.missing, "missingByRule": dict(self.missing_by_rule)}


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def normalize_wcag_tags(tags: Sequence[str] = (), help_url: str = "") -> Tuple[str, ...]:
    """``wcag143`` style tags (and a help URL) to ``1.4.3`` criterion ids."""
    out: List[str] = []
    for tag in tags:
        m = _WCAG_TAG.match(tag)
        if m:
            out.append(f"{m[1]}.{m[2]}.{m[3]}{m[4] or ''}")
    if help_url:
        m = _WCAG_URL.search(help_url)
        if m:
            out.append(f"{m[1]}.{m[2]}.{m[3]}{m[4] or ''}")
    return _unique(out)


def derive_bitv(wcag: Sequence[str]) -> Tuple[str, ...]:
    out: List[str] = []
    for wid in wcag:
        out.extend(BITV_OVERRIDES.get(wid, (f"9.{wid}",)))
    return _unique(out)


def derive_en(wcag: Sequence[str]) -> Tuple[str, ...]:
    return _unique(f"9.{wid}" for wid in wcag)


def _as_tuple(value: Any, key: str, rule: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ConfigValidationFailure(f"norm table entry {rule!r}: {key} must be a list")
    return tuple(str(v) for v in value)


def load_norm_table(path: Union[str, Path, None] = None) -> Dict[str, NormEntry]:
    """Read a YAML mapping table; *None* loads the bundled one."""
    path = Path(path) if path is not None else DEFAULT_TABLE
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigValidationFailure(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigValidationFailure(f"Norm table {path} must be a mapping")

    table: Dict[str, NormEntry] = {}
    for rule, entry in raw.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            raise ConfigValidationFailure(f"norm table entry {rule!r} must be a mapping")
        table[str(rule)] = NormEntry(
            wcag=_as_tuple(entry.get("wcag"), "wcag", rule),
            bitv=_as_tuple(entry.get("bitv"), "bitv", rule),
            en301549=_as_tuple(entry.get("en301549"), "en301549", rule),
            legal_context=entry.get("legalContext"),
        )
    return table


class NormMapper:
    """Attaches a :class:`NormReference` to findings; pure and idempotent."""

    def __init__(self, table: Mapping[str, NormEntry]) -> None:
        self.table = dict(table)

    @classmethod
    def from_file(cls, path: Union[str, Path, None] = None) -> "NormMapper":
        return cls(load_norm_table(path))

    def resolve(self, finding: Finding) -> NormReference:
        prior = finding.norms or NormReference()
        entry = self.table.get(finding.rule_id) or self.table.get(finding.id)

        wcag = (entry.wcag if entry else ()) or prior.wcag
        bitv = (entry.bitv if entry else ()) or prior.bitv
        en = (entry.en301549 if entry else ()) or prior.en301549
        legal = (entry.legal_context if entry else None) or prior.legal_context

        inferred = prior.inferred
        if not wcag:
            wcag = normalize_wcag_tags(finding.tags, finding.help_url)
            inferred = inferred or bool(wcag)
        if not bitv and wcag:
            bitv = derive_bitv(wcag)
            inferred = True
        if not en and wcag:
            en = derive_en(wcag)
            inferred = True

        ref = NormReference(wcag=wcag, bitv=bitv, en301549=en, legal_context=legal, inferred=inferred)
        return dataclasses.replace(ref, unmapped=not ref.complete)

    def map_finding(self, finding: Finding) -> Finding:
        norms = self.resolve(finding)
        if norms == finding.norms:
            return finding
        return dataclasses.replace(finding, norms=norms)

    def map_all(self, findings: Iterable[Finding]) -> List[Finding]:
        return [self.map_finding(f) for f in findings]


def audit_norms(findings: Iterable[Finding]) -> NormAudit:
    """Count findings whose references are still incomplete after mapping."""
    missing = Counter(f.rule_id for f in findings if f.norms is None or f.norms.unmapped)
    return NormAudit(missing=sum(missing.values()), missing_by_rule=dict(sorted(missing.items())))
