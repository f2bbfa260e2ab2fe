# access_scout/norms/scoring.py
"""
Severity-weighted compliance scores.

``penalty``: findings are grouped per rule; each rule subtracts
``min(cap, weight(max severity) * min(5, occurrences))`` from 100.

``delta``: every rule contributes ``min(5, occurrences)`` to the count of
its worst severity; each severity subtracts a fixed delta per counted
occurrence, with the count capped per severity.

Both are floored at 0 and independent of finding order.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Tuple

from access_scout.models import SEVERITIES, Finding

ScoringMode = Literal["penalty", "delta"]

WEIGHTS: Dict[str, int] = {"critical": 6, "serious": 4, "moderate": 2, "minor": 1}
RULE_CAP = 35

DELTAS: Dict[str, int] = {"critical": 5, "serious": 3, "moderate": 2, "minor": 1}
SEVERITY_COUNT_CAP = 10

MAX_MULTIPLIER = 5


@dataclass(slots=True)
class ScoreSummary:
    overall: float
    mode: str
    by_severity: Dict[str, int] = field(default_factory=dict)
    penalties: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "overall": self.overall,
            "mode": self.mode,
            "bySeverity": dict(self.by_severity),
            "penalties": dict(self.penalties),
        }


def count_by_severity(findings: Iterable[Finding]) -> Dict[str, int]:
    counts = {s: 0 for s in SEVERITIES}
    for f in findings:
        counts[f.severity] = counts.get(f.severity, 0) + 1
    return counts


def _worst(a: str, b: str) -> str:
    return a if SEVERITIES.index(a) <= SEVERITIES.index(b) else b


def _per_rule(findings: Iterable[Finding]) -> Dict[str, Tuple[str, int]]:
    """Worst severity and capped occurrence count of every rule id."""
    occurrences: Dict[str, int] = defaultdict(int)
    severity: Dict[str, str] = {}
    for f in findings:
        rule = f.rule_id
        occurrences[rule] += 1
        severity[rule] = _worst(severity.get(rule, f.severity), f.severity)
    return {rule: (severity[rule], min(MAX_MULTIPLIER, n)) for rule, n in sorted(occurrences.items())}


def rule_penalties(findings: Iterable[Finding]) -> Dict[str, float]:
    """Capped penalty per rule id."""
    return {
        rule: float(min(RULE_CAP, WEIGHTS[sev] * n))
        for rule, (sev, n) in _per_rule(findings).items()
    }


def severity_deltas(findings: Iterable[Finding]) -> Dict[str, float]:
    """Deduction per severity from rule-deduplicated occurrence counts."""
    counts: Dict[str, int] = defaultdict(int)
    for sev, n in _per_rule(findings).values():
        counts[sev] += n
    return {
        sev: float(DELTAS[sev] * min(SEVERITY_COUNT_CAP, counts[sev]))
        for sev in SEVERITIES
        if counts[sev]
    }


def score_findings(findings: Iterable[Finding], mode: ScoringMode = "penalty") -> ScoreSummary:
    items: List[Finding] = list(findings)
    penalties = severity_deltas(items) if mode == "delta" else rule_penalties(items)
    overall = max(0.0, 100.0 - sum(penalties.values()))
    return ScoreSummary(
        overall=round(overall, 1),
        mode=mode,
        by_severity=count_by_severity(items),
        penalties=penalties,
    )


def penalty_score(findings: Iterable[Finding]) -> float:
    return score_findings(findings, "penalty").overall


def delta_score(findings: Iterable[Finding]) -> float:
    return score_findings(findings, "delta").overall
