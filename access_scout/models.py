# access_scout/models.py
"""
Data models shared by the crawl engine, the analyzer pipeline and scoring.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

Severity = Literal["critical", "serious", "moderate", "minor"]
SEVERITIES: Tuple[str, ...] = ("critical", "serious", "moderate", "minor")

PageStatus = Literal["ok", "failed", "simulated"]
DownloadStatus = Literal["queued", "manual-review", "skipped"]


@dataclass(frozen=True, slots=True)
class NormReference:
    """WCAG / BITV / EN 301 549 references of one finding."""

    wcag: Tuple[str, ...] = ()
    bitv: Tuple[str, ...] = ()
    en301549: Tuple[str, ...] = ()
    legal_context: Optional[str] = None
    inferred: bool = False
    unmapped: bool = False

    @property
    def complete(self) -> bool:
        return bool(self.wcag and self.bitv and self.en301549)


@dataclass(frozen=True, slots=True)
class Finding:
    """A single compliance issue, produced by exactly one module on one page."""

    id: str
    module: str
    severity: Severity
    summary: str
    details: str = ""
    selectors: Tuple[str, ...] = ()
    page_url: str = ""
    norms: Optional[NormReference] = None
    tags: Tuple[str, ...] = ()
    help_url: str = ""
    metrics: Mapping[str, Any] = field(default_factory=dict)

    @property
    def rule_id(self) -> str:
        """Identifier without the ``axe:`` namespace used for rule-engine findings."""
        return self.id.split(":", 1)[1] if self.id.startswith("axe:") else self.id


@dataclass(slots=True)
class AnalyzerResult:
    """Outcome of one analyzer on one page.

    ``data`` carries in-memory products (outlines, traces) for downstream
    modules and is not serialized.
    """

    module: str
    version: str
    findings: List[Finding] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, Any] = field(default_factory=dict)
    artifacts: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "version": self.version,
            "findings": [finding_to_dict(f) for f in self.findings],
            "stats": self.stats,
            "metrics": self.metrics,
            "artifacts": self.artifacts,
        }


@dataclass(frozen=True, slots=True)
class FrontierItem:
    url: str
    depth: int


@dataclass(slots=True)
class PageResult:
    """What happened to one dequeued URL."""

    url: str
    depth: int
    status: PageStatus = "ok"
    simulated: bool = False
    robots_disallowed: bool = False
    http_status: Optional[int] = None
    error: Optional[str] = None
    modules: List[str] = field(default_factory=list)


@dataclass(slots=True)
class DownloadRecord:
    """A linked document diverted from the page frontier."""

    url: str
    source_page: str
    label: str = "Unknown"
    content_type: str = ""
    size_bytes: Optional[int] = None
    status: DownloadStatus = "queued"
    note: str = ""


@dataclass(slots=True)
class ScanTotals:
    violations: int = 0
    incomplete: int = 0


@dataclass(slots=True)
class ScanSummary:
    """Run-level summary; mutable while the crawl runs, frozen by :meth:`finish`."""

    start_url: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    pages_crawled: int = 0
    downloads_found: int = 0
    score: float = 100.0
    by_severity: Dict[str, int] = field(default_factory=lambda: {s: 0 for s in SEVERITIES})
    totals: ScanTotals = field(default_factory=ScanTotals)
    robots_blocked: int = 0
    robots_audited: int = 0
    frozen: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "frozen", False):
            raise AttributeError(f"ScanSummary is frozen; cannot set {name!r}")
        object.__setattr__(self, name, value)

    def finish(self, finished_at: datetime) -> None:
        self.finished_at = finished_at
        self.frozen = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startUrl": self.start_url,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "pagesCrawled": self.pages_crawled,
            "downloadsFound": self.downloads_found,
            "score": self.score,
            "bySeverity": dict(self.by_severity),
            "totals": {"violations": self.totals.violations, "incomplete": self.totals.incomplete},
            "robots": {"blocked": self.robots_blocked, "audited": self.robots_audited},
        }


def finding_to_dict(finding: Finding) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": finding.id,
        "module": finding.module,
        "severity": finding.severity,
        "summary": finding.summary,
        "details": finding.details,
        "selectors": list(finding.selectors),
        "pageUrl": finding.page_url,
    }
    if finding.norms is not None:
        out["norms"] = {
            "wcag": list(finding.norms.wcag),
            "bitv": list(finding.norms.bitv),
            "en301549": list(finding.norms.en301549),
            "legalContext": finding.norms.legal_context,
            "inferred": finding.norms.inferred,
            "unmapped": finding.norms.unmapped,
        }
    if finding.tags:
        out["tags"] = list(finding.tags)
    if finding.help_url:
        out["helpUrl"] = finding.help_url
    if finding.metrics:
        out["metrics"] = dict(finding.metrics)
    return out
