# File: access_scout/aggregator.py
"""access_scout.aggregator: collection of per-page outcomes into one scan result."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from access_scout.errors import FailureRecord
from access_scout.models import DownloadRecord, Finding, PageResult, ScanSummary, finding_to_dict
from access_scout.norms.mapping import NormAudit, NormMapper, audit_norms
from access_scout.norms.scoring import ScoreSummary, score_findings
from access_scout.pipeline.runner import PipelineOutcome

__all__ = ["ScanResult", "OUTPUT_FILES"]

OUTPUT_FILES = {
    "summary": "scan.json",
    "pages": "pages.json",
    "issues": "issues.json",
    "modules": "modules.json",
    "downloads": "downloads.json",
    "failures": "failures.json",
    "normAudit": "norm_audit.json",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ScanResult:
    """Everything one crawl produced; mutated only by the crawl loop."""

    summary: ScanSummary
    pages: List[PageResult] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    modules: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    downloads: List[DownloadRecord] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)
    norm_audit: NormAudit = field(default_factory=NormAudit)
    score: Optional[ScoreSummary] = None

    @classmethod
    def start(cls, start_url: str) -> "ScanResult":
        return cls(summary=ScanSummary(start_url=start_url, started_at=_utcnow()))

    # ------------------------------------------------------------------ #
    # crawl-time
    # ------------------------------------------------------------------ #

    def add_page(self, page: PageResult, outcome: Optional[PipelineOutcome] = None) -> None:
        self.pages.append(page)
        if page.status != "failed":
            self.summary.pages_crawled += 1
        if outcome is None:
            return
        self.findings.extend(outcome.findings)
        self.failures.extend(outcome.failures)
        self.modules[page.url] = {r.module: r.to_dict() for r in outcome.results}
        incomplete = sum(int(r.stats.get("incomplete", 0) or 0) for r in outcome.results if r.module == "rule-engine")
        self.summary.totals.incomplete += incomplete

    def add_download(self, record: DownloadRecord) -> None:
        self.downloads.append(record)
        self.summary.downloads_found = len(self.downloads)

    def add_failure(self, failure: FailureRecord) -> None:
        self.failures.append(failure)

    # ------------------------------------------------------------------ #
    # end of crawl
    # ------------------------------------------------------------------ #

    def finalize(self, mapper: NormMapper, mode: str = "penalty", finished_at: Optional[datetime] = None) -> None:
        """Map norms, score, and freeze the summary."""
        self.findings = mapper.map_all(self.findings)
        self.norm_audit = audit_norms(self.findings)
        self.score = score_findings(self.findings, mode)  # type: ignore[arg-type]
        self.summary.score = self.score.overall
        self.summary.by_severity = dict(self.score.by_severity)
        self.summary.totals.violations = len(self.findings)
        self.summary.finish(finished_at or _utcnow())

    # ------------------------------------------------------------------ #
    # serialization
    # ------------------------------------------------------------------ #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "score": self.score.to_dict() if self.score else None,
            "pages": [asdict(p) for p in self.pages],
            "issues": [finding_to_dict(f) for f in self.findings],
            "modules": self.modules,
            "downloads": [asdict(d) for d in self.downloads],
            "failures": [asdict(f) for f in self.failures],
            "normAudit": self.norm_audit.to_dict(),
        }

    def json(self, *, pretty: bool = False) -> str:
        """JSON of the run summary and score."""
        data = self.to_dict()
        output = {"summary": data["summary"], "score": data["score"]}
        return json.dumps(output, ensure_ascii=False, indent=2 if pretty else None)

    def write(self, output_dir: Path) -> Dict[str, Path]:
        """Write one JSON file per output section; return their paths."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        data["summary"] = {**data["summary"], "scoreDetails": data["score"]}
        written: Dict[str, Path] = {}
        for key, name in OUTPUT_FILES.items():
            path = output_dir / name
            path.write_text(json.dumps(data[key], ensure_ascii=False, indent=2, default=str), encoding="utf-8")
            written[key] = path
        return written
