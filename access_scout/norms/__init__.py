"""Norm references (WCAG / BITV / EN 301 549) and compliance scoring."""

from access_scout.norms.mapping import NormAudit, NormMapper, audit_norms, load_norm_table
from access_scout.norms.scoring import ScoreSummary, score_findings

__all__ = ["NormAudit", "NormMapper", "audit_norms", "load_norm_table", "ScoreSummary", "score_findings"]
