# access_scout/analyzers/links.py
"""
Link text quality and redundancy.

Links are grouped twice: by normalized text (one text, several targets)
and by normalized target (one target, texts that share too few tokens).
"""
from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from access_scout.browser.probes import LINKS, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

SELECTOR_CAP = 20

_RAW_URL_RE = re.compile(r"^https?://|^[a-z0-9.-]+\.[a-z]{2,}(?:/|$)")


def normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").replace(" ", " ")).strip().lower()


def normalize_href(href: str, base: str, compare_query: bool = False) -> str:
    absolute, _ = urldefrag(urljoin(base, href or ""))
    if compare_query:
        return absolute
    parts = urlsplit(absolute)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def jaccard(a: str, b: str) -> float:
    """Token-set Jaccard similarity over whitespace-split words."""
    sa, sb = set(a.split()), set(b.split())
    union = sa | sb
    return len(sa & sb) / len(union) if union else 1.0


def is_raw_url(text: str) -> bool:
    return bool(_RAW_URL_RE.search(text))


@dataclass(slots=True)
class LinkInfo:
    text: str
    href: str
    selector: str
    text_norm: str
    href_norm: str
    icon_only: bool

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any], base: str, compare_query: bool) -> "LinkInfo":
        text = str(raw.get("text") or "")
        name = (
            text
            or str(raw.get("ariaLabel") or "")
            or str(raw.get("labelledbyText") or "")
            or str(raw.get("title") or "")
            or str(raw.get("imageAlt") or "")
        )
        href = str(raw.get("href") or "")
        return cls(
            text=name,
            href=href,
            selector=str(raw.get("selector") or ""),
            text_norm=normalize_text(name),
            href_norm=normalize_href(href, base, compare_query),
            icon_only=not name.strip(),
        )


def _group(links: Iterable[LinkInfo], key) -> "OrderedDict[str, List[LinkInfo]]":
    groups: "OrderedDict[str, List[LinkInfo]]" = OrderedDict()
    for link in links:
        k = key(link)
        if k:
            groups.setdefault(k, []).append(link)
    return groups


def has_divergent_texts(texts: List[str], threshold: float) -> bool:
    """True when any pair of *texts* is less similar than *threshold*."""
    for i, a in enumerate(texts):
        for b in texts[i + 1:]:
            if jaccard(a, b) < threshold:
                return True
    return False


class LinksAnalyzer(Analyzer):
    slug = "links"
    version = "0.2.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        opts = ctx.config.links
        raw = await run_probe(ctx.page, LINKS) or []
        links = [LinkInfo.from_probe(r, ctx.url, opts.compare_query) for r in raw]
        weak = {normalize_text(w) for w in opts.weak_texts}

        findings: List[Finding] = []

        def add(fid: str, summary: str, selectors: List[str], **metrics: Any) -> None:
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity="minor",
                    summary=summary,
                    selectors=tuple(selectors[:SELECTOR_CAP]),
                    page_url=ctx.url,
                    metrics=metrics,
                )
            )

        weak_links = [l for l in links if l.text_norm in weak]
        raw_links = [l for l in links if l.text_norm and is_raw_url(l.text_norm)]
        icon_links = [l for l in links if l.icon_only]
        share_weak = round(len(weak_links) / len(links) * 100, 1) if links else 0.0

        if weak_links:
            add("links:nondescriptive", "Nondescriptive link text", [l.selector for l in weak_links],
                shareWeak=share_weak, weakCount=len(weak_links))
        if raw_links:
            add("links:raw-url", "Link text is a raw URL", [l.selector for l in raw_links])
        if icon_links:
            add("links:icon-only", "Icon-only link without accessible name", [l.selector for l in icon_links])

        dup_text = 0
        for text, group in _group(links, lambda l: l.text_norm).items():
            if len({l.href_norm for l in group}) > 1:
                dup_text += 1
                add("links:text-dup-different-target", f'Same link text "{text}" points to different targets',
                    [l.selector for l in group])

        dup_target = 0
        for href, group in _group(links, lambda l: l.href_norm).items():
            texts = [l.text_norm for l in group if l.text_norm]
            if len(texts) >= 2 and has_divergent_texts(texts, opts.divergence_threshold):
                dup_target += 1
                add("links:target-dup-different-text", f"Same target {href} with differing link texts",
                    [l.selector for l in group])

        stats: Dict[str, Any] = {
            "total": len(links),
            "nondescriptive": len(weak_links),
            "rawUrl": len(raw_links),
            "dupTextGroups": dup_text,
            "dupTargetGroups": dup_target,
            "shareWeak": share_weak,
        }
        path = ctx.save_artifact("links_overview.json", [asdict(l) for l in links])
        return self.result(findings=findings, stats=stats, artifacts={"overview": path})
