# access_scout/analyzers/meta.py
"""Document title and language declaration."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from access_scout.browser.probes import DOCUMENT_META, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

# language subtag plus optional region/script/variant subtags
LANG_RE = re.compile(r"^[a-zA-Z]{2,3}(?:-[A-Za-z0-9]{2,8})*$")


def primary_subtag(lang: str) -> str:
    return lang.split("-", 1)[0].lower()


def is_valid_lang(lang: str) -> bool:
    return bool(LANG_RE.match(lang))


class MetaAnalyzer(Analyzer):
    slug = "meta"
    version = "0.1.0"

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        opts = ctx.config.meta
        info: Dict[str, Any] = await run_probe(ctx.page, DOCUMENT_META) or {}
        findings: List[Finding] = []

        def add(fid: str, severity: str, summary: str, details: str = "", selector: Optional[str] = None) -> None:
            findings.append(
                Finding(
                    id=fid,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    details=details,
                    selectors=(selector,) if selector else (),
                    page_url=ctx.url,
                )
            )

        title = str(info.get("title") or "").strip()
        if not title:
            add("meta:title-missing", "serious", "Document title missing", selector="title")
        elif len(title) < opts.min_title_length:
            add("meta:title-too-short", "minor", "Document title too short",
                f"{title!r} has {len(title)} character(s)", "title")

        lang = str(info.get("lang") or "").strip()
        xml_lang = str(info.get("xmlLang") or "").strip()
        valid = bool(lang) and is_valid_lang(lang)
        if not lang:
            add("meta:lang-missing", "serious", "Missing lang attribute on <html>", selector="html")
        elif not valid:
            add("meta:lang-invalid", "moderate", "Invalid lang attribute", f"lang={lang!r}", "html")
        if lang and xml_lang and primary_subtag(lang) != primary_subtag(xml_lang):
            add("meta:lang-xml-mismatch", "minor", "lang and xml:lang differ",
                f"lang={lang!r}, xml:lang={xml_lang!r}", "html")

        if opts.content_heuristics and valid:
            guess = str(info.get("domLang") or info.get("navLang") or "").strip()
            if guess and primary_subtag(guess) != primary_subtag(lang):
                add("meta:lang-content-mismatch", "minor", "Declared language may not match content",
                    f"declared {lang!r}, content suggests {guess!r}", "html")

        stats = {
            "hasTitle": bool(title),
            "titleLength": len(title),
            "lang": lang,
            "xmlLang": xml_lang,
            "langValid": valid,
            "metaCharset": str(info.get("metaCharset") or ""),
        }
        return self.result(findings=findings, stats=stats)
