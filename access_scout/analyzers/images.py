# access_scout/analyzers/images.py
"""
Text alternatives of images, SVGs, image buttons and image-map areas.

An ``<img>`` without an ``alt`` attribute is missing its alternative;
``alt=""`` marks it decorative, as do ``role=presentation|none`` and
``aria-hidden``. Each rule yields one finding per page that lists up to
``MAX_SELECTORS`` offending elements.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import unquote, urlparse

from access_scout.browser.probes import IMAGES, run_probe
from access_scout.models import AnalyzerResult, Finding
from access_scout.pipeline.base import Analyzer, AnalyzerContext

MAX_SELECTORS = 20

_EXT_RE = re.compile(r"\.[a-z0-9]+$")

# (rule id, severity, summary)
_RULES = (
    ("images:missing-alt", "serious", "Image without alt text"),
    ("images:filename-as-alt", "minor", "Alt text equals file name"),
    ("images:redundant-alt", "minor", "Alt text duplicates surrounding link text"),
    ("images:decorative-with-alt", "minor", "Decorative image with alt text"),
    ("images:image-of-text", "moderate", "Image likely contains text"),
    ("images:svg-missing-title", "minor", "SVG without accessible name"),
    ("images:input-image-missing-alt", "serious", "Image button without alt text"),
    ("images:imagemap-area-missing-alt", "serious", "Image map area without alt text"),
)


def _norm(text: Optional[str]) -> str:
    return " ".join((text or "").split()).lower()


def file_stem(src: str) -> str:
    """Lower-cased file name of *src* without extension, separators as spaces."""
    name = unquote(urlparse(src).path.rsplit("/", 1)[-1])
    return _norm(_EXT_RE.sub("", name.lower()).replace("-", " ").replace("_", " "))


@dataclass(frozen=True, slots=True)
class ImageInfo:
    type: str
    selector: str
    alt: Optional[str] = None
    src: str = ""
    decorative: bool = False
    parent_text: str = ""
    natural_width: int = 0
    natural_height: int = 0
    named: bool = False
    role: str = ""
    in_link: bool = False
    aria_label: str = ""

    @classmethod
    def from_probe(cls, raw: Mapping[str, Any]) -> "ImageInfo":
        alt = raw.get("alt")
        return cls(
            type=str(raw.get("type") or "img"),
            selector=str(raw.get("selector") or ""),
            alt=None if alt is None else str(alt),
            src=str(raw.get("src") or ""),
            decorative=bool(raw.get("decorative")),
            parent_text=str(raw.get("parentText") or ""),
            natural_width=int(raw.get("naturalWidth") or 0),
            natural_height=int(raw.get("naturalHeight") or 0),
            named=bool(raw.get("named")),
            role=str(raw.get("role") or "").lower(),
            in_link=bool(raw.get("inLink")),
            aria_label=str(raw.get("ariaLabel") or ""),
        )


class ImagesAnalyzer(Analyzer):
    slug = "images"
    version = "0.1.0"

    def _check_img(self, img: ImageInfo, hits: Dict[str, List[str]], stats: Dict[str, int]) -> None:
        stats["total"] += 1
        alt = (img.alt or "").strip()
        decorative = img.decorative or img.alt == ""
        if alt:
            stats["withAlt"] += 1
        if decorative:
            stats["decorative"] += 1

        if img.alt is None and not img.decorative:
            stats["missingAlt"] += 1
            hits["images:missing-alt"].append(img.selector)
        elif img.decorative and alt:
            hits["images:decorative-with-alt"].append(img.selector)

        if alt:
            alt_norm = _norm(alt)
            if img.parent_text and alt_norm == _norm(img.parent_text):
                hits["images:redundant-alt"].append(img.selector)
            stem = file_stem(img.src)
            if stem and alt_norm in (stem, _norm(img.src.rsplit("/", 1)[-1])):
                hits["images:filename-as-alt"].append(img.selector)

        # wide, low banners are usually rendered text
        if img.natural_height and img.natural_width:
            if img.natural_height < 50 and img.natural_width / img.natural_height > 3:
                hits["images:image-of-text"].append(img.selector)

    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        raw = await run_probe(ctx.page, IMAGES) or []
        items = [ImageInfo.from_probe(r) for r in raw]
        hits: "OrderedDict[str, List[str]]" = OrderedDict((rule, []) for rule, _, _ in _RULES)
        stats = {"total": 0, "withAlt": 0, "missingAlt": 0, "decorative": 0, "svgCount": 0}

        for item in items:
            if item.type == "img":
                self._check_img(item, hits, stats)
            elif item.type == "svg":
                stats["svgCount"] += 1
                exposed = item.in_link or (item.role not in ("", "presentation", "none"))
                if exposed and not item.named and not item.decorative:
                    hits["images:svg-missing-title"].append(item.selector)
            elif item.type == "input-image":
                if not (item.alt or "").strip():
                    hits["images:input-image-missing-alt"].append(item.selector)
            elif item.type == "area":
                if not (item.alt or "").strip() and not item.aria_label.strip():
                    hits["images:imagemap-area-missing-alt"].append(item.selector)

        findings: List[Finding] = []
        for rule, severity, summary in _RULES:
            selectors = hits[rule]
            if not selectors:
                continue
            findings.append(
                Finding(
                    id=rule,
                    module=self.slug,
                    severity=severity,  # type: ignore[arg-type]
                    summary=summary,
                    details=f"{len(selectors)} element(s)",
                    selectors=tuple(selectors[:MAX_SELECTORS]),
                    page_url=ctx.url,
                )
            )

        path = ctx.save_artifact("images_index.json", raw)
        return self.result(findings=findings, stats=stats, artifacts={"index": path})
