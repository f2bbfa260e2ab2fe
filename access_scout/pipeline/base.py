# access_scout/pipeline/base.py
"""
Analyzer interface and the per-page context handed to every analyzer.
"""
from __future__ import annotations

import hashlib
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, Mapping, Tuple
from urllib.parse import urlparse

from access_scout.browser.base import BrowserPage
from access_scout.config import CrawlConfig
from access_scout.logger import PageLoggerAdapter
from access_scout.models import AnalyzerResult

__all__ = ("Analyzer", "AnalyzerContext", "ArtifactStore")

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]+")


class ArtifactStore:
    """Persists structured module output under ``<root>/artifacts/<page>/<module>/``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @staticmethod
    def page_slug(url: str) -> str:
        parsed = urlparse(url)
        readable = _UNSAFE.sub("_", f"{parsed.netloc}{parsed.path}").strip("_")[:60] or "page"
        digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:8]
        return f"{readable}-{digest}"

    def path_for(self, url: str, module: str, name: str) -> Path:
        return self.root / "artifacts" / self.page_slug(url) / module / name

    def save_json(self, url: str, module: str, name: str, data: Any) -> Path:
        path = self.path_for(url, module, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        return path

    def save_bytes(self, url: str, module: str, name: str, data: bytes) -> Path:
        path = self.path_for(url, module, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


@dataclass(slots=True)
class AnalyzerContext:
    """Everything a module may touch while analyzing one page."""

    page: BrowserPage
    url: str
    config: CrawlConfig
    logger: PageLoggerAdapter
    artifacts: ArtifactStore
    module: str = ""
    results: Dict[str, AnalyzerResult] = field(default_factory=dict)

    def save_artifact(self, name: str, data: Any) -> str:
        """Persist *data* as JSON under the module-scoped path and return that path."""
        return str(self.artifacts.save_json(self.url, self.module, name, data))

    def save_binary(self, name: str, data: bytes) -> str:
        return str(self.artifacts.save_bytes(self.url, self.module, name, data))

    def upstream(self, slug: str) -> AnalyzerResult:
        """Result of a prerequisite module that already ran on this page."""
        return self.results[slug]


class Analyzer(ABC):
    """Base class of every pluggable analyzer module.

    Subclasses set ``slug`` and ``version``, may declare ``requires`` and
    override :meth:`init` / :meth:`dispose`.
    """

    slug: ClassVar[str]
    version: ClassVar[str] = "0.1.0"
    requires: ClassVar[Tuple[str, ...]] = ()

    async def init(self, ctx: AnalyzerContext) -> None:
        return None

    @abstractmethod
    async def run(self, ctx: AnalyzerContext) -> AnalyzerResult:
        ...

    async def dispose(self, ctx: AnalyzerContext) -> None:
        return None

    def result(self, **kwargs: Any) -> AnalyzerResult:
        return AnalyzerResult(module=self.slug, version=self.version, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.slug}@{self.version}>"


def stat_map(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of *values* with floats rounded for stable serialization."""
    return {k: round(v, 4) if isinstance(v, float) else v for k, v in values.items()}
