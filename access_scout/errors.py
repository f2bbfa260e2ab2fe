"""
Error taxonomy of the audit engine.

Collaborators raise one of the :class:`ScoutError` subclasses; the isolation
boundaries (crawl loop, analyzer pipeline, download inspector) catch them,
log them and keep a :class:`FailureRecord` in the scan result.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ScoutError(Exception):
    """Base class for every failure the engine knows how to isolate."""

    kind: str = "error"

    def __init__(self, message: str, *, url: Optional[str] = None, module: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.module = module

    def to_record(self) -> "FailureRecord":
        return FailureRecord(kind=self.kind, url=self.url or "", module=self.module, message=self.message)


class NavigationFailure(ScoutError):
    """Timeout, network or DNS error while loading one page."""

    kind = "navigation"


class AnalyzerFailure(ScoutError):
    """An analyzer module raised or could not run on a page."""

    kind = "analyzer"


class ConfigValidationFailure(ScoutError, ValueError):
    """Invalid configuration; fatal before the crawl starts."""

    kind = "config"


class RobotsFetchFailure(ScoutError):
    """robots.txt could not be fetched; treated as an empty rule set."""

    kind = "robots"


class DownloadFetchFailure(ScoutError):
    """A linked document could not be probed."""

    kind = "download"


@dataclass(frozen=True, slots=True)
class FailureRecord:
    """Inspectable trace of an isolated failure."""

    kind: str
    url: str
    message: str
    module: Optional[str] = None


__all__ = [
    "ScoutError",
    "NavigationFailure",
    "AnalyzerFailure",
    "ConfigValidationFailure",
    "RobotsFetchFailure",
    "DownloadFetchFailure",
    "FailureRecord",
]
