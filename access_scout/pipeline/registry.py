# access_scout/pipeline/registry.py
"""
Explicit analyzer registry.

A registry is an ordinary value built once per run; registration order is
the default execution order.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Type

from access_scout.errors import ConfigValidationFailure
from access_scout.pipeline.base import Analyzer

__all__ = ("AnalyzerRegistry", "default_registry")


class AnalyzerRegistry:
    """Maps module slugs to analyzer classes."""

    def __init__(self, analyzers: Iterable[Type[Analyzer]] = ()) -> None:
        self._classes: Dict[str, Type[Analyzer]] = {}
        for cls in analyzers:
            self.register(cls)

    def register(self, cls: Type[Analyzer]) -> Type[Analyzer]:
        slug = getattr(cls, "slug", "")
        if not slug:
            raise ValueError(f"{cls.__name__} declares no slug")
        if slug in self._classes:
            raise ValueError(f"analyzer '{slug}' registered twice")
        self._classes[slug] = cls
        return cls

    def __contains__(self, slug: object) -> bool:
        return slug in self._classes

    def __len__(self) -> int:
        return len(self._classes)

    @property
    def slugs(self) -> List[str]:
        return list(self._classes)

    def create(self, enabled: Sequence[str]) -> List[Analyzer]:
        """Instantiate *enabled* modules in registration order."""
        unknown = [s for s in enabled if s not in self._classes]
        if unknown:
            raise ConfigValidationFailure(f"unknown analyzer module(s): {', '.join(unknown)}")
        wanted = set(enabled)
        return [cls() for slug, cls in self._classes.items() if slug in wanted]


def default_registry() -> AnalyzerRegistry:
    """Registry with every analyzer shipped in :mod:`access_scout.analyzers`."""
    from access_scout.analyzers import BUILTIN_ANALYZERS

    return AnalyzerRegistry(BUILTIN_ANALYZERS)
