"""access_scout.pipeline: pluggable analyzer modules and their sequential runner."""

from access_scout.pipeline.base import Analyzer, AnalyzerContext, ArtifactStore
from access_scout.pipeline.registry import AnalyzerRegistry, default_registry
from access_scout.pipeline.runner import Pipeline, PipelineOutcome

__all__ = [
    "Analyzer",
    "AnalyzerContext",
    "ArtifactStore",
    "AnalyzerRegistry",
    "default_registry",
    "Pipeline",
    "PipelineOutcome",
]
