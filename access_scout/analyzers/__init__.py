"""Built-in analyzer modules, in default execution order."""

from access_scout.analyzers.contrast import ContrastAnalyzer
from access_scout.analyzers.forms import FormsAnalyzer
from access_scout.analyzers.headings import HeadingsAnalyzer
from access_scout.analyzers.images import ImagesAnalyzer
from access_scout.analyzers.keyboard import KeyboardAnalyzer
from access_scout.analyzers.landmarks import LandmarksAnalyzer
from access_scout.analyzers.links import LinksAnalyzer
from access_scout.analyzers.meta import MetaAnalyzer
from access_scout.analyzers.rule_engine import RuleEngineAnalyzer
from access_scout.analyzers.skiplinks import SkipLinksAnalyzer

BUILTIN_ANALYZERS = (
    RuleEngineAnalyzer,
    MetaAnalyzer,
    HeadingsAnalyzer,
    LandmarksAnalyzer,
    ImagesAnalyzer,
    LinksAnalyzer,
    FormsAnalyzer,
    ContrastAnalyzer,
    KeyboardAnalyzer,
    SkipLinksAnalyzer,
)

__all__ = [cls.__name__ for cls in BUILTIN_ANALYZERS] + ["BUILTIN_ANALYZERS"]
