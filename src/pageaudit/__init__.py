"""
Single-page analyzer: markup version, title, heading counts, link classification
and concurrent detection of unreachable links.
"""
from pageaudit.config import AnalyzerConfig
from pageaudit.core import (
    AnalysisError,
    AnalysisResult,
    FetchFailure,
    LinkClassification,
    ParseFailure,
    Report,
    analyze,
    analyze_async,
    classify_links,
    detect_version,
    inspect_document,
)
from pageaudit.health import HealthReport, ProbeOutcome, check_links

__version__ = "1.0.0"
__all__ = [
    "AnalyzerConfig",
    "AnalysisError",
    "AnalysisResult",
    "FetchFailure",
    "HealthReport",
    "LinkClassification",
    "ParseFailure",
    "ProbeOutcome",
    "Report",
    "analyze",
    "analyze_async",
    "check_links",
    "classify_links",
    "detect_version",
    "inspect_document",
]
