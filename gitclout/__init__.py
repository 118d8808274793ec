"""Per-commit line attribution and classification for git repositories."""

from .analyzer import AnalysisError, AnalysisTimeoutError, ContributionAnalyzer, analyze_repository

__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "ContributionAnalyzer",
    "analyze_repository",
]
