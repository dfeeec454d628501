"""
Page performance tiering: benchmarks, score, ordered rules and run summary.
"""

from tiering.rules import TierClassifier
from tiering.scoring import PerformanceScorer, compute_kpis, relative_change
from tiering.summary import TierSummary, build_tier_summary, portfolio_recommendations
from tiering.types import (
    PerformanceKPIs,
    PerformanceMetrics,
    Priority,
    Tier,
    TierAnalysis,
    empty_priority_breakdown,
    empty_tier_distribution,
)
from tiering.windows import AnalysisWindows, DateWindow, analysis_windows

__all__ = [
    "AnalysisWindows",
    "DateWindow",
    "PerformanceKPIs",
    "PerformanceMetrics",
    "PerformanceScorer",
    "Priority",
    "Tier",
    "TierAnalysis",
    "TierClassifier",
    "TierSummary",
    "analysis_windows",
    "build_tier_summary",
    "compute_kpis",
    "empty_priority_breakdown",
    "empty_tier_distribution",
    "portfolio_recommendations",
    "relative_change",
]
