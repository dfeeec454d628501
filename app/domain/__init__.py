"""
app/domain package marker.
"""

from app.domain.pipeline import (
    AggregationResult,
    DailyPageMetrics,
    PageLoss,
    PagePopulationResult,
    Processed,
    Skipped,
    SmartMetricsReport,
    TieringRunReport,
)
from app.domain.search_analytics import (
    DailySummaryResult,
    ImpressionWindowSummary,
    IngestionSummary,
    RawEventInput,
    SearchAnalyticsQuery,
    SearchAnalyticsRow,
)

__all__ = [
    "AggregationResult",
    "DailyPageMetrics",
    "DailySummaryResult",
    "ImpressionWindowSummary",
    "IngestionSummary",
    "PageLoss",
    "PagePopulationResult",
    "Processed",
    "RawEventInput",
    "SearchAnalyticsQuery",
    "SearchAnalyticsRow",
    "Skipped",
    "SmartMetricsReport",
    "TieringRunReport",
]
