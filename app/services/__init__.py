"""
app/services package marker.
"""

from app.services.aggregation_service import DailyAggregationService, MetricsAccumulator
from app.services.ingestion_service import SearchAnalyticsIngestionService, get_ingestion_service
from app.services.pipeline import AnalyticsPipeline, get_analytics_pipeline
from app.services.run_lease_service import RunInProgressError, RunLeaseService
from app.services.smart_metrics_service import SmartMetricsService, get_smart_metrics_service
from app.services.tiering_service import TieringService, get_tiering_service

__all__ = [
    "AnalyticsPipeline",
    "DailyAggregationService",
    "MetricsAccumulator",
    "RunInProgressError",
    "RunLeaseService",
    "SearchAnalyticsIngestionService",
    "SmartMetricsService",
    "TieringService",
    "get_analytics_pipeline",
    "get_ingestion_service",
    "get_smart_metrics_service",
    "get_tiering_service",
]
