"""
app/services/pipeline.py

Wiring of the pipeline stages shared by the trigger endpoints and the
scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache

from app.config import get_cron_settings, get_search_console_settings
from app.services.aggregation_service import DailyAggregationService
from app.services.ingestion_service import SearchAnalyticsIngestionService, get_ingestion_service
from app.services.run_lease_service import RunLeaseService
from app.services.smart_metrics_service import SmartMetricsService, get_smart_metrics_service
from app.services.tiering_service import TieringService, get_tiering_service


@dataclass(frozen=True)
class AnalyticsPipeline:
    ingestion: SearchAnalyticsIngestionService
    aggregation: DailyAggregationService
    tiering: TieringService
    smart_metrics: SmartMetricsService
    leases: RunLeaseService
    data_lag_days: int = 2

    def latest_complete_date(self, today: date) -> date:
        """Most recent day the source API has finished publishing."""
        return today - timedelta(days=self.data_lag_days)


@lru_cache(maxsize=1)
def get_analytics_pipeline() -> AnalyticsPipeline:
    return AnalyticsPipeline(
        ingestion=get_ingestion_service(),
        aggregation=DailyAggregationService(),
        tiering=get_tiering_service(),
        smart_metrics=get_smart_metrics_service(),
        leases=RunLeaseService(ttl_seconds=get_cron_settings().lease_ttl_seconds),
        data_lag_days=get_search_console_settings().data_lag_days,
    )
