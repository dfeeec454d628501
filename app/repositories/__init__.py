"""
app/repositories package marker.
"""

from app.repositories.daily_aggregate_repository import DailyAggregateRepository
from app.repositories.page_repository import PageRepository
from app.repositories.raw_event_repository import RawEventRepository
from app.repositories.run_lease_repository import RunLeaseRepository
from app.repositories.summary_repository import DashboardStatsRepository, TieringSummaryRepository

__all__ = [
    "DailyAggregateRepository",
    "DashboardStatsRepository",
    "PageRepository",
    "RawEventRepository",
    "RunLeaseRepository",
    "TieringSummaryRepository",
]
