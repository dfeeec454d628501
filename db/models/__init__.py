"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.daily_aggregate import AggregateSource, DailyAggregate
from db.models.dashboard_stats import DashboardStats, DashboardStatsStatus
from db.models.page_record import PageRecord
from db.models.raw_event import RawAnalyticsEvent
from db.models.run_lease import RunLease
from db.models.tiering_summary import TieringSummary

__all__ = [
    "AggregateSource",
    "DailyAggregate",
    "DashboardStats",
    "DashboardStatsStatus",
    "PageRecord",
    "RawAnalyticsEvent",
    "RunLease",
    "TieringSummary",
]
