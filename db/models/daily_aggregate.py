"""
db/models/daily_aggregate.py

Site-wide daily totals with per-country and per-device breakdowns.
One row per (date, site); re-aggregation overwrites it in place.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Date, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload


class AggregateSource:
    AGGREGATION = "aggregation"
    DAILY_SUMMARY = "daily_summary"


class DailyAggregate(Base):
    """
    ``aggregates_by_country`` and ``aggregates_by_device`` map a dimension
    value to the same four metrics as the top-level row, e.g.::

        {"usa": {"totalClicks": 30, "totalImpressions": 300,
                 "averageCtr": 0.1, "averagePosition": 8.33}}
    """

    __tablename__ = "daily_aggregates"

    id: Mapped[str] = mapped_column(
        String(320),
        primary_key=True,
        comment="daily_<YYYYMMDD>_<site slug>_<sha1 prefix>",
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    site_url: Mapped[str] = mapped_column(String(255), nullable=False)
    total_clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_ctr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_position: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    aggregates_by_country: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
        default=dict,
    )
    aggregates_by_device: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
        default=dict,
    )
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=AggregateSource.AGGREGATION,
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_daily_aggregates_site_date", "site_url", "date"),)

    def to_payload(self) -> dict[str, Any]:
        """Stable dictionary form, excluding bookkeeping timestamps."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "siteUrl": self.site_url,
            "totalClicks": self.total_clicks,
            "totalImpressions": self.total_impressions,
            "averageCtr": self.average_ctr,
            "averagePosition": self.average_position,
            "aggregatesByCountry": self.aggregates_by_country,
            "aggregatesByDevice": self.aggregates_by_device,
            "source": self.source,
        }
