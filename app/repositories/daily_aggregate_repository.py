"""
app/repositories/daily_aggregate_repository.py

DB access for per-site daily aggregates.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.document_ids import daily_aggregate_id
from db.models.daily_aggregate import AggregateSource, DailyAggregate


class DailyAggregateRepository:
    """
    Overwrite-by-id persistence: saving the same (date, site) twice leaves
    exactly one row holding the latest values.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(
        self,
        *,
        target_date: date,
        site_url: str,
        totals: dict[str, Any],
        by_country: dict[str, dict[str, Any]] | None = None,
        by_device: dict[str, dict[str, Any]] | None = None,
        source: str = AggregateSource.AGGREGATION,
    ) -> DailyAggregate:
        record = DailyAggregate(
            id=daily_aggregate_id(target_date, site_url),
            date=target_date,
            site_url=site_url,
            total_clicks=int(totals["totalClicks"]),
            total_impressions=int(totals["totalImpressions"]),
            average_ctr=float(totals["averageCtr"]),
            average_position=float(totals["averagePosition"]),
            aggregates_by_country=by_country or {},
            aggregates_by_device=by_device or {},
            source=source,
        )
        return self._session.merge(record)

    def get(self, aggregate_id: str) -> DailyAggregate | None:
        return self._session.get(DailyAggregate, aggregate_id)

    def list_for_site(self, site_url: str, start_date: date, end_date: date) -> list[DailyAggregate]:
        """
        Aggregates for *site_url* inside an inclusive window, oldest first.
        """

        stmt = (
            select(DailyAggregate)
            .where(
                DailyAggregate.site_url == site_url,
                DailyAggregate.date >= start_date,
                DailyAggregate.date <= end_date,
            )
            .order_by(DailyAggregate.date.asc())
        )
        return list(self._session.scalars(stmt))
