"""
app/repositories/raw_event_repository.py

DB access for append-only raw search analytics events.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import asdict
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.domain.pipeline import DailyPageMetrics
from app.domain.search_analytics import RawEventInput
from db.models.raw_event import RawAnalyticsEvent


class RawEventRepository:
    """
    Repository for ``raw_events``. Never commits; the caller owns the
    transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def bulk_insert(self, records: Sequence[RawEventInput]) -> int:
        if not records:
            return 0
        payloads: list[dict[str, Any]] = [asdict(record) for record in records]
        self._session.bulk_insert_mappings(RawAnalyticsEvent, payloads)
        return len(payloads)

    def iter_events_for_date(
        self,
        target_date: date,
        *,
        site_url: str | None = None,
        page_size: int = 1000,
    ) -> Iterator[RawAnalyticsEvent]:
        """
        Yield every event for *target_date*, reading ``page_size`` rows at a
        time with keyset pagination on the primary key.
        """

        last_id = 0
        while True:
            stmt = (
                select(RawAnalyticsEvent)
                .where(RawAnalyticsEvent.date == target_date, RawAnalyticsEvent.id > last_id)
                .order_by(RawAnalyticsEvent.id)
                .limit(page_size)
            )
            if site_url is not None:
                stmt = stmt.where(RawAnalyticsEvent.site_url == site_url)
            batch = list(self._session.scalars(stmt))
            if not batch:
                return
            yield from batch
            if len(batch) < page_size:
                return
            last_id = batch[-1].id

    def distinct_pages(self, site_url: str) -> list[str]:
        stmt = (
            select(RawAnalyticsEvent.page)
            .where(RawAnalyticsEvent.site_url == site_url, RawAnalyticsEvent.page != "")
            .distinct()
            .order_by(RawAnalyticsEvent.page)
        )
        return list(self._session.scalars(stmt))

    def distinct_sites(self) -> list[str]:
        stmt = select(RawAnalyticsEvent.site_url).distinct().order_by(RawAnalyticsEvent.site_url)
        return list(self._session.scalars(stmt))

    def daily_page_metrics(
        self,
        *,
        site_url: str,
        page: str,
        start_date: date,
        end_date: date,
    ) -> list[DailyPageMetrics]:
        """
        Per-day totals for one page over an inclusive window, oldest first.
        Days without events are absent.
        """

        weighted_position = func.sum(RawAnalyticsEvent.position * RawAnalyticsEvent.impressions)
        stmt = (
            select(
                RawAnalyticsEvent.date,
                func.sum(RawAnalyticsEvent.clicks),
                func.sum(RawAnalyticsEvent.impressions),
                weighted_position,
            )
            .where(
                RawAnalyticsEvent.site_url == site_url,
                RawAnalyticsEvent.page == page,
                RawAnalyticsEvent.date >= start_date,
                RawAnalyticsEvent.date <= end_date,
            )
            .group_by(RawAnalyticsEvent.date)
            .order_by(RawAnalyticsEvent.date)
        )
        metrics: list[DailyPageMetrics] = []
        for day, clicks, impressions, position_sum in self._session.execute(stmt):
            impressions = int(impressions or 0)
            metrics.append(
                DailyPageMetrics(
                    date=day,
                    clicks=int(clicks or 0),
                    impressions=impressions,
                    average_position=float(position_sum or 0.0) / max(impressions, 1),
                )
            )
        return metrics

    def clicks_by_page(self, *, site_url: str, start_date: date, end_date: date) -> dict[str, int]:
        stmt = (
            select(RawAnalyticsEvent.page, func.sum(RawAnalyticsEvent.clicks))
            .where(
                RawAnalyticsEvent.site_url == site_url,
                RawAnalyticsEvent.date >= start_date,
                RawAnalyticsEvent.date <= end_date,
            )
            .group_by(RawAnalyticsEvent.page)
        )
        return {page: int(clicks or 0) for page, clicks in self._session.execute(stmt)}
