"""
app/services/aggregation_service.py

Daily aggregation of raw events into per-site totals.

One pass over the day's events feeds three kinds of accumulator:

    site-wide      one per site
    per country    keyed by the raw country code
    per device     keyed by the raw device category

Average position is impression-weighted and every ratio divides by
``max(totalImpressions, 1)``, so a day with zero impressions yields zeros
instead of a division error.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.document_ids import daily_aggregate_id
from app.domain.pipeline import AggregationResult
from app.repositories.daily_aggregate_repository import DailyAggregateRepository
from app.repositories.raw_event_repository import RawEventRepository
from app.validators.pipeline_validator import parse_iso_date
from db.models.daily_aggregate import AggregateSource

logger = logging.getLogger(__name__)

READ_PAGE_SIZE = 1000


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------


@dataclass
class MetricsAccumulator:
    total_clicks: int = 0
    total_impressions: int = 0
    weighted_position: float = 0.0

    def add(self, clicks: int, impressions: int, position: float) -> None:
        self.total_clicks += clicks
        self.total_impressions += impressions
        self.weighted_position += position * impressions

    def metrics(self) -> dict[str, float | int]:
        denominator = max(self.total_impressions, 1)
        return {
            "totalClicks": self.total_clicks,
            "totalImpressions": self.total_impressions,
            "averageCtr": self.total_clicks / denominator,
            "averagePosition": self.weighted_position / denominator,
        }


class _SiteDay:
    """Accumulators for one site on one day."""

    def __init__(self) -> None:
        self.events = 0
        self.total = MetricsAccumulator()
        self.by_country: dict[str, MetricsAccumulator] = defaultdict(MetricsAccumulator)
        self.by_device: dict[str, MetricsAccumulator] = defaultdict(MetricsAccumulator)

    def add(self, *, country: str, device: str, clicks: int, impressions: int, position: float) -> None:
        self.events += 1
        self.total.add(clicks, impressions, position)
        self.by_country[country].add(clicks, impressions, position)
        self.by_device[device].add(clicks, impressions, position)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DailyAggregationService:
    """
    Recomputes ``daily_aggregates`` from ``raw_events``.

    Parameters
    ----------
    page_size:
        Number of raw events read per query.
    """

    def __init__(self, *, page_size: int = READ_PAGE_SIZE) -> None:
        self._page_size = max(1, page_size)

    def aggregate_date(
        self,
        *,
        db: Session,
        target_date: date | str,
        site_url: str | None = None,
    ) -> list[AggregationResult]:
        """
        Aggregate every event of *target_date*, for one site or for each
        site seen that day.

        Returns one result per written aggregate. A day without events
        writes nothing and returns an empty list. Re-running over unchanged
        events overwrites each aggregate with identical values.
        """

        day = parse_iso_date(target_date, field="target_date")
        site_filter = site_url.strip() if site_url and site_url.strip() else None

        per_site: dict[str, _SiteDay] = defaultdict(_SiteDay)
        for event in RawEventRepository(db).iter_events_for_date(
            day,
            site_url=site_filter,
            page_size=self._page_size,
        ):
            per_site[event.site_url].add(
                country=event.country,
                device=event.device,
                clicks=event.clicks,
                impressions=event.impressions,
                position=event.position,
            )

        if not per_site:
            logger.info(
                "No raw events to aggregate date=%s site=%s",
                day.isoformat(),
                site_filter or "*",
            )
            return []

        repository = DailyAggregateRepository(db)
        results: list[AggregationResult] = []
        try:
            for site, accumulators in sorted(per_site.items()):
                repository.save(
                    target_date=day,
                    site_url=site,
                    totals=accumulators.total.metrics(),
                    by_country={key: acc.metrics() for key, acc in sorted(accumulators.by_country.items())},
                    by_device={key: acc.metrics() for key, acc in sorted(accumulators.by_device.items())},
                    source=AggregateSource.AGGREGATION,
                )
                results.append(
                    AggregationResult(
                        site_url=site,
                        date=day,
                        aggregate_id=daily_aggregate_id(day, site),
                        events_read=accumulators.events,
                        countries=len(accumulators.by_country),
                        devices=len(accumulators.by_device),
                    )
                )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store daily aggregates date=%s", day.isoformat())
            raise

        for result in results:
            logger.info(
                "Daily aggregate stored site=%s date=%s events=%s countries=%s devices=%s",
                result.site_url,
                day.isoformat(),
                result.events_read,
                result.countries,
                result.devices,
            )
        return results
