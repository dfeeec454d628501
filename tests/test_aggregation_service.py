"""
tests/test_aggregation_service.py

Pytest tests for DailyAggregationService against an in-memory database.

Coverage
--------
- impression-weighted position and CTR for the site total and breakdowns
- one aggregate per site seen on the day; site filter
- sites whose slugs coincide still get separate rows
- idempotent re-aggregation (same id, same values, one row)
- a day without events writes nothing
- zero-impression days yield zero ratios
- keyset pagination across several read pages
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.domain.document_ids import daily_aggregate_id
from app.services.aggregation_service import DailyAggregationService, MetricsAccumulator
from conftest import SITE
from db.models.daily_aggregate import AggregateSource, DailyAggregate

DAY = date(2024, 3, 1)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def service() -> DailyAggregationService:
    return DailyAggregationService(page_size=2)


@pytest.fixture()
def two_events(add_events) -> None:
    add_events(
        {"date": DAY, "country": "usa", "device": "DESKTOP", "clicks": 10, "impressions": 100, "position": 5.0},
        {"date": DAY, "country": "gbr", "device": "MOBILE", "clicks": 20, "impressions": 200, "position": 10.0},
    )


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


class TestMetricsAccumulator:
    def test_empty_accumulator_has_zero_ratios(self) -> None:
        assert MetricsAccumulator().metrics() == {
            "totalClicks": 0,
            "totalImpressions": 0,
            "averageCtr": 0.0,
            "averagePosition": 0.0,
        }

    def test_position_is_impression_weighted(self) -> None:
        acc = MetricsAccumulator()
        acc.add(10, 100, 5.0)
        acc.add(20, 200, 10.0)
        metrics = acc.metrics()
        assert metrics["averagePosition"] == pytest.approx(25 / 3)
        assert metrics["averageCtr"] == pytest.approx(0.1)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestDailyAggregation:
    def test_site_totals_and_breakdowns(self, service: DailyAggregationService, session: Session, two_events) -> None:
        results = service.aggregate_date(db=session, target_date=DAY)

        assert len(results) == 1
        assert results[0].events_read == 2
        assert (results[0].countries, results[0].devices) == (2, 2)

        aggregate = session.get(DailyAggregate, results[0].aggregate_id)
        assert aggregate is not None
        assert aggregate.id == daily_aggregate_id(DAY, SITE)
        assert aggregate.total_clicks == 30
        assert aggregate.total_impressions == 300
        assert aggregate.average_ctr == pytest.approx(0.1)
        assert aggregate.average_position == pytest.approx(8.3333, abs=1e-4)
        assert aggregate.source == AggregateSource.AGGREGATION
        assert aggregate.aggregates_by_country["usa"]["totalClicks"] == 10
        assert aggregate.aggregates_by_country["gbr"]["averagePosition"] == pytest.approx(10.0)
        assert aggregate.aggregates_by_device["MOBILE"]["averageCtr"] == pytest.approx(0.1)

    def test_rerun_overwrites_single_row(self, service: DailyAggregationService, session: Session, two_events) -> None:
        first = service.aggregate_date(db=session, target_date=DAY)
        first_payload = session.get(DailyAggregate, first[0].aggregate_id).to_payload()

        second = service.aggregate_date(db=session, target_date="2024-03-01")

        assert [r.aggregate_id for r in second] == [r.aggregate_id for r in first]
        assert session.scalar(select(func.count()).select_from(DailyAggregate)) == 1
        session.expire_all()
        assert session.get(DailyAggregate, first[0].aggregate_id).to_payload() == first_payload

    def test_day_without_events_writes_nothing(self, service: DailyAggregationService, session: Session, two_events) -> None:
        assert service.aggregate_date(db=session, target_date=date(2024, 3, 2)) == []
        assert session.scalar(select(func.count()).select_from(DailyAggregate)) == 0

    def test_one_aggregate_per_site(self, service: DailyAggregationService, session: Session, add_events) -> None:
        add_events(
            {"date": DAY, "clicks": 1, "impressions": 10},
            {"date": DAY, "site_url": "https://other.example/", "clicks": 3, "impressions": 30},
            {"date": DAY, "clicks": 2, "impressions": 10},
        )

        results = service.aggregate_date(db=session, target_date=DAY)
        assert sorted(r.site_url for r in results) == ["https://other.example/", SITE]

        filtered = service.aggregate_date(db=session, target_date=DAY, site_url=SITE)
        assert [r.site_url for r in filtered] == [SITE]
        assert filtered[0].events_read == 2

    def test_sites_with_same_slug_keep_separate_rows(self, service: DailyAggregationService, session: Session, add_events) -> None:
        add_events(
            {"date": DAY, "site_url": "https://a-b.com/", "page": "https://a-b.com/x/", "clicks": 4, "impressions": 40},
            {"date": DAY, "site_url": "https://a.b.com/", "page": "https://a.b.com/x/", "clicks": 6, "impressions": 60},
        )

        results = service.aggregate_date(db=session, target_date=DAY)

        assert len({r.aggregate_id for r in results}) == 2
        assert session.scalar(select(func.count()).select_from(DailyAggregate)) == 2
        clicks = {r.site_url: session.get(DailyAggregate, r.aggregate_id).total_clicks for r in results}
        assert clicks == {"https://a-b.com/": 4, "https://a.b.com/": 6}

        service.aggregate_date(db=session, target_date=DAY, site_url="https://a.b.com/")
        assert session.get(DailyAggregate, daily_aggregate_id(DAY, "https://a-b.com/")).total_clicks == 4

    def test_zero_impressions_yield_zero_ratios(self, service: DailyAggregationService, session: Session, add_events) -> None:
        add_events({"date": DAY, "clicks": 0, "impressions": 0, "position": 3.0})

        results = service.aggregate_date(db=session, target_date=DAY)
        aggregate = session.get(DailyAggregate, results[0].aggregate_id)
        assert aggregate.average_ctr == 0.0
        assert aggregate.average_position == 0.0

    def test_reads_every_page_of_events(self, service: DailyAggregationService, session: Session, add_events) -> None:
        add_events(*({"date": DAY, "clicks": 1, "impressions": 10} for _ in range(5)))

        results = service.aggregate_date(db=session, target_date=DAY)
        assert results[0].events_read == 5
        assert session.get(DailyAggregate, results[0].aggregate_id).total_clicks == 5
