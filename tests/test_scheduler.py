"""
tests/test_scheduler.py

Pytest tests for the APScheduler job wiring.

Coverage
--------
- build_scheduler registers every periodic job with its cron trigger
- site discovery merges configured sites with sites from the pages table
- a failing site is logged and the job continues with the next site
- a site whose lease is held is skipped
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from app.config import SearchConsoleSettings
from app.repositories.page_repository import PageRepository
from app.repositories.summary_repository import DashboardStatsRepository
from app.scheduler import jobs
from app.services.aggregation_service import DailyAggregationService
from app.services.ingestion_service import SearchAnalyticsIngestionService
from app.services.pipeline import AnalyticsPipeline
from app.services.run_lease_service import RunLeaseService
from app.services.smart_metrics_service import SmartMetricsService
from app.services.tiering_service import TieringService
from conftest import SITE, FakeSearchClient

OTHER_SITE = "https://other.example/"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def pipeline(retry) -> AnalyticsPipeline:
    return AnalyticsPipeline(
        ingestion=SearchAnalyticsIngestionService(client=FakeSearchClient(), retry=retry),
        aggregation=DailyAggregationService(),
        tiering=TieringService(),
        smart_metrics=SmartMetricsService(),
        leases=RunLeaseService(ttl_seconds=600),
    )


@pytest.fixture()
def wired(monkeypatch: pytest.MonkeyPatch, session: Session, pipeline: AnalyticsPipeline) -> AnalyticsPipeline:
    monkeypatch.setattr(jobs, "SessionLocal", lambda: session)
    monkeypatch.setattr(jobs, "get_analytics_pipeline", lambda: pipeline)
    monkeypatch.setattr(jobs, "get_search_console_settings", lambda: SearchConsoleSettings(sites=(SITE,)))
    PageRepository(session).ensure_page(url="https://other.example/p/", site_url=OTHER_SITE)
    session.commit()
    return pipeline


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestBuildScheduler:
    def test_registers_all_jobs(self) -> None:
        scheduler = jobs.build_scheduler()
        assert {job.id for job in scheduler.get_jobs()} == {
            "daily_ingest",
            "daily_aggregate",
            "daily_page_tiering",
            "daily_smart_metrics",
            "weekly_impression_windows",
        }


class TestRunForSites:
    def test_sites_are_merged(self, wired: AnalyticsPipeline, session: Session) -> None:
        assert jobs.resolve_sites(session) == [SITE, OTHER_SITE]

    def test_failing_site_does_not_stop_job(self, wired: AnalyticsPipeline) -> None:
        seen: list[str] = []

        def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
            seen.append(site)
            if site == SITE:
                raise RuntimeError("boom")
            return "ok"

        jobs._run_for_sites("test_job", "test-stage", task)

        assert seen == [SITE, OTHER_SITE]

    def test_held_lease_skips_site(self, wired: AnalyticsPipeline, session: Session) -> None:
        wired.leases.acquire(db=session, stage="test-stage", site_url=SITE)
        seen: list[str] = []

        jobs._run_for_sites("test_job", "test-stage", lambda pipeline, db, site: seen.append(site))

        assert seen == [OTHER_SITE]

    def test_smart_metrics_job_runs_for_every_site(self, wired: AnalyticsPipeline, session: Session) -> None:
        jobs.run_daily_smart_metrics()

        repository = DashboardStatsRepository(session)
        assert repository.get(SITE) is not None
        assert repository.get(OTHER_SITE) is not None
