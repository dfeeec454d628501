"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for the search analytics pipeline.

Site discovery
--------------
Sites are resolved at job runtime from two sources, merged and deduplicated
(configured order first):

  1. ``SEARCH_CONSOLE_SITES`` env var, comma-separated site identifiers,
     e.g. ``sc-domain:example.com,https://blog.example.com/``.
  2. Sites already present in the ``pages`` table.

Schedule (all times UTC)
------------------------
  daily_ingest              01:00 every day
  daily_aggregate           01:30 every day
  daily_page_tiering        02:00 every day
  daily_smart_metrics       02:30 every day
  weekly_impression_windows 03:00 every Monday

Each job takes the same (stage, site) run lease as the trigger endpoints, so
a scheduled run and a manual trigger never overlap. A failing site is logged
and the job moves on to the next one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_search_console_settings
from app.repositories.page_repository import PageRepository
from app.services.page_service import populate_pages
from app.services.pipeline import AnalyticsPipeline, get_analytics_pipeline
from app.services.run_lease_service import RunInProgressError
from db.session import SessionLocal

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Site discovery
# ---------------------------------------------------------------------------


def _sites_from_db(session: Session) -> list[str]:
    try:
        return PageRepository(session).distinct_sites()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Site discovery from DB failed: %s", exc)
        return []


def resolve_sites(session: Session) -> list[str]:
    merged: list[str] = list(get_search_console_settings().sites)
    for site in _sites_from_db(session):
        if site and site not in merged:
            merged.append(site)
    return merged


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


SiteTask = Callable[[AnalyticsPipeline, Session, str], object]


def _run_for_sites(job: str, stage: str, task: SiteTask) -> None:
    logger.info("Scheduler: %s starting", job)
    pipeline = get_analytics_pipeline()

    with _session_scope() as db:
        sites = resolve_sites(db)
        if not sites:
            logger.warning("Scheduler: %s found no sites, skipping", job)
            return

        for site in sites:
            try:
                with pipeline.leases.hold(db=db, stage=stage, site_url=site):
                    result = task(pipeline, db, site)
                logger.info("Scheduler: %s site=%s result=%s", job, site, result)
            except RunInProgressError as exc:
                logger.info("Scheduler: %s skipped site=%s: %s", job, site, exc)
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                logger.warning("Scheduler: %s failed site=%s: %s", job, site, exc)

    logger.info("Scheduler: %s complete", job)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def run_daily_ingest() -> None:
    """
    Ingest the most recent complete day for every site.
    """

    def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
        target = pipeline.latest_complete_date(datetime.now(timezone.utc).date())
        return pipeline.ingestion.ingest_range(db=db, site_url=site, start_date=target, end_date=target)

    _run_for_sites("daily_ingest", "ingest", task)


def run_daily_aggregate() -> None:
    def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
        target = pipeline.latest_complete_date(datetime.now(timezone.utc).date())
        return pipeline.aggregation.aggregate_date(db=db, target_date=target, site_url=site)

    _run_for_sites("daily_aggregate", "aggregate", task)


def run_daily_page_tiering() -> None:
    """
    Register newly seen pages, then re-tier every page of the site.
    """

    def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
        populate_pages(db=db, site_url=site)
        report = pipeline.tiering.run(db=db, site_url=site)
        return {"processed": report.processed, "skipped": len(report.skipped)}

    _run_for_sites("daily_page_tiering", "page-tiering", task)


def run_daily_smart_metrics() -> None:
    def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
        report = pipeline.smart_metrics.compute(db=db, site_url=site)
        return {"status": report.status, "days": report.days_of_history}

    _run_for_sites("daily_smart_metrics", "smart-metrics", task)


def run_weekly_impression_windows() -> None:
    def task(pipeline: AnalyticsPipeline, db: Session, site: str) -> object:
        summary = pipeline.ingestion.refresh_page_impression_windows(db=db, site_url=site)
        return {"pages": summary.pages_updated, "losing": len(summary.losing_pages)}

    _run_for_sites("weekly_impression_windows", "impression-windows", task)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_daily_ingest,
        trigger="cron",
        hour=1,
        minute=0,
        id="daily_ingest",
        name="Daily search analytics ingestion",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_daily_aggregate,
        trigger="cron",
        hour=1,
        minute=30,
        id="daily_aggregate",
        name="Daily aggregation",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_daily_page_tiering,
        trigger="cron",
        hour=2,
        minute=0,
        id="daily_page_tiering",
        name="Daily page population and tiering",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_daily_smart_metrics,
        trigger="cron",
        hour=2,
        minute=30,
        id="daily_smart_metrics",
        name="Daily smart metrics and health score",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_weekly_impression_windows,
        trigger="cron",
        day_of_week="mon",
        hour=3,
        minute=0,
        id="weekly_impression_windows",
        name="Weekly 90-day impression comparison",
        replace_existing=True,
        misfire_grace_time=7200,
    )

    return scheduler
