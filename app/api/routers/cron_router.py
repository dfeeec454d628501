"""
app/api/routers/cron_router.py

Scheduler trigger endpoints, one per pipeline stage.

    GET|POST /cron/{stage}?site_url=...&secret=...

Every run holds a (stage, site) lease for its duration. Outcomes map to:

    success    200  stage completed
    degraded   200  quota exhausted; a minimal dashboard record is ensured
    skipped    409  another run of the same stage holds the lease
    failed     500  any other error, with the raw message
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import verify_cron_request
from app.config import SearchConsoleSettings, get_search_console_settings
from app.failure_codes import is_quota_error
from app.schemas.cron import CronRunResponse
from app.services.pipeline import AnalyticsPipeline, get_analytics_pipeline
from app.services.page_service import populate_pages
from app.services.run_lease_service import RunInProgressError
from app.validators.pipeline_validator import PipelineValidationError
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_request)])

STAGE_INGEST = "ingest"
STAGE_DAILY_SUMMARY = "daily-summary"
STAGE_AGGREGATE = "aggregate"
STAGE_POPULATE_PAGES = "populate-pages"
STAGE_SMART_METRICS = "smart-metrics"
STAGE_PAGE_TIERING = "page-tiering"
STAGE_IMPRESSION_WINDOWS = "impression-windows"

ALL_SITES = "*"


@dataclass(frozen=True)
class StageRequest:
    site_url: str | None
    start_date: str | date
    end_date: str | date
    target_date: str | date
    today: date


StageHandler = Callable[[AnalyticsPipeline, Session, StageRequest], CronRunResponse]


# ---------------------------------------------------------------------------
# Stage handlers
# ---------------------------------------------------------------------------


def _run_ingest(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    summary = pipeline.ingestion.ingest_range(
        db=db,
        site_url=request.site_url,
        start_date=request.start_date,
        end_date=request.end_date,
    )
    return CronRunResponse(
        status="success",
        stage=STAGE_INGEST,
        site_url=summary.site_url,
        message=(
            f"Ingested {summary.rows_written} rows for "
            f"{summary.start_date.isoformat()} to {summary.end_date.isoformat()}."
        ),
        details={
            "pagesFetched": summary.pages_fetched,
            "rowsFetched": summary.rows_fetched,
            "rowsWritten": summary.rows_written,
            "batchesCommitted": summary.batches_committed,
        },
    )


def _run_daily_summary(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    result = pipeline.ingestion.ingest_daily_summary(
        db=db,
        site_url=request.site_url,
        target_date=request.target_date,
    )
    return CronRunResponse(
        status="success",
        stage=STAGE_DAILY_SUMMARY,
        site_url=result.site_url,
        message=(
            f"Daily summary stored for {result.date.isoformat()}."
            if result.written
            else f"Kept raw-event aggregate for {result.date.isoformat()}."
        ),
        details={
            "aggregateId": result.aggregate_id,
            "totalClicks": result.total_clicks,
            "totalImpressions": result.total_impressions,
            "hadRows": result.had_rows,
            "written": result.written,
        },
    )


def _run_aggregate(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    results = pipeline.aggregation.aggregate_date(
        db=db,
        target_date=request.target_date,
        site_url=request.site_url,
    )
    day = results[0].date.isoformat() if results else str(request.target_date)
    return CronRunResponse(
        status="success",
        stage=STAGE_AGGREGATE,
        site_url=request.site_url,
        message=(
            f"Aggregation job completed for {day}."
            if results
            else f"No raw events to aggregate for {day}."
        ),
        details={
            "aggregates": [
                {**asdict(result), "date": result.date.isoformat()} for result in results
            ],
        },
    )


def _run_populate_pages(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    result = populate_pages(db=db, site_url=request.site_url)
    return CronRunResponse(
        status="success",
        stage=STAGE_POPULATE_PAGES,
        site_url=result.site_url,
        message=f"Populated pages with {result.pages_seen} unique URLs.",
        details={"pagesSeen": result.pages_seen, "pagesCreated": result.pages_created},
    )


def _run_smart_metrics(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    report = pipeline.smart_metrics.compute(db=db, site_url=request.site_url, today=request.today)
    return CronRunResponse(
        status="success",
        stage=STAGE_SMART_METRICS,
        site_url=report.site_url,
        message=f"Smart metrics computed from {report.days_of_history} days of history.",
        details={
            "dashboardStatus": report.status,
            "daysOfHistory": report.days_of_history,
            "healthScore": (report.health_score or {}).get("overall"),
        },
        recommendations=[
            recommendation
            for metric in report.metrics.values()
            for recommendation in metric.get("recommendations", [])
        ],
    )


def _run_page_tiering(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    report = pipeline.tiering.run(db=db, site_url=request.site_url)
    return CronRunResponse(
        status="success",
        stage=STAGE_PAGE_TIERING,
        site_url=request.site_url,
        message=f"Tiering completed. Processed {report.processed} pages.",
        details={
            "processed": report.processed,
            "skipped": len(report.skipped),
            "recentPeriod": report.recent_period,
            "baselinePeriod": report.baseline_period,
            "tierDistribution": report.tier_distribution,
            "priorityBreakdown": report.priority_breakdown,
        },
        recommendations=report.recommendations,
    )


def _run_impression_windows(pipeline: AnalyticsPipeline, db: Session, request: StageRequest) -> CronRunResponse:
    summary = pipeline.ingestion.refresh_page_impression_windows(
        db=db,
        site_url=request.site_url,
        today=request.today,
    )
    return CronRunResponse(
        status="success",
        stage=STAGE_IMPRESSION_WINDOWS,
        site_url=summary.site_url,
        message=f"Impression windows refreshed for {summary.pages_updated} pages.",
        details={
            "pagesUpdated": summary.pages_updated,
            "losingPages": len(summary.losing_pages),
            "chunksFetched": summary.chunks_fetched,
        },
    )


STAGE_HANDLERS: dict[str, StageHandler] = {
    STAGE_INGEST: _run_ingest,
    STAGE_DAILY_SUMMARY: _run_daily_summary,
    STAGE_AGGREGATE: _run_aggregate,
    STAGE_POPULATE_PAGES: _run_populate_pages,
    STAGE_SMART_METRICS: _run_smart_metrics,
    STAGE_PAGE_TIERING: _run_page_tiering,
    STAGE_IMPRESSION_WINDOWS: _run_impression_windows,
}

# Stages that may run across every site when no site is given.
_SITE_OPTIONAL_STAGES = frozenset({STAGE_AGGREGATE, STAGE_PAGE_TIERING})


def _resolve_site(stage: str, site_url: str | None, settings: SearchConsoleSettings) -> str | None:
    if site_url and site_url.strip():
        return site_url.strip()
    if stage in _SITE_OPTIONAL_STAGES:
        return None
    if settings.sites:
        return settings.sites[0]
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="site_url is required when SEARCH_CONSOLE_SITES is not configured.",
    )


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


@router.api_route("/{stage}", methods=["GET", "POST"], response_model=CronRunResponse)
def run_stage(
    stage: str,
    response: Response,
    site_url: str | None = Query(default=None, description="Site identifier, e.g. sc-domain:example.com"),
    start_date: str | None = Query(default=None, description="YYYY-MM-DD, ingest only"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD, ingest only"),
    target_date: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    pipeline: AnalyticsPipeline = Depends(get_analytics_pipeline),
    search_settings: SearchConsoleSettings = Depends(get_search_console_settings),
) -> CronRunResponse:
    handler = STAGE_HANDLERS.get(stage)
    if handler is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown stage '{stage}'. Allowed stages: {', '.join(STAGE_HANDLERS)}.",
        )

    site = _resolve_site(stage, site_url, search_settings)
    today = datetime.now(timezone.utc).date()
    latest = pipeline.latest_complete_date(today)
    request = StageRequest(
        site_url=site,
        start_date=start_date or latest,
        end_date=end_date or start_date or latest,
        target_date=target_date or latest,
        today=today,
    )

    try:
        lease = pipeline.leases.acquire(db=db, stage=stage, site_url=site or ALL_SITES)
    except RunInProgressError as exc:
        logger.info("Stage skipped stage=%s site=%s reason=lease_held", stage, site)
        response.status_code = status.HTTP_409_CONFLICT
        return CronRunResponse(status="skipped", stage=stage, site_url=site, message=str(exc))

    logger.info("Stage started stage=%s site=%s", stage, site or ALL_SITES)
    try:
        return handler(pipeline, db, request)
    except PipelineValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        if is_quota_error(exc):
            return _degraded(pipeline, db, stage, site, exc)
        logger.exception("Stage failed stage=%s site=%s error=%s", stage, site, exc)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return CronRunResponse(status="failed", stage=stage, site_url=site, message=str(exc))
    finally:
        pipeline.leases.release(db=db, lease=lease)


def _degraded(
    pipeline: AnalyticsPipeline,
    db: Session,
    stage: str,
    site: str | None,
    exc: Exception,
) -> CronRunResponse:
    logger.warning("Quota exhausted stage=%s site=%s error=%s", stage, site, exc)
    fallback_written = False
    if site is not None:
        try:
            fallback_written = pipeline.smart_metrics.write_fallback(db=db, site_url=site, reason=str(exc))
        except SQLAlchemyError as fallback_exc:
            logger.error("Fallback dashboard stats failed site=%s error=%s", site, fallback_exc)
    return CronRunResponse(
        status="degraded",
        stage=stage,
        site_url=site,
        message="Quota exceeded - minimal data mode activated.",
        details={"error": str(exc), "fallbackWritten": fallback_written},
    )
