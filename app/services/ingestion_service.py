"""
app/services/ingestion_service.py

Ingestion gateway: pulls Search Analytics rows page by page and appends them
to ``raw_events`` in bounded, retried batches.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache, partial

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import (
    MAX_WRITE_BATCH_SIZE,
    get_ingestion_settings,
    get_retry_settings,
    get_search_console_settings,
)
from app.connectors import BaseSearchAnalyticsClient, RetryExecutor, SearchConsoleConnector
from app.domain.document_ids import daily_aggregate_id
from app.domain.search_analytics import (
    DailySummaryResult,
    ImpressionWindowSummary,
    IngestionSummary,
    RawEventInput,
    SearchAnalyticsQuery,
    SearchAnalyticsRow,
)
from app.mappers.search_row_mapper import (
    DIMENSION_DATE,
    DIMENSION_PAGE,
    SearchRowMapper,
    raw_event_dimensions,
)
from app.mappers.url_normalizer import normalize_url
from app.repositories.daily_aggregate_repository import DailyAggregateRepository
from app.repositories.page_repository import PageRepository
from app.repositories.raw_event_repository import RawEventRepository
from app.validators.pipeline_validator import parse_iso_date, require_site_url, validate_date_range
from db.models.daily_aggregate import AggregateSource

logger = logging.getLogger(__name__)

MAX_ROW_LIMIT = 25000


class SearchAnalyticsIngestionService:
    """
    Sequential ingestion against one Search Analytics client.

    Every page fetch and every batch commit goes through the retry executor.
    Committed batches stay durable when a later page or batch fails.
    """

    def __init__(
        self,
        *,
        client: BaseSearchAnalyticsClient,
        retry: RetryExecutor,
        batch_size: int = 450,
        row_limit: int = MAX_ROW_LIMIT,
        include_search_appearance: bool = False,
        search_type: str | None = None,
        impression_chunk_days: int = 14,
        impression_window_days: int = 90,
    ) -> None:
        self._client = client
        self._retry = retry
        self._batch_size = min(MAX_WRITE_BATCH_SIZE, max(1, batch_size))
        self._row_limit = min(MAX_ROW_LIMIT, max(1, row_limit))
        self._dimensions = raw_event_dimensions(include_search_appearance)
        self._search_type = search_type
        self._impression_chunk_days = max(1, impression_chunk_days)
        self._impression_window_days = max(1, impression_window_days)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # ------------------------------------------------------------------
    # Ranged ingestion
    # ------------------------------------------------------------------

    def ingest_range(
        self,
        *,
        db: Session,
        site_url: str,
        start_date: date | str,
        end_date: date | str,
        search_type: str | None = None,
    ) -> IngestionSummary:
        """
        Fetch every row for ``[start_date, end_date]`` and append it to
        ``raw_events``.

        Raises ``PipelineValidationError`` before any remote call when the
        inputs are malformed. Any error that survives the retry budget is
        propagated; batches committed before it remain written.
        """

        site = require_site_url(site_url)
        start, end = validate_date_range(start_date, end_date)
        mapper = SearchRowMapper(self._dimensions)
        repository = RawEventRepository(db)

        pages_fetched = 0
        rows_fetched = 0
        rows_written = 0
        batches_committed = 0
        pending: list[RawEventInput] = []

        logger.info(
            "Ingestion started site=%s start=%s end=%s dimensions=%s",
            site,
            start.isoformat(),
            end.isoformat(),
            ",".join(self._dimensions),
        )

        for rows in self._iter_pages(
            site_url=site,
            start_date=start,
            end_date=end,
            dimensions=self._dimensions,
            search_type=search_type or self._search_type,
        ):
            pages_fetched += 1
            rows_fetched += len(rows)
            for row in rows:
                pending.append(mapper.to_raw_event(site, row, start))
                if len(pending) >= self._batch_size:
                    rows_written += self._commit_batch(db, repository, pending, site=site)
                    batches_committed += 1
                    pending = []

        if pending:
            rows_written += self._commit_batch(db, repository, pending, site=site)
            batches_committed += 1

        logger.info(
            "Ingestion completed site=%s start=%s end=%s pages=%s rows_fetched=%s rows_written=%s batches=%s",
            site,
            start.isoformat(),
            end.isoformat(),
            pages_fetched,
            rows_fetched,
            rows_written,
            batches_committed,
        )
        return IngestionSummary(
            site_url=site,
            start_date=start,
            end_date=end,
            pages_fetched=pages_fetched,
            rows_fetched=rows_fetched,
            rows_written=rows_written,
            batches_committed=batches_committed,
        )

    def _iter_pages(
        self,
        *,
        site_url: str,
        start_date: date,
        end_date: date,
        dimensions: tuple[str, ...],
        search_type: str | None,
    ):
        """
        Yield one list of rows per requested page (possibly empty). Stops
        after a page shorter than the row limit.
        """

        start_row = 0
        while True:
            request = SearchAnalyticsQuery(
                site_url=site_url,
                start_date=start_date,
                end_date=end_date,
                dimensions=dimensions,
                row_limit=self._row_limit,
                start_row=start_row,
                search_type=search_type,
            )
            rows = self._retry.run(
                partial(self._client.query, request),
                description=f"search_analytics_query site={site_url} start_row={start_row}",
            )
            yield rows
            if len(rows) < self._row_limit:
                return
            start_row += len(rows)

    def _commit_batch(
        self,
        db: Session,
        repository: RawEventRepository,
        batch: list[RawEventInput],
        *,
        site: str,
    ) -> int:
        def write() -> int:
            try:
                inserted = repository.bulk_insert(batch)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return inserted

        inserted = self._retry.run(write, description=f"raw_events_commit site={site} rows={len(batch)}")
        logger.debug("Committed raw event batch site=%s rows=%s", site, inserted)
        return inserted

    # ------------------------------------------------------------------
    # Daily totals
    # ------------------------------------------------------------------

    def ingest_daily_summary(
        self,
        *,
        db: Session,
        site_url: str,
        target_date: date | str,
    ) -> DailySummaryResult:
        """
        Store the API's own site-wide totals for one day. A day without rows
        still gets a zero-valued aggregate. An aggregate already built from
        raw events for the same (date, site) is left untouched so its
        country and device breakdowns survive.
        """

        site = require_site_url(site_url)
        day = parse_iso_date(target_date, field="target_date")

        rows: list[SearchAnalyticsRow] = []
        for page in self._iter_pages(
            site_url=site,
            start_date=day,
            end_date=day,
            dimensions=(DIMENSION_DATE,),
            search_type=self._search_type,
        ):
            rows.extend(page)

        total_clicks = sum(max(0, row.clicks) for row in rows)
        total_impressions = sum(max(0, row.impressions) for row in rows)
        weighted_position = sum(max(0.0, row.position) * max(0, row.impressions) for row in rows)
        totals = {
            "totalClicks": total_clicks,
            "totalImpressions": total_impressions,
            "averageCtr": total_clicks / max(total_impressions, 1),
            "averagePosition": weighted_position / max(total_impressions, 1),
        }

        repository = DailyAggregateRepository(db)
        aggregate_id = daily_aggregate_id(day, site)

        def write() -> bool:
            try:
                existing = repository.get(aggregate_id)
                if existing is not None and existing.source == AggregateSource.AGGREGATION:
                    return False
                repository.save(
                    target_date=day,
                    site_url=site,
                    totals=totals,
                    source=AggregateSource.DAILY_SUMMARY,
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return True

        written = self._retry.run(write, description=f"daily_summary_commit site={site} date={day.isoformat()}")
        if not written:
            logger.info(
                "Daily summary kept existing raw-event aggregate site=%s date=%s id=%s",
                site,
                day.isoformat(),
                aggregate_id,
            )
        elif not rows:
            logger.info("Daily summary had no rows site=%s date=%s; stored zero totals", site, day.isoformat())
        else:
            logger.info(
                "Daily summary stored site=%s date=%s clicks=%s impressions=%s",
                site,
                day.isoformat(),
                total_clicks,
                total_impressions,
            )

        return DailySummaryResult(
            site_url=site,
            date=day,
            aggregate_id=aggregate_id,
            total_clicks=total_clicks,
            total_impressions=total_impressions,
            had_rows=bool(rows),
            written=written,
        )

    # ------------------------------------------------------------------
    # 90-day page impression windows
    # ------------------------------------------------------------------

    def refresh_page_impression_windows(
        self,
        *,
        db: Session,
        site_url: str,
        today: date | None = None,
    ) -> ImpressionWindowSummary:
        """
        Compare page impressions over the last window (ending yesterday)
        with the window before it, fetched in fixed-size chunks, and store
        both totals on the page records.
        """

        site = require_site_url(site_url)
        today = today or datetime.now(timezone.utc).date()
        window = timedelta(days=self._impression_window_days)
        last_end = today - timedelta(days=1)
        last_start = last_end - window
        previous_end = last_start - timedelta(days=1)
        previous_start = previous_end - window

        last_totals, last_chunks = self._page_impressions(site, last_start, last_end)
        previous_totals, previous_chunks = self._page_impressions(site, previous_start, previous_end)

        rows = [
            (page, site, last_totals.get(page, 0), previous_totals.get(page, 0))
            for page in sorted(set(last_totals) | set(previous_totals))
        ]
        losing_pages = [page for page, _, last, previous in rows if last < previous]

        try:
            updated = PageRepository(db).update_impression_windows(
                rows,
                updated_at=datetime.now(timezone.utc),
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store impression windows site=%s", site)
            raise

        logger.info(
            "Impression windows refreshed site=%s pages=%s losing=%s chunks=%s",
            site,
            updated,
            len(losing_pages),
            last_chunks + previous_chunks,
        )
        return ImpressionWindowSummary(
            site_url=site,
            pages_updated=updated,
            last_window=(last_start, last_end),
            previous_window=(previous_start, previous_end),
            chunks_fetched=last_chunks + previous_chunks,
            losing_pages=losing_pages,
        )

    def _page_impressions(self, site_url: str, start_date: date, end_date: date) -> tuple[dict[str, int], int]:
        totals: dict[str, int] = defaultdict(int)
        chunks = 0
        chunk_start = start_date
        while chunk_start <= end_date:
            chunk_end = min(end_date, chunk_start + timedelta(days=self._impression_chunk_days - 1))
            for rows in self._iter_pages(
                site_url=site_url,
                start_date=chunk_start,
                end_date=chunk_end,
                dimensions=(DIMENSION_PAGE,),
                search_type=self._search_type,
            ):
                for row in rows:
                    if not row.keys or not row.keys[0]:
                        continue
                    totals[normalize_url(row.keys[0])] += max(0, row.impressions)
            chunks += 1
            chunk_start = chunk_end + timedelta(days=1)
        return dict(totals), chunks


@lru_cache(maxsize=1)
def get_ingestion_service() -> SearchAnalyticsIngestionService:
    """
    Build and cache the ingestion service with the Search Console connector.
    """

    search_settings = get_search_console_settings()
    ingestion_settings = get_ingestion_settings()
    return SearchAnalyticsIngestionService(
        client=SearchConsoleConnector(settings=search_settings),
        retry=RetryExecutor.from_settings(get_retry_settings()),
        batch_size=ingestion_settings.batch_size,
        row_limit=search_settings.row_limit,
        include_search_appearance=search_settings.include_search_appearance,
        search_type=search_settings.search_type,
        impression_chunk_days=ingestion_settings.impression_chunk_days,
        impression_window_days=ingestion_settings.impression_window_days,
    )
