"""
app/domain/search_analytics.py

Domain models for Search Analytics retrieval and ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class SearchAnalyticsQuery:
    """
    One page request against the Search Analytics query API.
    """

    site_url: str
    start_date: date
    end_date: date
    dimensions: tuple[str, ...]
    row_limit: int
    start_row: int = 0
    search_type: str | None = None

    def to_body(self) -> dict:
        body: dict = {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "dimensions": list(self.dimensions),
            "rowLimit": self.row_limit,
            "startRow": self.start_row,
        }
        if self.search_type:
            body["type"] = self.search_type
        return body


@dataclass(frozen=True)
class SearchAnalyticsRow:
    """
    One response row; ``keys`` follow the requested dimension order.
    """

    keys: tuple[str, ...]
    clicks: int
    impressions: int
    ctr: float
    position: float


@dataclass(frozen=True)
class RawEventInput:
    """
    A normalized row ready to be appended to ``raw_events``.
    """

    site_url: str
    date: date
    query: str
    page: str
    device: str
    country: str
    search_appearance: str | None
    clicks: int
    impressions: int
    position: float


@dataclass(frozen=True)
class IngestionSummary:
    """
    Outcome of one ranged ingestion run.
    """

    site_url: str
    start_date: date
    end_date: date
    pages_fetched: int
    rows_fetched: int
    rows_written: int
    batches_committed: int


@dataclass(frozen=True)
class DailySummaryResult:
    """
    Outcome of a single-dimension daily totals run. ``written`` is False
    when an aggregate built from raw events already held the id and was
    kept as is.
    """

    site_url: str
    date: date
    aggregate_id: str
    total_clicks: int
    total_impressions: int
    had_rows: bool
    written: bool = True


@dataclass(frozen=True)
class ImpressionWindowSummary:
    """
    Outcome of the 90-day vs previous 90-day page impression comparison.
    """

    site_url: str
    pages_updated: int
    last_window: tuple[date, date]
    previous_window: tuple[date, date]
    chunks_fetched: int = 0
    losing_pages: list[str] = field(default_factory=list)
