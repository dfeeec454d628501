"""
app/repositories/page_repository.py

DB access for tracked pages.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.mappers.url_normalizer import sanitize_page_id
from db.models.page_record import PageRecord

# Columns written by a tiering run.
TIERING_FIELDS = (
    "performance_tier",
    "performance_score",
    "performance_priority",
    "performance_reasoning",
    "marketing_action",
    "technical_action",
    "expected_impact",
    "timeframe",
    "confidence",
    "metrics",
    "last_tiering_run",
)


class PageRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, page_id: str) -> PageRecord | None:
        return self._session.get(PageRecord, page_id)

    def list_pages(self, site_url: str | None = None) -> list[PageRecord]:
        stmt = select(PageRecord).order_by(PageRecord.id)
        if site_url is not None:
            stmt = stmt.where(PageRecord.site_url == site_url)
        return list(self._session.scalars(stmt))

    def distinct_sites(self) -> list[str]:
        stmt = select(PageRecord.site_url).distinct().order_by(PageRecord.site_url)
        return list(self._session.scalars(stmt))

    def ensure_page(
        self,
        *,
        url: str,
        site_url: str,
        title: str | None = None,
        original_url: str | None = None,
    ) -> tuple[PageRecord, bool]:
        """
        Return the page for *url*, creating it when missing.

        Existing pages keep their tiering fields; only the URL, site and a
        missing title are refreshed.
        """

        page_id = sanitize_page_id(url)
        page = self.get(page_id)
        if page is None:
            page = PageRecord(
                id=page_id,
                url=url,
                original_url=original_url or url,
                site_url=site_url,
                title=title,
            )
            self._session.add(page)
            return page, True

        page.url = url
        page.site_url = site_url
        if original_url and not page.original_url:
            page.original_url = original_url
        if title and not page.title:
            page.title = title
        return page, False

    def apply_tiering(self, page_id: str, fields: dict[str, Any]) -> PageRecord | None:
        page = self.get(page_id)
        if page is None:
            return None
        for name in TIERING_FIELDS:
            if name in fields:
                setattr(page, name, fields[name])
        return page

    def list_tiered(
        self,
        *,
        since: datetime,
        tier: str | None = None,
        priority: str | None = None,
        limit: int | None = None,
    ) -> list[PageRecord]:
        stmt = select(PageRecord).where(PageRecord.last_tiering_run >= since)
        if tier is not None:
            stmt = stmt.where(PageRecord.performance_tier == tier)
        if priority is not None:
            stmt = stmt.where(PageRecord.performance_priority == priority)
        stmt = stmt.order_by(PageRecord.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.scalars(stmt))

    def update_impression_windows(
        self,
        rows: Sequence[tuple[str, str, int, int]],
        *,
        updated_at: datetime,
    ) -> int:
        """
        ``rows`` holds ``(normalized_url, site_url, last_90, previous_90)``.
        """

        for url, site_url, last_window, previous_window in rows:
            page, _ = self.ensure_page(url=url, site_url=site_url, title=page_title_from_url(url))
            page.last90days_impressions = last_window
            page.prev90days_impressions = previous_window
            page.impressions_updated_at = updated_at
        return len(rows)


def page_title_from_url(url: str) -> str:
    """
    Placeholder title: the last non-empty path segment, or the URL itself.
    """

    segments = [segment for segment in url.split("?", 1)[0].split("#", 1)[0].split("/") if segment]
    if len(segments) <= 2:
        return url
    return segments[-1]
