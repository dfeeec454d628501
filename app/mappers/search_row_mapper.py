"""
app/mappers/search_row_mapper.py

Maps Search Analytics response rows onto raw event inputs.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from app.connectors.base import SearchAnalyticsRequestError
from app.domain.search_analytics import RawEventInput, SearchAnalyticsRow
from app.mappers.url_normalizer import normalize_url

DIMENSION_DATE = "date"
DIMENSION_QUERY = "query"
DIMENSION_PAGE = "page"
DIMENSION_DEVICE = "device"
DIMENSION_COUNTRY = "country"
DIMENSION_SEARCH_APPEARANCE = "searchAppearance"

RAW_EVENT_DIMENSIONS: tuple[str, ...] = (
    DIMENSION_DATE,
    DIMENSION_QUERY,
    DIMENSION_PAGE,
    DIMENSION_DEVICE,
    DIMENSION_COUNTRY,
)


def raw_event_dimensions(include_search_appearance: bool) -> tuple[str, ...]:
    if include_search_appearance:
        return RAW_EVENT_DIMENSIONS + (DIMENSION_SEARCH_APPEARANCE,)
    return RAW_EVENT_DIMENSIONS


class SearchRowMapper:
    """
    Reads row ``keys`` by the position of each requested dimension.
    """

    def __init__(self, dimensions: Sequence[str]) -> None:
        self._index = {name: position for position, name in enumerate(dimensions)}

    def _key(self, row: SearchAnalyticsRow, dimension: str) -> str | None:
        position = self._index.get(dimension)
        if position is None or position >= len(row.keys):
            return None
        return row.keys[position]

    def to_raw_event(self, site_url: str, row: SearchAnalyticsRow, fallback_date: date) -> RawEventInput:
        """
        Raises ``SearchAnalyticsRequestError`` when the API returned a date
        key that is not ``YYYY-MM-DD``.
        """

        raw_date = self._key(row, DIMENSION_DATE)
        page = self._key(row, DIMENSION_PAGE) or ""
        try:
            event_date = date.fromisoformat(raw_date) if raw_date else fallback_date
        except ValueError as exc:
            raise SearchAnalyticsRequestError(
                f"Search Analytics API returned a malformed date key {raw_date!r} for site {site_url}."
            ) from exc
        return RawEventInput(
            site_url=site_url,
            date=event_date,
            query=self._key(row, DIMENSION_QUERY) or "",
            page=normalize_url(page) if page else page,
            device=self._key(row, DIMENSION_DEVICE) or "",
            country=self._key(row, DIMENSION_COUNTRY) or "",
            search_appearance=self._key(row, DIMENSION_SEARCH_APPEARANCE),
            clicks=max(0, row.clicks),
            impressions=max(0, row.impressions),
            position=max(0.0, row.position),
        )
