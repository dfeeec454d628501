"""
app/mappers package marker.
"""

from app.mappers.search_row_mapper import RAW_EVENT_DIMENSIONS, SearchRowMapper, raw_event_dimensions
from app.mappers.url_normalizer import (
    normalize_url,
    original_url_for,
    sanitize_page_id,
    unsanitize_page_id,
)

__all__ = [
    "RAW_EVENT_DIMENSIONS",
    "SearchRowMapper",
    "normalize_url",
    "original_url_for",
    "raw_event_dimensions",
    "sanitize_page_id",
    "unsanitize_page_id",
]
