"""
tests/test_mappers.py

Pytest unit tests for URL normalization, page identifiers, row mapping and
pipeline input validation.

Coverage
--------
- normalize_url: trailing slash, host lower-casing, utm_* stripping with
  other parameters kept in order, fragments, invalid input, idempotence
- sanitize_page_id / unsanitize_page_id / page_title_from_url
- record ids: deterministic, distinct for sites whose slugs coincide
- SearchRowMapper: key order follows the requested dimensions; a malformed
  date key from the API is a remote error, not a validation error
- pipeline_validator: missing site, malformed dates, inverted ranges,
  threshold bounds
"""

from __future__ import annotations

import hashlib
from datetime import date

import pytest

from app.connectors.base import SearchAnalyticsRequestError
from app.domain.document_ids import daily_aggregate_id, dashboard_stats_id, run_lease_id, site_key, site_slug
from app.mappers.search_row_mapper import RAW_EVENT_DIMENSIONS, SearchRowMapper, raw_event_dimensions
from app.mappers.url_normalizer import normalize_url, original_url_for, sanitize_page_id, unsanitize_page_id
from app.repositories.page_repository import page_title_from_url
from app.validators.pipeline_validator import (
    PipelineValidationError,
    parse_iso_date,
    require_site_url,
    validate_date_range,
    validate_threshold,
)
from conftest import make_row


# ---------------------------------------------------------------------------
# normalize_url
# ---------------------------------------------------------------------------


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://example.com/path", "https://example.com/path/"),
            ("https://example.com/path/", "https://example.com/path/"),
            ("https://example.com", "https://example.com/"),
            ("https://EXAMPLE.COM/path", "https://example.com/path/"),
            ("https://example.com/path?utm_source=google", "https://example.com/path/"),
            (
                "https://example.com/path?utm_source=google&utm_medium=cpc&utm_campaign=summer_sale",
                "https://example.com/path/",
            ),
            ("https://example.com/path?id=123&utm_source=google&lang=en", "https://example.com/path/?id=123&lang=en"),
            ("https://example.com?utm_source=google", "https://example.com/"),
            (
                "https://SUB.EXAMPLE.co.uk/Some/Path?utm_campaign=abc&id=456&utm_source=xyz#hash",
                "https://sub.example.co.uk/Some/Path/?id=456#hash",
            ),
            ("https://example.com/path?id=123", "https://example.com/path/?id=123"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_url(raw) == expected

    def test_invalid_url_is_returned_unchanged(self) -> None:
        assert normalize_url("not-a-url") == "not-a-url"

    @pytest.mark.parametrize(
        "raw",
        [
            "https://SUB.EXAMPLE.co.uk/Some/Path?utm_campaign=abc&id=456#hash",
            "http://example.com:8080/a/b?x=1",
            "https://example.com",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize_url(raw)
        assert normalize_url(once) == once

    def test_port_is_kept(self) -> None:
        assert normalize_url("http://Example.com:8080/a") == "http://example.com:8080/a/"


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestPageIdentifiers:
    def test_sanitize_removes_protocol_and_delimiters(self) -> None:
        assert sanitize_page_id("https://example.com/blog/post/") == "example.com__blog__post"
        assert "/" not in sanitize_page_id("https://example.com/a/?id=1&x=2#top")
        assert sanitize_page_id("") == ""

    def test_unsanitize_restores_display_url(self) -> None:
        assert unsanitize_page_id("example.com__blog__post") == "https://example.com/blog/post"

    def test_original_url_prefers_stored_values(self) -> None:
        assert original_url_for("example.com__a", "https://example.com/a/?x=1") == "https://example.com/a/?x=1"
        assert original_url_for("example.com__a", None, "https://example.com/a/") == "https://example.com/a/"
        assert original_url_for("example.com__a") == "https://example.com/a"

    def test_page_title_from_url(self) -> None:
        assert page_title_from_url("https://example.com/blog/my-post/") == "my-post"
        assert page_title_from_url("https://example.com/") == "https://example.com/"

    def test_record_ids_are_deterministic(self) -> None:
        digest = hashlib.sha1(b"sc-domain:example.com").hexdigest()[:10]
        assert site_slug("sc-domain:Example.com") == "sc_domain_example_com"
        assert site_key("sc-domain:example.com") == f"sc_domain_example_com_{digest}"
        assert daily_aggregate_id(date(2024, 3, 5), "sc-domain:example.com") == f"daily_20240305_sc_domain_example_com_{digest}"
        assert run_lease_id("ingest", " sc-domain:example.com ") == f"ingest:sc_domain_example_com_{digest}"
        assert dashboard_stats_id("https://example.com/").startswith("latest_https_example_com_")

    @pytest.mark.parametrize(("first", "second"), [("https://a-b.com/", "https://a.b.com/"), ("https://a_b.com/", "https://a-b.com/"), ("https://x.com/", "https://x.com")])
    def test_sites_with_same_slug_get_distinct_ids(self, first: str, second: str) -> None:
        assert daily_aggregate_id(date(2024, 3, 1), first) != daily_aggregate_id(date(2024, 3, 1), second)
        assert dashboard_stats_id(first) != dashboard_stats_id(second)
        assert run_lease_id("aggregate", first) != run_lease_id("aggregate", second)


# ---------------------------------------------------------------------------
# SearchRowMapper
# ---------------------------------------------------------------------------


class TestSearchRowMapper:
    def test_dimensions_without_search_appearance_by_default(self) -> None:
        assert raw_event_dimensions(False) == RAW_EVENT_DIMENSIONS
        assert raw_event_dimensions(True)[-1] == "searchAppearance"

    def test_maps_keys_by_requested_order(self) -> None:
        mapper = SearchRowMapper(RAW_EVENT_DIMENSIONS)
        row = make_row("2024-01-02", "shoes", "https://EXAMPLE.com/p?utm_source=x", "MOBILE", "gbr", clicks=2, impressions=30, position=3.5)

        event = mapper.to_raw_event("sc-domain:example.com", row, date(2024, 1, 1))

        assert event.date == date(2024, 1, 2)
        assert event.query == "shoes"
        assert event.page == "https://example.com/p/"
        assert event.device == "MOBILE"
        assert event.country == "gbr"
        assert event.search_appearance is None
        assert (event.clicks, event.impressions, event.position) == (2, 30, 3.5)

    def test_missing_date_key_falls_back(self) -> None:
        mapper = SearchRowMapper(("page",))
        event = mapper.to_raw_event("site", make_row("https://example.com/a/"), date(2024, 1, 9))
        assert event.date == date(2024, 1, 9)
        assert event.query == ""

    def test_malformed_date_key_is_a_remote_error(self) -> None:
        mapper = SearchRowMapper(RAW_EVENT_DIMENSIONS)
        row = make_row("01/02/2024", "shoes", "https://example.com/p/", "MOBILE", "gbr")

        with pytest.raises(SearchAnalyticsRequestError, match="01/02/2024") as excinfo:
            mapper.to_raw_event("sc-domain:example.com", row, date(2024, 1, 1))
        assert not isinstance(excinfo.value, ValueError)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestPipelineValidator:
    @pytest.mark.parametrize("site", [None, "", "   "])
    def test_site_is_required(self, site) -> None:
        with pytest.raises(PipelineValidationError) as excinfo:
            require_site_url(site)
        assert excinfo.value.errors[0].code == "site_url_missing"

    @pytest.mark.parametrize("raw", ["2024-1-5", "20240105", "2024-13-01", "yesterday"])
    def test_malformed_dates(self, raw: str) -> None:
        with pytest.raises(PipelineValidationError) as excinfo:
            parse_iso_date(raw, field="start_date")
        assert excinfo.value.errors[0].code == "date_malformed"
        assert excinfo.value.errors[0].field == "start_date"

    def test_inverted_range(self) -> None:
        with pytest.raises(PipelineValidationError) as excinfo:
            validate_date_range("2024-02-01", "2024-01-01")
        assert excinfo.value.to_dict()["errors"][0]["code"] == "date_range_inverted"

    def test_single_day_range_is_valid(self) -> None:
        assert validate_date_range("2024-01-01", date(2024, 1, 1)) == (date(2024, 1, 1), date(2024, 1, 1))

    @pytest.mark.parametrize("value", [None, -0.1, 1.5])
    def test_threshold_bounds(self, value) -> None:
        with pytest.raises(PipelineValidationError):
            validate_threshold(value)

    def test_threshold_accepts_fraction(self) -> None:
        assert validate_threshold(0.25) == 0.25
