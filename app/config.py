"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

# Search Console publishes data with a delay of roughly two days.
DEFAULT_DATA_LAG_DAYS = 2
MAX_WRITE_BATCH_SIZE = 500


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_list_env(name: str) -> tuple[str, ...]:
    """
    Read a comma-separated list, dropping blanks and duplicates (order kept).
    """

    raw_value = _get_optional_str_env(name)
    if raw_value is None:
        return ()
    items: list[str] = []
    for token in raw_value.split(","):
        token = token.strip()
        if token and token not in items:
            items.append(token)
    return tuple(items)


@dataclass(frozen=True)
class SearchConsoleSettings:
    """
    Search Analytics API connector settings.
    """

    credentials_file: str | None = None
    api_base_url: str = "https://searchconsole.googleapis.com/webmasters/v3"
    timeout_seconds: float = 60.0
    rate_limit_per_second: float = 5.0
    row_limit: int = 25000
    search_type: str | None = None
    include_search_appearance: bool = False
    data_lag_days: int = DEFAULT_DATA_LAG_DAYS
    sites: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RetrySettings:
    """
    Backoff settings for remote calls and batch commits.
    """

    max_attempts: int = 5
    base_delay_seconds: float = 1.0
    max_jitter_seconds: float = 1.0


@dataclass(frozen=True)
class IngestionSettings:
    """
    Raw event write settings.
    """

    batch_size: int = 450
    impression_chunk_days: int = 14
    impression_window_days: int = 90


@dataclass(frozen=True)
class TieringSettings:
    """
    Page tiering window settings.
    """

    recent_window_days: int = 28
    baseline_window_days: int = 28
    min_trend_points: int = 7


@dataclass(frozen=True)
class SmartMetricsSettings:
    """
    Site-wide smart metric settings.
    """

    history_days: int = 60
    min_trend_days: int = 7
    min_health_days: int = 14
    anomaly_window_days: int = 28


@dataclass(frozen=True)
class CronSettings:
    """
    Scheduler trigger authentication and run lease settings.
    """

    shared_secret: str | None = None
    expected_user_agent: str = "vercel-cron/1.0"
    lease_ttl_seconds: int = 3600


@dataclass(frozen=True)
class SchedulerSettings:
    """
    In-process APScheduler settings.
    """

    enabled: bool = True


@lru_cache(maxsize=1)
def get_search_console_settings() -> SearchConsoleSettings:
    """
    Return Search Analytics connector settings from environment variables.
    """

    return SearchConsoleSettings(
        credentials_file=_get_optional_str_env("SEARCH_CONSOLE_CREDENTIALS_FILE")
        or _get_optional_str_env("GOOGLE_APPLICATION_CREDENTIALS"),
        api_base_url=_get_str_env(
            "SEARCH_CONSOLE_API_BASE_URL",
            "https://searchconsole.googleapis.com/webmasters/v3",
        ).rstrip("/"),
        timeout_seconds=max(1.0, _get_float_env("SEARCH_CONSOLE_TIMEOUT_SECONDS", 60.0)),
        rate_limit_per_second=max(0.1, _get_float_env("SEARCH_CONSOLE_RATE_LIMIT_PER_SECOND", 5.0)),
        row_limit=min(25000, max(1, _get_int_env("SEARCH_CONSOLE_ROW_LIMIT", 25000))),
        search_type=_get_optional_str_env("SEARCH_CONSOLE_SEARCH_TYPE"),
        include_search_appearance=_get_bool_env("SEARCH_CONSOLE_INCLUDE_SEARCH_APPEARANCE", False),
        data_lag_days=max(0, _get_int_env("SEARCH_CONSOLE_DATA_LAG_DAYS", DEFAULT_DATA_LAG_DAYS)),
        sites=_get_list_env("SEARCH_CONSOLE_SITES"),
    )


@lru_cache(maxsize=1)
def get_retry_settings() -> RetrySettings:
    return RetrySettings(
        max_attempts=max(1, _get_int_env("SEARCH_RETRY_MAX_ATTEMPTS", 5)),
        base_delay_seconds=max(0.0, _get_float_env("SEARCH_RETRY_BASE_DELAY_SECONDS", 1.0)),
        max_jitter_seconds=max(0.0, _get_float_env("SEARCH_RETRY_MAX_JITTER_SECONDS", 1.0)),
    )


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return raw event ingestion settings.

    The batch size is capped at 500 writes, the largest batch the pipeline
    commits in one go.
    """

    return IngestionSettings(
        batch_size=min(MAX_WRITE_BATCH_SIZE, max(1, _get_int_env("INGEST_BATCH_SIZE", 450))),
        impression_chunk_days=max(1, _get_int_env("INGEST_IMPRESSION_CHUNK_DAYS", 14)),
        impression_window_days=max(1, _get_int_env("INGEST_IMPRESSION_WINDOW_DAYS", 90)),
    )


@lru_cache(maxsize=1)
def get_tiering_settings() -> TieringSettings:
    return TieringSettings(
        recent_window_days=max(1, _get_int_env("TIERING_RECENT_WINDOW_DAYS", 28)),
        baseline_window_days=max(1, _get_int_env("TIERING_BASELINE_WINDOW_DAYS", 28)),
        min_trend_points=max(2, _get_int_env("TIERING_MIN_TREND_POINTS", 7)),
    )


@lru_cache(maxsize=1)
def get_smart_metrics_settings() -> SmartMetricsSettings:
    return SmartMetricsSettings(
        history_days=max(1, _get_int_env("SMART_METRICS_HISTORY_DAYS", 60)),
        min_trend_days=max(2, _get_int_env("SMART_METRICS_MIN_TREND_DAYS", 7)),
        min_health_days=max(1, _get_int_env("SMART_METRICS_MIN_HEALTH_DAYS", 14)),
        anomaly_window_days=max(7, _get_int_env("SMART_METRICS_ANOMALY_WINDOW_DAYS", 28)),
    )


@lru_cache(maxsize=1)
def get_cron_settings() -> CronSettings:
    """
    Return trigger settings. A missing shared secret is reported by the
    trigger itself rather than here.
    """

    return CronSettings(
        shared_secret=_get_optional_str_env("ADMIN_SHARED_SECRET"),
        expected_user_agent=_get_str_env("CRON_USER_AGENT", "vercel-cron/1.0"),
        lease_ttl_seconds=max(1, _get_int_env("CRON_LEASE_TTL_SECONDS", 3600)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(enabled=_get_bool_env("SCHEDULER_ENABLED", True))
