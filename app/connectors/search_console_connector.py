"""
app/connectors/search_console_connector.py

Google Search Console Search Analytics connector.
"""

from __future__ import annotations

import logging
import time
from urllib.parse import quote

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from app.config import SearchConsoleSettings
from app.connectors.base import BaseSearchAnalyticsClient, SearchAnalyticsRequestError
from app.domain.search_analytics import SearchAnalyticsQuery, SearchAnalyticsRow

logger = logging.getLogger(__name__)

SEARCH_CONSOLE_SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]


class SearchConsoleConnector(BaseSearchAnalyticsClient):
    """
    Issues Search Analytics queries over an authorised ``requests`` session.

    One call is one HTTP request: retries belong to the caller's
    :class:`~app.connectors.base.RetryExecutor`. The connector only enforces
    a minimum interval between consecutive requests.
    """

    def __init__(
        self,
        *,
        settings: SearchConsoleSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._min_request_interval_seconds = (
            1.0 / settings.rate_limit_per_second if settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    def _get_session(self) -> requests.Session:
        if self._session is None:
            credentials_file = self._settings.credentials_file
            if not credentials_file:
                raise SearchAnalyticsRequestError(
                    "Search Console credentials are not configured. "
                    "Set SEARCH_CONSOLE_CREDENTIALS_FILE."
                )
            credentials = service_account.Credentials.from_service_account_file(
                credentials_file,
                scopes=SEARCH_CONSOLE_SCOPES,
            )
            self._session = AuthorizedSession(credentials)
        return self._session

    def query_url(self, site_url: str) -> str:
        return f"{self._settings.api_base_url}/sites/{quote(site_url, safe='')}/searchAnalytics/query"

    def query(self, request: SearchAnalyticsQuery) -> list[SearchAnalyticsRow]:
        url = self.query_url(request.site_url)
        self._apply_rate_limit()
        try:
            response = self._get_session().post(
                url,
                json=request.to_body(),
                timeout=self._settings.timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise SearchAnalyticsRequestError(
                f"Search Analytics request failed site={request.site_url}: {exc}"
            ) from exc

        if response.status_code >= 400:
            message, reason = self._error_details(response)
            logger.error(
                "Search Analytics request rejected site=%s status=%s reason=%s message=%s",
                request.site_url,
                response.status_code,
                reason,
                message,
            )
            raise SearchAnalyticsRequestError(
                f"Search Analytics request failed status={response.status_code}: {message}",
                status_code=response.status_code,
                reason=reason,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchAnalyticsRequestError("Search Analytics response was not valid JSON.") from exc

        rows = self.parse_rows(payload if isinstance(payload, dict) else {})
        logger.debug(
            "Search Analytics page site=%s start_row=%s rows=%s",
            request.site_url,
            request.start_row,
            len(rows),
        )
        return rows

    @staticmethod
    def _error_details(response: requests.Response) -> tuple[str, str | None]:
        """
        Pull the message and status string (e.g. ``RESOURCE_EXHAUSTED``) out
        of a Google API error body, falling back to the raw text.
        """

        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return response.text[:500], None
        if not isinstance(error, dict):
            return str(error), None
        return str(error.get("message") or response.text[:500]), error.get("status")

    def _apply_rate_limit(self) -> None:
        if self._min_request_interval_seconds <= 0:
            return

        now = time.monotonic()
        remaining = self._min_request_interval_seconds - (now - self._last_request_monotonic)
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()
