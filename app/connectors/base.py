"""
app/connectors/base.py

Search Analytics client abstraction and the shared retry mechanics.
"""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TypeVar

from app.config import RetrySettings
from app.domain.search_analytics import SearchAnalyticsQuery, SearchAnalyticsRow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SearchAnalyticsRequestError(RuntimeError):
    """
    Raised when the Search Analytics API rejects or fails a request.
    """

    def __init__(self, message: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class RetryExecutor:
    """
    Runs an operation with bounded exponential backoff and jitter.

    After the k-th failed attempt (1-based) the executor sleeps for::

        2**k * base_delay_seconds + uniform(0, max_jitter_seconds)

    and tries again. Every exception is retried the same way; once
    ``max_attempts`` attempts have failed the last exception is re-raised
    unchanged.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        base_delay_seconds: float = 1.0,
        max_jitter_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._base_delay_seconds = base_delay_seconds
        self._max_jitter_seconds = max_jitter_seconds
        self._sleep = sleep
        self._jitter = jitter

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryExecutor":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
            max_jitter_seconds=settings.max_jitter_seconds,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_seconds(self, attempt: int) -> float:
        return (2**attempt) * self._base_delay_seconds + self._jitter(0.0, self._max_jitter_seconds)

    def run(self, operation: Callable[[], T], *, description: str = "operation") -> T:
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return operation()
            except Exception as exc:
                last_error = exc
                if attempt >= self._max_attempts:
                    break

                wait_seconds = self.backoff_seconds(attempt)
                logger.warning(
                    "Retrying operation=%s attempt=%s/%s wait_seconds=%.2f error=%s",
                    description,
                    attempt,
                    self._max_attempts,
                    wait_seconds,
                    exc,
                )
                self._sleep(wait_seconds)

        logger.error(
            "Retry exhausted operation=%s attempts=%s error=%s",
            description,
            self._max_attempts,
            last_error,
        )
        assert last_error is not None
        raise last_error


class BaseSearchAnalyticsClient(ABC):
    """
    Client interface for the search-performance query API.
    """

    @abstractmethod
    def query(self, request: SearchAnalyticsQuery) -> list[SearchAnalyticsRow]:
        """
        Execute one page request and return its rows (empty when none).
        """

    @staticmethod
    def parse_rows(payload: dict) -> list[SearchAnalyticsRow]:
        """
        Convert a raw API response into rows. A missing ``rows`` key means
        the query matched nothing.
        """

        rows: list[SearchAnalyticsRow] = []
        for item in payload.get("rows") or []:
            rows.append(
                SearchAnalyticsRow(
                    keys=tuple(str(key) for key in item.get("keys") or ()),
                    clicks=int(item.get("clicks") or 0),
                    impressions=int(item.get("impressions") or 0),
                    ctr=float(item.get("ctr") or 0.0),
                    position=float(item.get("position") or 0.0),
                )
            )
        return rows
