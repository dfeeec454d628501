"""
tests/conftest.py

Shared fixtures: an in-memory SQLite database with every model created,
a scripted Search Analytics client and a retry executor that never sleeps.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (registers every table on Base.metadata)
from app.connectors.base import BaseSearchAnalyticsClient, RetryExecutor
from app.domain.search_analytics import SearchAnalyticsQuery, SearchAnalyticsRow
from db.base import Base
from db.models.raw_event import RawAnalyticsEvent
from db.session import build_session_factory

SITE = "sc-domain:example.com"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def add_events(session: Session) -> Callable[..., None]:
    """
    Insert raw events from dicts; omitted columns get neutral defaults.
    """

    def _add(*events: dict) -> None:
        for event in events:
            row = {
                "site_url": SITE,
                "query": "q",
                "page": "https://example.com/a/",
                "device": "DESKTOP",
                "country": "usa",
                "search_appearance": None,
                "clicks": 0,
                "impressions": 0,
                "position": 0.0,
            }
            row.update(event)
            session.add(RawAnalyticsEvent(**row))
        session.commit()

    return _add


# ---------------------------------------------------------------------------
# Search Analytics client
# ---------------------------------------------------------------------------


class FakeSearchClient(BaseSearchAnalyticsClient):
    """
    Records every request. ``responder`` maps a request to its rows (or
    raises); without one, queued ``pages`` are returned in order and an
    exhausted queue answers with no rows.
    """

    def __init__(
        self,
        pages: list[list[SearchAnalyticsRow]] | None = None,
        responder: Callable[[SearchAnalyticsQuery], list[SearchAnalyticsRow]] | None = None,
    ) -> None:
        self.pages = list(pages or [])
        self.responder = responder
        self.requests: list[SearchAnalyticsQuery] = []

    def query(self, request: SearchAnalyticsQuery) -> list[SearchAnalyticsRow]:
        self.requests.append(request)
        if self.responder is not None:
            return self.responder(request)
        if not self.pages:
            return []
        return self.pages.pop(0)


def make_row(
    *keys: str,
    clicks: int = 1,
    impressions: int = 10,
    ctr: float = 0.1,
    position: float = 5.0,
) -> SearchAnalyticsRow:
    return SearchAnalyticsRow(keys=tuple(keys), clicks=clicks, impressions=impressions, ctr=ctr, position=position)


def event_row(day: date, page: str, *, clicks: int = 1, impressions: int = 10, position: float = 5.0) -> SearchAnalyticsRow:
    return make_row(day.isoformat(), "query", page, "DESKTOP", "usa", clicks=clicks, impressions=impressions, position=position)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def retry(sleeps: list[float]) -> RetryExecutor:
    return RetryExecutor(
        max_attempts=3,
        base_delay_seconds=1.0,
        max_jitter_seconds=0.0,
        sleep=sleeps.append,
        jitter=lambda low, high: 0.0,
    )
