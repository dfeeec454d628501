"""
app/domain/pipeline.py

Run reports shared by the pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Processed(Generic[T]):
    """
    A per-item success carrying the computed value.
    """

    key: str
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Skipped:
    """
    A per-item failure; the item is left untouched by the run.
    """

    key: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class AggregationResult:
    site_url: str
    date: date
    aggregate_id: str
    events_read: int
    countries: int
    devices: int


@dataclass(frozen=True)
class PagePopulationResult:
    site_url: str
    pages_seen: int
    pages_created: int


@dataclass(frozen=True)
class PageLoss:
    page: str
    previous_clicks: int
    current_clicks: int
    change_percentage: float


@dataclass
class TieringRunReport:
    """
    ``processed`` plus ``skipped`` always equals the number of pages loaded.
    """

    run_at: datetime
    recent_period: str
    baseline_period: str
    outcomes: list[Any] = field(default_factory=list)
    tier_distribution: dict[str, int] = field(default_factory=dict)
    priority_breakdown: dict[str, int] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def skipped(self) -> list[Skipped]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


@dataclass(frozen=True)
class DailyPageMetrics:
    """
    One page's totals for one day; position is impression-weighted.
    """

    date: date
    clicks: int
    impressions: int
    average_position: float


@dataclass(frozen=True)
class SmartMetricsReport:
    site_url: str
    status: str
    days_of_history: int
    metrics: dict[str, Any] = field(default_factory=dict)
    health_score: dict[str, Any] | None = None
