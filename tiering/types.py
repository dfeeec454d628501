"""
tiering/types.py

Value objects passed between the tiering stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from app.domain.pipeline import DailyPageMetrics


class Tier:
    CHAMPIONS = "Champions"
    RISING_STARS = "Rising Stars"
    CASH_COWS = "Cash Cows"
    HIDDEN_GEMS = "Hidden Gems"
    QUICK_WINS = "Quick Wins"
    DECLINING = "Declining"
    AT_RISK = "At Risk"
    PROBLEM_PAGES = "Problem Pages"
    NEW_LOW_DATA = "New/Low Data"

    ALL: tuple[str, ...] = (
        CHAMPIONS,
        RISING_STARS,
        CASH_COWS,
        HIDDEN_GEMS,
        QUICK_WINS,
        DECLINING,
        AT_RISK,
        PROBLEM_PAGES,
        NEW_LOW_DATA,
    )


class Priority:
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    MONITOR = "Monitor"

    ALL: tuple[str, ...] = (CRITICAL, HIGH, MEDIUM, LOW, MONITOR)


def empty_tier_distribution() -> dict[str, int]:
    return {tier: 0 for tier in Tier.ALL}


def empty_priority_breakdown() -> dict[str, int]:
    return {priority.lower(): 0 for priority in Priority.ALL}


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Metrics for one page over one aggregate window.

    ``data_points`` holds daily clicks, oldest first, for the days that had
    data. ``average_position`` is the plain mean of the daily positions.
    """

    total_clicks: int = 0
    total_impressions: int = 0
    average_ctr: float = 0.0
    average_position: float = 0.0
    data_points: tuple[int, ...] = field(default_factory=tuple)
    period: str = ""

    @classmethod
    def from_daily(
        cls,
        rows: Sequence[DailyPageMetrics],
        start_date: date,
        end_date: date,
    ) -> "PerformanceMetrics":
        period = f"{start_date.isoformat()} to {end_date.isoformat()}"
        if not rows:
            return cls(period=period)

        total_clicks = sum(row.clicks for row in rows)
        total_impressions = sum(row.impressions for row in rows)
        return cls(
            total_clicks=total_clicks,
            total_impressions=total_impressions,
            average_ctr=total_clicks / total_impressions if total_impressions > 0 else 0.0,
            average_position=sum(row.average_position for row in rows) / len(rows),
            data_points=tuple(row.clicks for row in rows),
            period=period,
        )

    def as_dict(self) -> dict:
        return {
            "totalClicks": self.total_clicks,
            "totalImpressions": self.total_impressions,
            "averageCtr": self.average_ctr,
            "averagePosition": self.average_position,
            "dataPoints": list(self.data_points),
            "period": self.period,
        }


@dataclass(frozen=True)
class PerformanceKPIs:
    """
    Relative change of the recent window against the baseline; every delta
    is 0 when the baseline value is 0.
    """

    clicks_change: float
    impressions_change: float
    ctr_change: float
    position_change: float
    trend_strength: float

    def as_dict(self) -> dict:
        return {
            "clicksChange": self.clicks_change,
            "impressionsChange": self.impressions_change,
            "ctrChange": self.ctr_change,
            "positionChange": self.position_change,
            "trendStrength": self.trend_strength,
        }


@dataclass(frozen=True)
class TierAnalysis:
    tier: str
    score: float
    priority: str
    reasoning: str
    marketing_action: str
    technical_action: str
    expected_impact: str
    timeframe: str
    confidence: float
    kpis: PerformanceKPIs
