"""
tiering/summary.py

Roll-up of a tiering run: priority breakdown, key insights and
portfolio-level recommendations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from tiering.types import Priority, Tier, empty_priority_breakdown

INSIGHT_RISK = "risk"
INSIGHT_OPPORTUNITY = "opportunity"
INSIGHT_SUCCESS = "success"

QUICK_WINS_BATCH_MIN_PAGES = 3

# (tier, insight type, message, impact), in display order.
_INSIGHT_RULES: tuple[tuple[str, str, str, str], ...] = (
    (Tier.AT_RISK, INSIGHT_RISK, "Pages experiencing significant traffic decline", "High revenue impact if not addressed"),
    (Tier.QUICK_WINS, INSIGHT_OPPORTUNITY, "Easy optimization opportunities available", "Fast ROI with title/meta improvements"),
    (Tier.CHAMPIONS, INSIGHT_SUCCESS, "High-performing pages to replicate", "Template for scaling success"),
    (Tier.RISING_STARS, INSIGHT_OPPORTUNITY, "Growing pages to amplify", "Momentum building opportunities"),
)


@dataclass(frozen=True)
class KeyInsight:
    type: str
    message: str
    count: int
    impact: str

    def as_dict(self) -> dict:
        return {"type": self.type, "message": self.message, "count": self.count, "impact": self.impact}


@dataclass(frozen=True)
class PortfolioRecommendation:
    priority: str
    action: str
    pages_affected: int
    estimated_impact: str
    timeframe: str

    def as_dict(self) -> dict:
        return {
            "priority": self.priority,
            "action": self.action,
            "pagesAffected": self.pages_affected,
            "estimatedImpact": self.estimated_impact,
            "timeframe": self.timeframe,
        }

    def headline(self) -> str:
        return f"{self.pages_affected} pages {self.priority}: {self.action} ({self.timeframe})"


@dataclass
class TierSummary:
    last_run: Optional[datetime]
    total_pages: int
    distribution: dict[str, int]
    priority_breakdown: dict[str, int]
    key_insights: list[KeyInsight] = field(default_factory=list)
    recommendations: list[PortfolioRecommendation] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "totalPages": self.total_pages,
            "distribution": dict(self.distribution),
            "priorityBreakdown": dict(self.priority_breakdown),
            "keyInsights": [insight.as_dict() for insight in self.key_insights],
            "recommendations": [item.as_dict() for item in self.recommendations],
        }


def priority_breakdown(priorities: Iterable[Optional[str]]) -> dict[str, int]:
    """
    Count priorities by lower-cased name; missing values count as monitor
    and unknown values are ignored.
    """

    breakdown = empty_priority_breakdown()
    for priority in priorities:
        key = (priority or Priority.MONITOR).lower()
        if key in breakdown:
            breakdown[key] += 1
    return breakdown


def key_insights(distribution: dict[str, int]) -> list[KeyInsight]:
    insights: list[KeyInsight] = []
    for tier, insight_type, message, impact in _INSIGHT_RULES:
        count = int(distribution.get(tier, 0) or 0)
        if count > 0:
            insights.append(KeyInsight(type=insight_type, message=message, count=count, impact=impact))
    return insights


def portfolio_recommendations(
    distribution: dict[str, int],
    breakdown: dict[str, int],
) -> list[PortfolioRecommendation]:
    recommendations: list[PortfolioRecommendation] = []

    critical = int(breakdown.get(Priority.CRITICAL.lower(), 0) or 0)
    if critical > 0:
        recommendations.append(
            PortfolioRecommendation(
                priority=Priority.CRITICAL,
                action="Immediate traffic loss prevention",
                pages_affected=critical,
                estimated_impact="Prevent 15-40% traffic loss",
                timeframe="This week",
            )
        )

    quick_wins = int(distribution.get(Tier.QUICK_WINS, 0) or 0)
    if quick_wins > QUICK_WINS_BATCH_MIN_PAGES:
        recommendations.append(
            PortfolioRecommendation(
                priority=Priority.HIGH,
                action="Batch optimize titles and meta descriptions",
                pages_affected=quick_wins,
                estimated_impact="20-30% CTR improvement",
                timeframe="2 weeks",
            )
        )

    rising_stars = int(distribution.get(Tier.RISING_STARS, 0) or 0)
    if rising_stars > 0:
        recommendations.append(
            PortfolioRecommendation(
                priority=Priority.MEDIUM,
                action="Scale successful content strategies",
                pages_affected=rising_stars,
                estimated_impact="25-50% additional growth",
                timeframe="1 month",
            )
        )

    return recommendations


def build_tier_summary(
    *,
    last_run: Optional[datetime],
    distribution: dict[str, int],
    priorities: Iterable[Optional[str]],
) -> TierSummary:
    breakdown = priority_breakdown(priorities)
    return TierSummary(
        last_run=last_run,
        total_pages=sum(int(count or 0) for count in distribution.values()),
        distribution=dict(distribution),
        priority_breakdown=breakdown,
        key_insights=key_insights(distribution),
        recommendations=portfolio_recommendations(distribution, breakdown),
    )
