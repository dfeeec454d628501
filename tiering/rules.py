"""
tiering/rules.py

Ordered classification rules mapping page metrics to one of nine tiers.

Rules are evaluated top to bottom and the first match wins:

    1. impressions < 100                              -> New/Low Data
    2. score >= 80, clicks > 500, CTR > good          -> Champions
    3. trend up, R² > 0.4, clicks change > +25 %      -> Rising Stars
    4. trend down, R² > 0.4, clicks change < -25 %    -> At Risk
    5. impressions > 1000, CTR < average              -> Quick Wins
    6. position <= 10, CTR < average, impr. > 500     -> Hidden Gems
    7. clicks > 300, |change| < 15 %, CTR >= average  -> Cash Cows
    8. score < 30 or (position > 50 and clicks < 50)  -> Problem Pages
    9. clicks change < -15 %                          -> Declining
   10. otherwise                                      -> Cash Cows
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from analytics.trend import TREND_DOWN, TREND_UP, TrendResult
from tiering import benchmarks
from tiering.types import PerformanceKPIs, PerformanceMetrics, Priority, Tier, TierAnalysis

TREND_RULE_MIN_R_SQUARED = 0.4
CHAMPION_MIN_SCORE = 80.0
CHAMPION_MIN_CLICKS = 500
QUICK_WIN_MIN_IMPRESSIONS = 1000
HIDDEN_GEM_MAX_POSITION = 10.0
HIDDEN_GEM_MIN_IMPRESSIONS = 500
CASH_COW_MIN_CLICKS = 300
PROBLEM_MAX_SCORE = 30.0
PROBLEM_MIN_POSITION = 50.0
PROBLEM_MAX_CLICKS = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent(value: float) -> str:
    return f"{round_half_up(value * 100)}"


class TierClassifier:
    """
    Stateless rule engine. ``classify`` always returns an analysis whose
    ``tier`` is one of :attr:`Tier.ALL`.
    """

    def classify(
        self,
        recent: PerformanceMetrics,
        trend: TrendResult,
        score: float,
        kpis: PerformanceKPIs,
    ) -> TierAnalysis:
        rules: tuple[Callable[..., Optional[TierAnalysis]], ...] = (
            self._new_or_low_data,
            self._champions,
            self._rising_stars,
            self._at_risk,
            self._quick_wins,
            self._hidden_gems,
            self._cash_cows,
            self._problem_pages,
            self._declining,
        )
        for rule in rules:
            analysis = rule(recent, trend, score, kpis)
            if analysis is not None:
                return analysis
        return self._stable_default(score, kpis)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @staticmethod
    def _new_or_low_data(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if recent.total_impressions >= benchmarks.MIN_IMPRESSIONS:
            return None
        return TierAnalysis(
            tier=Tier.NEW_LOW_DATA,
            score=score,
            priority=Priority.MONITOR,
            reasoning="Insufficient traffic data for reliable analysis",
            marketing_action="Monitor performance and consider content promotion",
            technical_action="Ensure page is indexed and crawlable",
            expected_impact="Data collection for future analysis",
            timeframe="4-8 weeks",
            confidence=0.2,
            kpis=kpis,
        )

    @staticmethod
    def _champions(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            score >= CHAMPION_MIN_SCORE
            and recent.total_clicks > CHAMPION_MIN_CLICKS
            and recent.average_ctr > benchmarks.GOOD_CTR
        ):
            return None
        return TierAnalysis(
            tier=Tier.CHAMPIONS,
            score=score,
            priority=Priority.MONITOR,
            reasoning=(
                f"Top performer with {recent.total_clicks} clicks and "
                f"{recent.average_ctr * 100:.2f}% CTR"
            ),
            marketing_action="Document and replicate success factors across similar pages",
            technical_action="Ensure optimal technical performance and monitor for any issues",
            expected_impact="Maintain current performance levels",
            timeframe="Ongoing monitoring",
            confidence=0.9,
            kpis=kpis,
        )

    @staticmethod
    def _rising_stars(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            trend.trend == TREND_UP
            and trend.r_squared > TREND_RULE_MIN_R_SQUARED
            and kpis.clicks_change > benchmarks.STRONG_CHANGE
        ):
            return None
        return TierAnalysis(
            tier=Tier.RISING_STARS,
            score=score,
            priority=Priority.MEDIUM,
            reasoning=f"Strong upward trend with {_percent(kpis.clicks_change)}% clicks increase",
            marketing_action="Amplify with social promotion and internal linking",
            technical_action="Optimize for featured snippets and related keywords",
            expected_impact=(
                f"Potential for {round_half_up(kpis.clicks_change * 100 * 1.5)}% additional growth"
            ),
            timeframe="2-4 weeks",
            confidence=trend.r_squared,
            kpis=kpis,
        )

    @staticmethod
    def _at_risk(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            trend.trend == TREND_DOWN
            and trend.r_squared > TREND_RULE_MIN_R_SQUARED
            and kpis.clicks_change < -benchmarks.STRONG_CHANGE
        ):
            return None
        drop = _percent(abs(kpis.clicks_change))
        return TierAnalysis(
            tier=Tier.AT_RISK,
            score=score,
            priority=Priority.CRITICAL,
            reasoning=f"Declining trend with {drop}% clicks drop",
            marketing_action="Immediate content audit and competitor analysis",
            technical_action="Check for technical issues, indexing problems, and ranking losses",
            expected_impact=f"Risk of losing {drop}% more traffic",
            timeframe="Immediate action required",
            confidence=trend.r_squared,
            kpis=kpis,
        )

    @staticmethod
    def _quick_wins(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            recent.total_impressions > QUICK_WIN_MIN_IMPRESSIONS
            and recent.average_ctr < benchmarks.AVERAGE_CTR
        ):
            return None
        potential_clicks = recent.total_impressions * (benchmarks.AVERAGE_CTR - recent.average_ctr)
        return TierAnalysis(
            tier=Tier.QUICK_WINS,
            score=score,
            priority=Priority.HIGH,
            reasoning=(
                f"High visibility ({recent.total_impressions} impressions) but low CTR "
                f"({recent.average_ctr * 100:.2f}%)"
            ),
            marketing_action="A/B test new titles and meta descriptions",
            technical_action="Optimize title tags, meta descriptions, and structured data",
            expected_impact=f"Potential for {round_half_up(potential_clicks)} additional monthly clicks",
            timeframe="1-2 weeks",
            confidence=0.8,
            kpis=kpis,
        )

    @staticmethod
    def _hidden_gems(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            recent.average_position <= HIDDEN_GEM_MAX_POSITION
            and recent.average_ctr < benchmarks.AVERAGE_CTR
            and recent.total_impressions > HIDDEN_GEM_MIN_IMPRESSIONS
        ):
            return None
        return TierAnalysis(
            tier=Tier.HIDDEN_GEMS,
            score=score,
            priority=Priority.HIGH,
            reasoning=f"Good rankings (position {recent.average_position:.1f}) but underperforming CTR",
            marketing_action="Enhance content value proposition and calls-to-action",
            technical_action="Optimize snippets, add schema markup, improve page speed",
            expected_impact="20-40% CTR improvement potential",
            timeframe="2-3 weeks",
            confidence=0.7,
            kpis=kpis,
        )

    @staticmethod
    def _cash_cows(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            recent.total_clicks > CASH_COW_MIN_CLICKS
            and abs(kpis.clicks_change) < benchmarks.SIGNIFICANT_CHANGE
            and recent.average_ctr >= benchmarks.AVERAGE_CTR
        ):
            return None
        return TierAnalysis(
            tier=Tier.CASH_COWS,
            score=score,
            priority=Priority.LOW,
            reasoning=f"Stable performance with consistent {recent.total_clicks} monthly clicks",
            marketing_action="Use as template for similar content creation",
            technical_action="Maintain technical health and monitor for any degradation",
            expected_impact="Sustained reliable traffic",
            timeframe="Quarterly review",
            confidence=0.8,
            kpis=kpis,
        )

    @staticmethod
    def _problem_pages(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if not (
            score < PROBLEM_MAX_SCORE
            or (recent.average_position > PROBLEM_MIN_POSITION and recent.total_clicks < PROBLEM_MAX_CLICKS)
        ):
            return None
        return TierAnalysis(
            tier=Tier.PROBLEM_PAGES,
            score=score,
            priority=Priority.CRITICAL,
            reasoning=f"Multiple issues: poor rankings ({recent.average_position:.1f}) and low traffic",
            marketing_action="Complete content overhaul or consider consolidation",
            technical_action="Technical SEO audit, check for penalties or technical issues",
            expected_impact="Recovery potential varies by root cause",
            timeframe="4-8 weeks",
            confidence=0.6,
            kpis=kpis,
        )

    @staticmethod
    def _declining(recent, trend, score, kpis) -> Optional[TierAnalysis]:
        if kpis.clicks_change >= -benchmarks.SIGNIFICANT_CHANGE:
            return None
        decline = _percent(abs(kpis.clicks_change))
        return TierAnalysis(
            tier=Tier.DECLINING,
            score=score,
            priority=Priority.HIGH,
            reasoning=f"Traffic declining by {decline}%",
            marketing_action="Content refresh and competitive analysis",
            technical_action="Check rankings, indexing status, and technical performance",
            expected_impact=f"Potential to recover {decline}% of lost traffic",
            timeframe="3-4 weeks",
            confidence=0.7,
            kpis=kpis,
        )

    @staticmethod
    def _stable_default(score: float, kpis: PerformanceKPIs) -> TierAnalysis:
        return TierAnalysis(
            tier=Tier.CASH_COWS,
            score=score,
            priority=Priority.LOW,
            reasoning="Stable performance, no immediate action needed",
            marketing_action="Monitor for opportunities and maintain content freshness",
            technical_action="Regular health checks and performance monitoring",
            expected_impact="Maintained stable performance",
            timeframe="Monthly review",
            confidence=0.6,
            kpis=kpis,
        )
