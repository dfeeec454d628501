"""
tiering/scoring.py

0–100 page performance score and recent-vs-baseline KPI deltas.
"""

from __future__ import annotations

from analytics.trend import TREND_DOWN, TREND_UP, TrendResult
from tiering import benchmarks
from tiering.types import PerformanceKPIs, PerformanceMetrics


def relative_change(recent: float, baseline: float) -> float:
    if baseline <= 0:
        return 0.0
    return (recent - baseline) / baseline


def compute_kpis(
    recent: PerformanceMetrics,
    baseline: PerformanceMetrics,
    trend: TrendResult,
) -> PerformanceKPIs:
    return PerformanceKPIs(
        clicks_change=relative_change(recent.total_clicks, baseline.total_clicks),
        impressions_change=relative_change(recent.total_impressions, baseline.total_impressions),
        ctr_change=relative_change(recent.average_ctr, baseline.average_ctr),
        position_change=relative_change(recent.average_position, baseline.average_position),
        trend_strength=trend.r_squared or 0.0,
    )


class PerformanceScorer:
    """
    Additive score starting from a neutral 50, clamped to ``[0, 100]``.

        component        range
        ---------------  --------
        click volume     0 .. +15
        CTR vs industry  -5 .. +12
        position band    -5 .. +10
        trend            -12 .. +12  (only when R² > MIN_TREND_R_SQUARED)
        click growth     -8 .. +8    (only when the baseline has clicks)
    """

    BASE_SCORE: float = 50.0
    MIN_TREND_R_SQUARED: float = 0.3
    MAX_TREND_POINTS: float = 12.0
    TREND_R_SQUARED_MULTIPLIER: float = 15.0
    GROWTH_THRESHOLD: float = 0.2
    GROWTH_POINTS: float = 8.0

    # (minimum clicks, points), first match wins.
    _CLICK_VOLUME_BANDS: tuple[tuple[int, float], ...] = ((1000, 15.0), (500, 10.0), (100, 5.0))

    def score(
        self,
        recent: PerformanceMetrics,
        baseline: PerformanceMetrics,
        trend: TrendResult,
    ) -> float:
        score = self.BASE_SCORE
        score += self._click_volume_points(recent.total_clicks)
        score += self._ctr_points(recent.average_ctr)
        score += self._position_points(recent.average_position)
        score += self._trend_points(trend)

        if baseline.total_clicks > 0:
            clicks_change = relative_change(recent.total_clicks, baseline.total_clicks)
            if clicks_change > self.GROWTH_THRESHOLD:
                score += self.GROWTH_POINTS
            elif clicks_change < -self.GROWTH_THRESHOLD:
                score -= self.GROWTH_POINTS

        return max(0.0, min(100.0, score))

    def _click_volume_points(self, clicks: int) -> float:
        for minimum, points in self._CLICK_VOLUME_BANDS:
            if clicks > minimum:
                return points
        return 0.0

    @staticmethod
    def _ctr_points(ctr: float) -> float:
        if ctr > benchmarks.EXCELLENT_CTR:
            return 12.0
        if ctr > benchmarks.GOOD_CTR:
            return 8.0
        if ctr > benchmarks.AVERAGE_CTR:
            return 4.0
        return -5.0

    @staticmethod
    def _position_points(position: float) -> float:
        if position <= 3:
            return 10.0
        if position <= benchmarks.TOP_POSITIONS:
            return 8.0
        if position <= 10:
            return 5.0
        if position > benchmarks.VISIBLE_POSITIONS:
            return -5.0
        return 0.0

    def _trend_points(self, trend: TrendResult) -> float:
        if trend.r_squared <= self.MIN_TREND_R_SQUARED:
            return 0.0
        points = min(self.MAX_TREND_POINTS, trend.r_squared * self.TREND_R_SQUARED_MULTIPLIER)
        if trend.trend == TREND_UP:
            return points
        if trend.trend == TREND_DOWN:
            return -points
        return 0.0
