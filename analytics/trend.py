"""
analytics/trend.py

Ordinary least-squares trend fitting for daily metric series.
No I/O, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


@dataclass(frozen=True)
class TrendResult:
    """
    Fitted line ``value = slope * index + intercept`` and its goodness of fit.
    """

    slope: float
    intercept: float
    r_squared: float
    trend: str

    def as_dict(self) -> dict:
        return {
            "m": self.slope,
            "b": self.intercept,
            "rSquared": self.r_squared,
            "trend": self.trend,
        }


class TrendAnalyzer:
    """
    Fits a straight line to a series indexed ``0 .. n-1`` (oldest first).

        m  = cov(x, y) / var(x)
        b  = mean(y) - m * mean(x)
        R² = 1 - SSres / SStot, floored at 0; 1 when SStot == 0

    The direction threshold scales with the series magnitude::

        threshold = mean(y) * RELATIVE_THRESHOLD
        up     if m >  threshold
        down   if m < -threshold
        stable otherwise

    Click and impression counts differ by orders of magnitude between pages,
    so a fixed absolute cutoff would mislabel both small and large series.
    """

    RELATIVE_THRESHOLD: float = 0.001

    def analyze(self, values: Sequence[float]) -> TrendResult:
        """
        Parameters
        ----------
        values:
            Numeric observations in chronological order.

        Returns
        -------
        TrendResult
            For fewer than two points the slope is 0, the intercept is the
            single value (or 0), R² is 1 and the trend is stable.
        """
        n = len(values)
        if n < 2:
            return TrendResult(
                slope=0.0,
                intercept=float(values[0]) if n == 1 else 0.0,
                r_squared=1.0,
                trend=TREND_STABLE,
            )

        y = [float(value) for value in values]
        mean_x: float = (n - 1) / 2.0
        mean_y: float = sum(y) / n

        cov_xy: float = sum((i - mean_x) * (y[i] - mean_y) for i in range(n))
        var_x: float = sum((i - mean_x) ** 2 for i in range(n))

        slope: float = cov_xy / var_x
        intercept: float = mean_y - slope * mean_x

        ss_tot: float = sum((value - mean_y) ** 2 for value in y)
        ss_res: float = sum((y[i] - (slope * i + intercept)) ** 2 for i in range(n))
        r_squared = 1.0 if ss_tot == 0.0 else max(0.0, 1.0 - ss_res / ss_tot)

        return TrendResult(
            slope=slope,
            intercept=intercept,
            r_squared=r_squared,
            trend=self.classify(slope, mean_y),
        )

    def classify(self, slope: float, average_value: float) -> str:
        threshold = average_value * self.RELATIVE_THRESHOLD
        if slope > threshold:
            return TREND_UP
        if slope < -threshold:
            return TREND_DOWN
        return TREND_STABLE

    @staticmethod
    def forecast(result: TrendResult, n: int, days_ahead: int = 30) -> float:
        """
        Value of the fitted line ``days_ahead`` days past the start of the
        series' last day, floored at zero.
        """
        return max(0.0, result.slope * (n + days_ahead - 1) + result.intercept)
