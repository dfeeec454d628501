"""
tests/test_analytics.py

Pytest unit tests for trend fitting, anomaly detection, smart-metric
recommendations and the site health score.

Coverage
--------
- TrendAnalyzer: empty and single-point series, constant series, perfect
  lines, relative direction threshold, forecast floor
- AnomalyDetector: short windows, zero variance, two-sigma boundary
- generate_recommendations: each rule and the stable fallback
- HealthScoreCalculator: breakpoint tables, weighted half-up overall score
"""

from __future__ import annotations

import pytest

from analytics.anomaly import AnomalyDetector
from analytics.recommendations import SmartMetric, generate_recommendations
from analytics.trend import TREND_DOWN, TREND_STABLE, TREND_UP, TrendAnalyzer, TrendResult
from health.scoring import HealthScoreCalculator


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def analyzer() -> TrendAnalyzer:
    return TrendAnalyzer()


@pytest.fixture()
def detector() -> AnomalyDetector:
    return AnomalyDetector()


@pytest.fixture()
def health() -> HealthScoreCalculator:
    return HealthScoreCalculator()


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------


class TestTrendAnalyzer:
    def test_empty_series(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([])
        assert result == TrendResult(slope=0.0, intercept=0.0, r_squared=1.0, trend=TREND_STABLE)

    def test_single_point(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([7])
        assert result.slope == 0.0
        assert result.intercept == 7.0
        assert result.r_squared == 1.0
        assert result.trend == TREND_STABLE

    def test_constant_series_is_stable_with_perfect_fit(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([5, 5, 5, 5])
        assert result.slope == pytest.approx(0.0)
        assert result.intercept == pytest.approx(5.0)
        assert result.r_squared == 1.0
        assert result.trend == TREND_STABLE

    def test_increasing_line(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([1, 2, 3, 4, 5])
        assert result.slope == pytest.approx(1.0)
        assert result.intercept == pytest.approx(1.0)
        assert result.r_squared == pytest.approx(1.0)
        assert result.trend == TREND_UP

    def test_decreasing_line(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([10, 8, 6, 4])
        assert result.slope == pytest.approx(-2.0)
        assert result.trend == TREND_DOWN

    def test_small_slope_relative_to_magnitude_is_stable(self, analyzer: TrendAnalyzer) -> None:
        # slope 0.5 against a mean of ~10000 is below the 0.1 % threshold
        result = analyzer.analyze([10000, 10000.5, 10001, 10001.5])
        assert result.slope == pytest.approx(0.5)
        assert result.trend == TREND_STABLE

    def test_r_squared_is_within_unit_interval(self, analyzer: TrendAnalyzer) -> None:
        result = analyzer.analyze([3, 9, 1, 7, 2, 8])
        assert 0.0 <= result.r_squared <= 1.0

    def test_forecast_extends_line_and_floors_at_zero(self) -> None:
        rising = TrendResult(slope=1.0, intercept=1.0, r_squared=1.0, trend=TREND_UP)
        assert TrendAnalyzer.forecast(rising, 5) == pytest.approx(35.0)

        falling = TrendResult(slope=-5.0, intercept=10.0, r_squared=1.0, trend=TREND_DOWN)
        assert TrendAnalyzer.forecast(falling, 7) == 0.0

    def test_as_dict_keys(self, analyzer: TrendAnalyzer) -> None:
        assert set(analyzer.analyze([1, 2]).as_dict()) == {"m", "b", "rSquared", "trend"}


# ---------------------------------------------------------------------------
# Anomaly
# ---------------------------------------------------------------------------


class TestAnomalyDetector:
    WINDOW = [90, 110] * 4

    def test_short_window_is_never_flagged(self, detector: AnomalyDetector) -> None:
        result = detector.detect(1000, [1, 2, 3, 4, 5, 6])
        assert result.is_anomaly is False
        assert result.sufficient_data is False

    def test_mean_and_population_std(self, detector: AnomalyDetector) -> None:
        result = detector.detect(100, self.WINDOW)
        assert result.mean == pytest.approx(100.0)
        assert result.std_dev == pytest.approx(10.0)
        assert result.is_anomaly is False

    def test_beyond_two_sigma_is_anomaly(self, detector: AnomalyDetector) -> None:
        result = detector.detect(125, self.WINDOW)
        assert result.is_anomaly is True
        assert "significant deviation" in result.message

    def test_within_two_sigma_is_not_anomaly(self, detector: AnomalyDetector) -> None:
        assert detector.detect(115, self.WINDOW).is_anomaly is False
        assert detector.detect(80, self.WINDOW).is_anomaly is False

    def test_zero_variance_is_not_anomaly(self, detector: AnomalyDetector) -> None:
        assert detector.detect(500, [10] * 10).is_anomaly is False


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class TestRecommendations:
    def test_stable_fallback(self) -> None:
        metric = SmartMetric(historical_avg=100.0, trend=TREND_STABLE, trend_confidence=0.1)
        assert generate_recommendations("totalClicks", metric) == [
            "The totalClicks metric appears stable. Continue monitoring."
        ]

    def test_anomalous_downward_metric(self) -> None:
        metric = SmartMetric(historical_avg=100.0, is_anomaly=True, trend=TREND_DOWN, trend_confidence=0.9)
        recommendations = generate_recommendations("totalClicks", metric)
        assert recommendations == [
            "Investigate the sharp downward trend in totalClicks.",
            "The downward trend for totalClicks is strong. Prioritize analysis.",
        ]

    def test_low_ctr(self) -> None:
        metric = SmartMetric(historical_avg=0.015)
        assert generate_recommendations("averageCtr", metric) == [
            "Overall CTR is low. Review and optimize page titles and meta descriptions."
        ]

    def test_rising_position_number_means_declining_rankings(self) -> None:
        metric = SmartMetric(historical_avg=12.0, trend=TREND_UP, trend_confidence=0.5)
        assert generate_recommendations("averagePosition", metric) == [
            "Average position is declining. Review keyword strategy."
        ]

    def test_as_dict_shape(self) -> None:
        payload = SmartMetric(historical_avg=2.5, industry_benchmark=0.045).as_dict()
        assert payload["benchmarks"] == {"industry": 0.045, "historicalAvg": 2.5}
        assert payload["isAnomaly"] is None
        assert payload["thirtyDayForecast"] is None


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------


class TestHealthScore:
    @pytest.mark.parametrize(
        ("position", "expected"),
        [(1.0, 95), (5.0, 95), (5.1, 80), (10.0, 80), (15.0, 60), (20.0, 60), (35.0, 40), (50.0, 40), (51.0, 20)],
    )
    def test_technical_breakpoints(self, health: HealthScoreCalculator, position: float, expected: int) -> None:
        assert health.technical_score(position).score == expected

    @pytest.mark.parametrize(
        ("ctr", "expected"),
        [(0.08, 95), (0.07, 95), (0.06, 85), (0.05, 85), (0.04, 70), (0.03, 70), (0.025, 50), (0.02, 50), (0.01, 30)],
    )
    def test_ctr_breakpoints(self, health: HealthScoreCalculator, ctr: float, expected: int) -> None:
        assert health.content_score(ctr).score == expected
        assert health.user_experience_score(ctr).score == expected

    def test_overall_is_weighted_sum(self, health: HealthScoreCalculator) -> None:
        # 0.30*95 + 0.30*85 + 0.25*85 + 0.15*75 = 86.5 -> 87
        score = health.compute(average_position=4.0, average_ctr=0.055)
        assert score.overall == 87
        assert score.authority.score == 75

    def test_overall_for_weak_site(self, health: HealthScoreCalculator) -> None:
        # 0.30*20 + 0.30*30 + 0.25*30 + 0.15*75 = 33.75 -> 34
        assert health.compute(average_position=60.0, average_ctr=0.005).overall == 34

    def test_as_dict_keys(self, health: HealthScoreCalculator) -> None:
        payload = health.compute(average_position=8.0, average_ctr=0.03).as_dict()
        assert set(payload) == {"overall", "technical", "content", "userExperience", "authority"}
        assert set(payload["technical"]) == {"score", "details"}
