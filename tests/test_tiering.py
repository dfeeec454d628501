"""
tests/test_tiering.py

Pytest unit tests for page metrics, scoring, tier rules and run summaries.

Coverage
--------
- PerformanceMetrics.from_daily: totals, plain mean of daily positions
- compute_kpis: relative changes, zero baselines
- PerformanceScorer: neutral base, clamping, trend contribution gated by R²
- TierClassifier: one case per tier, rule order, deterministic output
- analysis_windows: lag, lengths, no overlap
- tier summary: priority breakdown, key insights, portfolio recommendations
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from analytics.trend import TREND_DOWN, TREND_STABLE, TREND_UP, TrendResult
from app.domain.pipeline import DailyPageMetrics
from tiering.rules import TierClassifier, round_half_up
from tiering.scoring import PerformanceScorer, compute_kpis, relative_change
from tiering.summary import build_tier_summary, key_insights, portfolio_recommendations, priority_breakdown
from tiering.types import PerformanceKPIs, PerformanceMetrics, Priority, Tier, empty_tier_distribution
from tiering.windows import analysis_windows

STABLE = TrendResult(slope=0.0, intercept=0.0, r_squared=0.0, trend=TREND_STABLE)


def _metrics(clicks: int = 0, impressions: int = 0, position: float = 8.0, ctr: float | None = None) -> PerformanceMetrics:
    if ctr is None:
        ctr = clicks / impressions if impressions else 0.0
    return PerformanceMetrics(
        total_clicks=clicks,
        total_impressions=impressions,
        average_ctr=ctr,
        average_position=position,
    )


def _kpis(clicks_change: float = 0.0) -> PerformanceKPIs:
    return PerformanceKPIs(
        clicks_change=clicks_change,
        impressions_change=0.0,
        ctr_change=0.0,
        position_change=0.0,
        trend_strength=0.0,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def classifier() -> TierClassifier:
    return TierClassifier()


@pytest.fixture()
def scorer() -> PerformanceScorer:
    return PerformanceScorer()


# ---------------------------------------------------------------------------
# Metrics and KPIs
# ---------------------------------------------------------------------------


class TestPerformanceMetrics:
    def test_from_daily_rows(self) -> None:
        rows = [
            DailyPageMetrics(date=date(2024, 1, 1), clicks=10, impressions=100, average_position=4.0),
            DailyPageMetrics(date=date(2024, 1, 2), clicks=30, impressions=300, average_position=8.0),
        ]
        metrics = PerformanceMetrics.from_daily(rows, date(2024, 1, 1), date(2024, 1, 28))

        assert metrics.total_clicks == 40
        assert metrics.total_impressions == 400
        assert metrics.average_ctr == pytest.approx(0.1)
        assert metrics.average_position == pytest.approx(6.0)
        assert metrics.data_points == (10, 30)
        assert metrics.period == "2024-01-01 to 2024-01-28"

    def test_no_rows_is_all_zero(self) -> None:
        metrics = PerformanceMetrics.from_daily([], date(2024, 1, 1), date(2024, 1, 2))
        assert metrics.total_impressions == 0
        assert metrics.average_ctr == 0.0
        assert metrics.data_points == ()


class TestKpis:
    def test_relative_change(self) -> None:
        assert relative_change(150, 100) == pytest.approx(0.5)
        assert relative_change(50, 0) == 0.0

    def test_compute_kpis(self) -> None:
        recent = _metrics(clicks=60, impressions=1000, position=5.0)
        baseline = _metrics(clicks=100, impressions=1000, position=4.0)
        trend = TrendResult(slope=-1.0, intercept=5.0, r_squared=0.6, trend=TREND_DOWN)

        kpis = compute_kpis(recent, baseline, trend)

        assert kpis.clicks_change == pytest.approx(-0.4)
        assert kpis.impressions_change == 0.0
        assert kpis.position_change == pytest.approx(0.25)
        assert kpis.trend_strength == pytest.approx(0.6)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestPerformanceScorer:
    def test_neutral_page(self, scorer: PerformanceScorer) -> None:
        # base 50, ctr below average -5, position 11..20 adds nothing
        assert scorer.score(_metrics(clicks=1, impressions=100, position=15.0), _metrics(), STABLE) == 45.0

    def test_strong_page(self, scorer: PerformanceScorer) -> None:
        recent = _metrics(clicks=1200, impressions=10000, position=2.0)
        baseline = _metrics(clicks=800, impressions=10000)
        trend = TrendResult(slope=5.0, intercept=0.0, r_squared=0.9, trend=TREND_UP)
        # 50 + 15 + 12 + 10 + 12 + 8 = 107 -> clamped
        assert scorer.score(recent, baseline, trend) == 100.0

    def test_weak_fit_trend_is_ignored(self, scorer: PerformanceScorer) -> None:
        recent = _metrics(clicks=1, impressions=100, position=15.0)
        weak = TrendResult(slope=-5.0, intercept=0.0, r_squared=0.3, trend=TREND_DOWN)
        assert scorer.score(recent, _metrics(), weak) == scorer.score(recent, _metrics(), STABLE)

    def test_score_never_negative(self, scorer: PerformanceScorer) -> None:
        recent = _metrics(clicks=0, impressions=1000, position=80.0)
        baseline = _metrics(clicks=100, impressions=1000)
        trend = TrendResult(slope=-5.0, intercept=0.0, r_squared=1.0, trend=TREND_DOWN)
        assert 0.0 <= scorer.score(recent, baseline, trend) <= 100.0


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestTierClassifier:
    def test_low_impressions_is_new_low_data(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=50, impressions=99), STABLE, 95.0, _kpis())
        assert analysis.tier == Tier.NEW_LOW_DATA
        assert analysis.priority == Priority.MONITOR
        assert analysis.reasoning == "Insufficient traffic data for reliable analysis"

    def test_champions(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=800, impressions=10000), STABLE, 85.0, _kpis())
        assert analysis.tier == Tier.CHAMPIONS
        assert analysis.reasoning == "Top performer with 800 clicks and 8.00% CTR"

    def test_rising_stars(self, classifier: TierClassifier) -> None:
        trend = TrendResult(slope=2.0, intercept=0.0, r_squared=0.7, trend=TREND_UP)
        analysis = classifier.classify(_metrics(clicks=200, impressions=4000), trend, 60.0, _kpis(0.3))
        assert analysis.tier == Tier.RISING_STARS
        assert analysis.priority == Priority.MEDIUM
        assert analysis.confidence == pytest.approx(0.7)
        assert analysis.reasoning == "Strong upward trend with 30% clicks increase"
        assert analysis.expected_impact == "Potential for 45% additional growth"

    def test_at_risk_is_critical(self, classifier: TierClassifier) -> None:
        trend = TrendResult(slope=-2.0, intercept=0.0, r_squared=0.6, trend=TREND_DOWN)
        analysis = classifier.classify(_metrics(clicks=200, impressions=4000), trend, 40.0, _kpis(-0.3))
        assert analysis.tier == Tier.AT_RISK
        assert analysis.priority == Priority.CRITICAL
        assert analysis.confidence == pytest.approx(0.6)
        assert analysis.reasoning == "Declining trend with 30% clicks drop"
        assert analysis.timeframe == "Immediate action required"

    def test_at_risk_is_deterministic(self, classifier: TierClassifier) -> None:
        trend = TrendResult(slope=-2.0, intercept=0.0, r_squared=0.6, trend=TREND_DOWN)
        args = (_metrics(clicks=200, impressions=4000), trend, 40.0, _kpis(-0.3))
        assert classifier.classify(*args) == classifier.classify(*args)

    def test_weak_downtrend_is_not_at_risk(self, classifier: TierClassifier) -> None:
        trend = TrendResult(slope=-2.0, intercept=0.0, r_squared=0.4, trend=TREND_DOWN)
        analysis = classifier.classify(_metrics(clicks=200, impressions=4000), trend, 40.0, _kpis(-0.3))
        assert analysis.tier != Tier.AT_RISK

    def test_quick_wins(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=20, impressions=2000, position=15.0), STABLE, 45.0, _kpis())
        assert analysis.tier == Tier.QUICK_WINS
        assert analysis.priority == Priority.HIGH
        # 2000 * (0.045 - 0.01) = 70
        assert analysis.expected_impact == "Potential for 70 additional monthly clicks"

    def test_hidden_gems(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=20, impressions=800, position=6.0), STABLE, 55.0, _kpis())
        assert analysis.tier == Tier.HIDDEN_GEMS
        assert analysis.reasoning == "Good rankings (position 6.0) but underperforming CTR"

    def test_cash_cows(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=400, impressions=800, position=6.0), STABLE, 70.0, _kpis(0.05))
        assert analysis.tier == Tier.CASH_COWS
        assert analysis.priority == Priority.LOW
        assert analysis.timeframe == "Quarterly review"

    def test_problem_pages_by_score(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=10, impressions=200, position=30.0), STABLE, 25.0, _kpis())
        assert analysis.tier == Tier.PROBLEM_PAGES
        assert analysis.priority == Priority.CRITICAL

    def test_problem_pages_by_position(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=10, impressions=200, position=60.0), STABLE, 45.0, _kpis())
        assert analysis.tier == Tier.PROBLEM_PAGES

    def test_declining(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=100, impressions=200, position=8.0), STABLE, 60.0, _kpis(-0.2))
        assert analysis.tier == Tier.DECLINING
        assert analysis.reasoning == "Traffic declining by 20%"

    def test_stable_default(self, classifier: TierClassifier) -> None:
        analysis = classifier.classify(_metrics(clicks=100, impressions=200, position=8.0), STABLE, 60.0, _kpis(0.1))
        assert analysis.tier == Tier.CASH_COWS
        assert analysis.reasoning == "Stable performance, no immediate action needed"
        assert analysis.timeframe == "Monthly review"

    def test_rule_order_champions_before_rising_stars(self, classifier: TierClassifier) -> None:
        trend = TrendResult(slope=2.0, intercept=0.0, r_squared=0.9, trend=TREND_UP)
        analysis = classifier.classify(_metrics(clicks=800, impressions=10000), trend, 90.0, _kpis(0.5))
        assert analysis.tier == Tier.CHAMPIONS

    def test_round_half_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------


class TestAnalysisWindows:
    def test_windows_end_at_lag_and_do_not_overlap(self) -> None:
        windows = analysis_windows(date(2024, 3, 31), lag_days=2, recent_days=28, baseline_days=28)

        assert windows.recent.end == date(2024, 3, 29)
        assert windows.recent.start == date(2024, 3, 1)
        assert windows.baseline.end == date(2024, 2, 29)
        assert windows.baseline.start == date(2024, 2, 2)
        assert windows.baseline.end < windows.recent.start
        assert windows.recent.label == "2024-03-01 to 2024-03-29"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class TestTierSummary:
    def test_priority_breakdown(self) -> None:
        breakdown = priority_breakdown([Priority.CRITICAL, Priority.HIGH, None, "Unknown", Priority.CRITICAL])
        assert breakdown == {"critical": 2, "high": 1, "medium": 0, "low": 0, "monitor": 1}

    def test_key_insights_only_for_present_tiers(self) -> None:
        distribution = empty_tier_distribution()
        distribution[Tier.AT_RISK] = 2
        distribution[Tier.CHAMPIONS] = 1

        insights = key_insights(distribution)

        assert [(i.type, i.count) for i in insights] == [("risk", 2), ("success", 1)]

    def test_portfolio_recommendations(self) -> None:
        distribution = empty_tier_distribution()
        distribution[Tier.QUICK_WINS] = 4
        distribution[Tier.RISING_STARS] = 1
        breakdown = {"critical": 3, "high": 4, "medium": 1, "low": 0, "monitor": 0}

        recommendations = portfolio_recommendations(distribution, breakdown)

        assert [r.headline() for r in recommendations] == [
            "3 pages Critical: Immediate traffic loss prevention (This week)",
            "4 pages High: Batch optimize titles and meta descriptions (2 weeks)",
            "1 pages Medium: Scale successful content strategies (1 month)",
        ]

    def test_three_quick_wins_are_not_batched(self) -> None:
        distribution = empty_tier_distribution()
        distribution[Tier.QUICK_WINS] = 3
        assert portfolio_recommendations(distribution, priority_breakdown([])) == []

    def test_build_tier_summary(self) -> None:
        distribution = empty_tier_distribution()
        distribution[Tier.CASH_COWS] = 5
        run = datetime(2024, 3, 1, tzinfo=timezone.utc)

        summary = build_tier_summary(last_run=run, distribution=distribution, priorities=[Priority.LOW] * 5)
        payload = summary.as_dict()

        assert payload["lastRun"] == run.isoformat()
        assert payload["totalPages"] == 5
        assert payload["priorityBreakdown"]["low"] == 5
        assert payload["keyInsights"] == []
        assert payload["recommendations"] == []
        assert set(payload["distribution"]) == set(Tier.ALL)
