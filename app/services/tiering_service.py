"""
app/services/tiering_service.py

Page tiering run: per-page metrics, trend, score and tier, written back in a
single commit together with the run summary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from analytics.trend import TREND_STABLE, TrendAnalyzer, TrendResult
from app.config import TieringSettings, get_search_console_settings, get_tiering_settings
from app.domain.pipeline import DailyPageMetrics, Processed, Skipped, TieringRunReport
from app.repositories.page_repository import PageRepository
from app.repositories.raw_event_repository import RawEventRepository
from app.repositories.summary_repository import TieringSummaryRepository
from tiering import benchmarks
from tiering.rules import TierClassifier
from tiering.scoring import PerformanceScorer, compute_kpis
from tiering.summary import portfolio_recommendations, priority_breakdown
from tiering.types import PerformanceMetrics, Priority, TierAnalysis, empty_tier_distribution
from tiering.windows import AnalysisWindows, analysis_windows

logger = logging.getLogger(__name__)

# (db, site_url, page_url, start_date, end_date) -> daily rows, oldest first
MetricsReader = Callable[[Session, str, str, date, date], list[DailyPageMetrics]]

_NO_TREND = TrendResult(slope=0.0, intercept=0.0, r_squared=0.0, trend=TREND_STABLE)


def read_daily_page_metrics(
    db: Session,
    site_url: str,
    page_url: str,
    start_date: date,
    end_date: date,
) -> list[DailyPageMetrics]:
    return RawEventRepository(db).daily_page_metrics(
        site_url=site_url,
        page=page_url,
        start_date=start_date,
        end_date=end_date,
    )


class TieringService:
    """
    Classifies every tracked page into one of nine tiers.

    Pages are analysed one after another. A page whose metrics cannot be
    read is skipped and keeps its previous tier; the other pages are still
    written. Loading the page list is the only failure that aborts a run.
    """

    def __init__(
        self,
        *,
        settings: TieringSettings | None = None,
        lag_days: int = 2,
        metrics_reader: MetricsReader = read_daily_page_metrics,
        trend_analyzer: TrendAnalyzer | None = None,
        scorer: PerformanceScorer | None = None,
        classifier: TierClassifier | None = None,
    ) -> None:
        self._settings = settings or TieringSettings()
        self._lag_days = lag_days
        self._read_metrics = metrics_reader
        self._trend_analyzer = trend_analyzer or TrendAnalyzer()
        self._scorer = scorer or PerformanceScorer()
        self._classifier = classifier or TierClassifier()

    def windows(self, today: date) -> AnalysisWindows:
        return analysis_windows(
            today,
            lag_days=self._lag_days,
            recent_days=self._settings.recent_window_days,
            baseline_days=self._settings.baseline_window_days,
        )

    def analyze(
        self,
        recent: PerformanceMetrics,
        baseline: PerformanceMetrics,
    ) -> tuple[TierAnalysis, TrendResult]:
        """
        Pure analysis of one page. The trend is only fitted when the recent
        window has enough daily points; otherwise it is stable with R² = 0.
        """

        if len(recent.data_points) >= self._settings.min_trend_points:
            trend = self._trend_analyzer.analyze(recent.data_points)
        else:
            trend = _NO_TREND
        score = self._scorer.score(recent, baseline, trend)
        kpis = compute_kpis(recent, baseline, trend)
        return self._classifier.classify(recent, trend, score, kpis), trend

    def run(
        self,
        *,
        db: Session,
        now: datetime | None = None,
        site_url: str | None = None,
    ) -> TieringRunReport:
        run_at = now or datetime.now(timezone.utc)
        windows = self.windows(run_at.date())

        pages = [(page.id, page.url, page.site_url) for page in PageRepository(db).list_pages(site_url)]
        logger.info(
            "Tiering started pages=%s recent=%s baseline=%s",
            len(pages),
            windows.recent.label,
            windows.baseline.label,
        )

        report = TieringRunReport(
            run_at=run_at,
            recent_period=windows.recent.label,
            baseline_period=windows.baseline.label,
        )
        updates: dict[str, dict[str, Any]] = {}

        for page_id, page_url, page_site in pages:
            try:
                recent = PerformanceMetrics.from_daily(
                    self._read_metrics(db, page_site, page_url, windows.recent.start, windows.recent.end),
                    windows.recent.start,
                    windows.recent.end,
                )
                baseline = PerformanceMetrics.from_daily(
                    self._read_metrics(db, page_site, page_url, windows.baseline.start, windows.baseline.end),
                    windows.baseline.start,
                    windows.baseline.end,
                )
                analysis, trend = self.analyze(recent, baseline)
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                logger.error("Tiering skipped page=%s error=%s", page_url, exc)
                report.outcomes.append(Skipped(key=page_id, reason=str(exc)))
                continue

            updates[page_id] = _tiering_fields(analysis, recent, baseline, trend, run_at)
            report.outcomes.append(Processed(key=page_id, value=analysis))
            if analysis.priority == Priority.CRITICAL:
                logger.warning(
                    "Critical page finding page=%s tier=%s reasoning=%s",
                    page_url,
                    analysis.tier,
                    analysis.reasoning,
                )

        distribution = empty_tier_distribution()
        processed = [outcome.value for outcome in report.outcomes if outcome.ok]
        for analysis in processed:
            distribution[analysis.tier] += 1
        breakdown = priority_breakdown(analysis.priority for analysis in processed)

        report.tier_distribution = distribution
        report.priority_breakdown = breakdown
        report.recommendations = [
            recommendation.headline() for recommendation in portfolio_recommendations(distribution, breakdown)
        ]

        page_repository = PageRepository(db)
        try:
            for page_id, fields in updates.items():
                page_repository.apply_tiering(page_id, fields)
            TieringSummaryRepository(db).save(
                last_run=run_at,
                total_pages_processed=report.processed,
                total_pages_skipped=len(report.skipped),
                tier_distribution=distribution,
                priority_breakdown=breakdown,
                analysis_config={
                    "recentPeriod": windows.recent.label,
                    "baselinePeriod": windows.baseline.label,
                    "thresholds": benchmarks.performance_thresholds(),
                    "benchmarks": benchmarks.industry_benchmarks(),
                },
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store tiering results pages=%s", len(updates))
            raise

        logger.info(
            "Tiering completed processed=%s skipped=%s distribution=%s",
            report.processed,
            len(report.skipped),
            distribution,
        )
        return report


def _tiering_fields(
    analysis: TierAnalysis,
    recent: PerformanceMetrics,
    baseline: PerformanceMetrics,
    trend: TrendResult,
    run_at: datetime,
) -> dict[str, Any]:
    return {
        "performance_tier": analysis.tier,
        "performance_score": analysis.score,
        "performance_priority": analysis.priority,
        "performance_reasoning": analysis.reasoning,
        "marketing_action": analysis.marketing_action,
        "technical_action": analysis.technical_action,
        "expected_impact": analysis.expected_impact,
        "timeframe": analysis.timeframe,
        "confidence": analysis.confidence,
        "last_tiering_run": run_at,
        "metrics": {
            "recent": recent.as_dict(),
            "baseline": baseline.as_dict(),
            "kpis": analysis.kpis.as_dict(),
            "trend": {
                "direction": trend.trend,
                "strength": trend.r_squared,
                "confidence": analysis.confidence,
            },
        },
    }


def get_tiering_service() -> TieringService:
    return TieringService(
        settings=get_tiering_settings(),
        lag_days=get_search_console_settings().data_lag_days,
    )
