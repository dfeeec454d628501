"""
app/services/smart_metrics_service.py

Site-wide smart metrics (trend, forecast, anomaly, recommendations) and the
health score, computed from stored daily aggregates.

What gets computed depends on how many days of history exist:

    days   trend + forecast   anomaly   health score
    -----  -----------------  --------  ------------
    < 7    no                 no        no
    7-13   yes                no        no
    >= 14  yes                yes       yes
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from analytics.anomaly import AnomalyDetector
from analytics.recommendations import (
    METRIC_AVERAGE_CTR,
    METRIC_AVERAGE_POSITION,
    SMART_METRIC_KEYS,
    SmartMetric,
    generate_recommendations,
)
from analytics.trend import TrendAnalyzer
from app.config import SmartMetricsSettings, get_smart_metrics_settings
from app.domain.pipeline import SmartMetricsReport
from app.repositories.daily_aggregate_repository import DailyAggregateRepository
from app.repositories.summary_repository import DashboardStatsRepository
from app.validators.pipeline_validator import require_site_url
from db.models.daily_aggregate import DailyAggregate
from db.models.dashboard_stats import DashboardStatsStatus
from health.scoring import HealthScoreCalculator
from tiering import benchmarks

logger = logging.getLogger(__name__)

_INDUSTRY_BENCHMARKS = {METRIC_AVERAGE_CTR: benchmarks.AVERAGE_CTR}


def _series(aggregates: list[DailyAggregate], key: str) -> list[float]:
    attribute = {
        "totalClicks": "total_clicks",
        "totalImpressions": "total_impressions",
        "averageCtr": "average_ctr",
        "averagePosition": "average_position",
    }[key]
    return [float(getattr(aggregate, attribute)) for aggregate in aggregates]


class SmartMetricsService:
    def __init__(
        self,
        *,
        settings: SmartMetricsSettings | None = None,
        trend_analyzer: TrendAnalyzer | None = None,
        anomaly_detector: AnomalyDetector | None = None,
        health_calculator: HealthScoreCalculator | None = None,
    ) -> None:
        self._settings = settings or SmartMetricsSettings()
        self._trend_analyzer = trend_analyzer or TrendAnalyzer()
        self._anomaly_detector = anomaly_detector or AnomalyDetector()
        self._health_calculator = health_calculator or HealthScoreCalculator()

    def build_metric(self, key: str, series: list[float]) -> SmartMetric:
        n = len(series)
        metric = SmartMetric(
            historical_avg=sum(series) / n if n else 0.0,
            industry_benchmark=_INDUSTRY_BENCHMARKS.get(key, 0.0),
        )

        if n >= self._settings.min_trend_days:
            trend = self._trend_analyzer.analyze(series)
            metric.trend = trend.trend
            metric.trend_confidence = trend.r_squared
            metric.thirty_day_forecast = TrendAnalyzer.forecast(trend, n)

        if n >= self._settings.min_health_days:
            window = series[-min(self._settings.anomaly_window_days, n):]
            anomaly = self._anomaly_detector.detect(series[-1], window)
            metric.is_anomaly = anomaly.is_anomaly
            metric.message = anomaly.message

        metric.recommendations = generate_recommendations(key, metric)
        return metric

    def compute(
        self,
        *,
        db: Session,
        site_url: str,
        today: date | None = None,
    ) -> SmartMetricsReport:
        """
        Recompute and store the dashboard stats for *site_url*.

        A site without any aggregates gets a ``no_data`` record instead of
        an error.
        """

        site = require_site_url(site_url)
        today = today or datetime.now(timezone.utc).date()
        start = today - timedelta(days=self._settings.history_days)
        aggregates = DailyAggregateRepository(db).list_for_site(site, start, today)
        days = len(aggregates)

        if not aggregates:
            report = SmartMetricsReport(site_url=site, status=DashboardStatsStatus.NO_DATA, days_of_history=0)
            note = "No daily aggregates found for the history window."
        else:
            metrics = {key: self.build_metric(key, _series(aggregates, key)) for key in SMART_METRIC_KEYS}
            health = None
            if days >= self._settings.min_health_days:
                health = self._health_calculator.compute(
                    average_position=metrics[METRIC_AVERAGE_POSITION].historical_avg,
                    average_ctr=metrics[METRIC_AVERAGE_CTR].historical_avg,
                ).as_dict()
            report = SmartMetricsReport(
                site_url=site,
                status=DashboardStatsStatus.SUCCESS,
                days_of_history=days,
                metrics={key: metric.as_dict() for key, metric in metrics.items()},
                health_score=health,
            )
            note = None

        try:
            DashboardStatsRepository(db).save(
                site_url=site,
                status=report.status,
                last_updated=datetime.now(timezone.utc),
                days_of_history=report.days_of_history,
                metrics=report.metrics,
                health_score=report.health_score,
                note=note,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store dashboard stats site=%s", site)
            raise

        logger.info(
            "Smart metrics stored site=%s status=%s days=%s health=%s",
            site,
            report.status,
            days,
            report.health_score["overall"] if report.health_score else None,
        )
        return report

    def write_fallback(self, *, db: Session, site_url: str, reason: str) -> bool:
        """
        Make sure a minimal dashboard record exists after a quota failure.
        Returns ``False`` when a record was already present.
        """

        repository = DashboardStatsRepository(db)
        if repository.get(site_url) is not None:
            return False
        try:
            repository.save(
                site_url=site_url,
                status=DashboardStatsStatus.MINIMAL,
                last_updated=datetime.now(timezone.utc),
                days_of_history=0,
                metrics={},
                health_score=None,
                note=reason[:255],
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store fallback dashboard stats site=%s", site_url)
            raise
        logger.warning("Fallback dashboard stats written site=%s reason=%s", site_url, reason)
        return True


def get_smart_metrics_service() -> SmartMetricsService:
    return SmartMetricsService(settings=get_smart_metrics_settings())
