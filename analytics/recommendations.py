"""
analytics/recommendations.py

Per-metric smart metric record and its rule-based recommendations.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from analytics.trend import TREND_DOWN, TREND_UP

METRIC_TOTAL_CLICKS = "totalClicks"
METRIC_TOTAL_IMPRESSIONS = "totalImpressions"
METRIC_AVERAGE_CTR = "averageCtr"
METRIC_AVERAGE_POSITION = "averagePosition"

SMART_METRIC_KEYS = (
    METRIC_TOTAL_CLICKS,
    METRIC_TOTAL_IMPRESSIONS,
    METRIC_AVERAGE_CTR,
    METRIC_AVERAGE_POSITION,
)

LOW_CTR_THRESHOLD = 0.02
STRONG_TREND_CONFIDENCE = 0.75


@dataclass
class SmartMetric:
    """
    Fields stay ``None`` until enough history exists to compute them.
    """

    historical_avg: float
    is_anomaly: bool | None = None
    message: str | None = "Not enough data for anomaly detection."
    trend: str | None = None
    trend_confidence: float | None = None
    thirty_day_forecast: float | None = None
    industry_benchmark: float = 0.0
    recommendations: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        payload = asdict(self)
        return {
            "isAnomaly": payload["is_anomaly"],
            "message": payload["message"],
            "trend": payload["trend"],
            "trendConfidence": payload["trend_confidence"],
            "thirtyDayForecast": payload["thirty_day_forecast"],
            "benchmarks": {
                "industry": payload["industry_benchmark"],
                "historicalAvg": payload["historical_avg"],
            },
            "recommendations": payload["recommendations"],
        }


def generate_recommendations(metric_name: str, metric: SmartMetric) -> list[str]:
    recommendations: list[str] = []
    if metric.is_anomaly and metric.trend == TREND_DOWN:
        recommendations.append(f"Investigate the sharp downward trend in {metric_name}.")
    if (
        metric.trend == TREND_DOWN
        and metric.trend_confidence is not None
        and metric.trend_confidence > STRONG_TREND_CONFIDENCE
    ):
        recommendations.append(f"The downward trend for {metric_name} is strong. Prioritize analysis.")
    if metric_name == METRIC_AVERAGE_CTR and metric.historical_avg < LOW_CTR_THRESHOLD:
        recommendations.append("Overall CTR is low. Review and optimize page titles and meta descriptions.")
    # A rising average position number means rankings are getting worse.
    if metric_name == METRIC_AVERAGE_POSITION and metric.trend == TREND_UP:
        recommendations.append("Average position is declining. Review keyword strategy.")
    if not recommendations:
        recommendations.append(f"The {metric_name} metric appears stable. Continue monitoring.")
    return recommendations
