"""
Time-series analytics: linear trend fitting, anomaly detection and
smart-metric recommendations. No I/O.
"""

from analytics.anomaly import AnomalyDetector, AnomalyResult
from analytics.trend import TrendAnalyzer, TrendResult

__all__ = ["AnomalyDetector", "AnomalyResult", "TrendAnalyzer", "TrendResult"]
