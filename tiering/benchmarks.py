"""
tiering/benchmarks.py

Industry benchmarks and change thresholds used by page scoring and
classification.
"""

from __future__ import annotations

from typing import Final

# Industry click-through rates for organic results.
AVERAGE_CTR: Final[float] = 0.045
GOOD_CTR: Final[float] = 0.06
EXCELLENT_CTR: Final[float] = 0.08
TOP_POSITIONS: Final[int] = 5
VISIBLE_POSITIONS: Final[int] = 20

# Relative click change thresholds.
SIGNIFICANT_CHANGE: Final[float] = 0.15
STRONG_CHANGE: Final[float] = 0.25
DRAMATIC_CHANGE: Final[float] = 0.40

MIN_CONFIDENCE: Final[float] = 0.3
MIN_IMPRESSIONS: Final[int] = 100
MIN_CLICKS: Final[int] = 10


def industry_benchmarks() -> dict[str, float]:
    return {
        "averageCtr": AVERAGE_CTR,
        "goodCtr": GOOD_CTR,
        "excellentCtr": EXCELLENT_CTR,
        "topPositions": TOP_POSITIONS,
        "visiblePositions": VISIBLE_POSITIONS,
    }


def performance_thresholds() -> dict[str, float]:
    return {
        "significantChange": SIGNIFICANT_CHANGE,
        "strongChange": STRONG_CHANGE,
        "dramaticChange": DRAMATIC_CHANGE,
        "minConfidence": MIN_CONFIDENCE,
        "minImpressions": MIN_IMPRESSIONS,
        "minClicks": MIN_CLICKS,
    }
