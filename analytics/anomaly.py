"""
analytics/anomaly.py

Rolling-window z-score anomaly test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

MIN_WINDOW = 7
Z_THRESHOLD = 2.0


@dataclass(frozen=True)
class AnomalyResult:
    is_anomaly: bool
    sufficient_data: bool
    mean: float
    std_dev: float
    message: str


class AnomalyDetector:
    """
    Flags ``latest`` when it lies more than two population standard
    deviations from the window mean. Windows shorter than seven values are
    never flagged.
    """

    def __init__(self, min_window: int = MIN_WINDOW, z_threshold: float = Z_THRESHOLD) -> None:
        self._min_window = min_window
        self._z_threshold = z_threshold

    def detect(self, latest: float, window: Sequence[float]) -> AnomalyResult:
        if len(window) < self._min_window:
            return AnomalyResult(
                is_anomaly=False,
                sufficient_data=False,
                mean=0.0,
                std_dev=0.0,
                message="Insufficient data for anomaly detection.",
            )

        values = np.asarray(window, dtype=np.float64)
        mean = float(np.mean(values))
        std_dev = float(np.std(values))
        is_anomaly = std_dev > 0 and abs(latest - mean) > self._z_threshold * std_dev

        if is_anomaly:
            message = (
                f"Value of {latest:.2f} is a significant deviation from the recent average of {mean:.2f}."
            )
        else:
            message = f"Value of {latest:.2f} is stable within the recent average of {mean:.2f}."
        return AnomalyResult(
            is_anomaly=is_anomaly,
            sufficient_data=True,
            mean=mean,
            std_dev=std_dev,
            message=message,
        )
