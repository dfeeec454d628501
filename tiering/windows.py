"""
tiering/windows.py

Recent and baseline analysis windows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class AnalysisWindows:
    recent: DateWindow
    baseline: DateWindow


def analysis_windows(
    today: date,
    *,
    lag_days: int = 2,
    recent_days: int = 28,
    baseline_days: int = 28,
) -> AnalysisWindows:
    """
    The recent window ends ``lag_days`` before *today* (publication delay of
    the source API); the baseline window ends the day before the recent
    window starts, so the two never overlap.
    """

    end = today - timedelta(days=lag_days)
    recent_start = end - timedelta(days=recent_days)
    baseline_end = recent_start - timedelta(days=1)
    baseline_start = recent_start - timedelta(days=baseline_days)
    return AnalysisWindows(
        recent=DateWindow(start=recent_start, end=end),
        baseline=DateWindow(start=baseline_start, end=baseline_end),
    )
