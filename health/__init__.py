"""
Site health scoring.
"""

from health.scoring import HealthScore, HealthScoreCalculator, HealthScoreComponent

__all__ = ["HealthScore", "HealthScoreCalculator", "HealthScoreComponent"]
