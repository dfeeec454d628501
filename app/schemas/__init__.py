"""
app/schemas package marker.
"""

from app.schemas.cron import CronRunResponse
from app.schemas.pages import (
    KeyInsightResponse,
    PageLossResponse,
    PortfolioRecommendationResponse,
    TierSummaryEnvelope,
    TierSummaryResponse,
)

__all__ = [
    "CronRunResponse",
    "KeyInsightResponse",
    "PageLossResponse",
    "PortfolioRecommendationResponse",
    "TierSummaryEnvelope",
    "TierSummaryResponse",
]
