"""
app/schemas/pages.py

Response schemas for the page read endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PageLossResponse(BaseModel):
    page: str
    previousClicks: int = Field(..., ge=0)
    currentClicks: int = Field(..., ge=0)
    changePercentage: float


class KeyInsightResponse(BaseModel):
    type: str
    message: str
    count: int
    impact: str


class PortfolioRecommendationResponse(BaseModel):
    priority: str
    action: str
    pagesAffected: int
    estimatedImpact: str
    timeframe: str


class TierSummaryResponse(BaseModel):
    lastRun: str | None = None
    totalPages: int
    distribution: dict[str, int]
    priorityBreakdown: dict[str, int]
    keyInsights: list[KeyInsightResponse] = Field(default_factory=list)
    recommendations: list[PortfolioRecommendationResponse] = Field(default_factory=list)


class TierSummaryEnvelope(BaseModel):
    summary: TierSummaryResponse
