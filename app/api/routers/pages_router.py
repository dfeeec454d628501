"""
app/api/routers/pages_router.py

Read endpoints for tiered pages and click losses.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.schemas.pages import PageLossResponse, TierSummaryEnvelope
from app.services.page_service import (
    DEFAULT_PAGE_LIMIT,
    SORT_SCORE,
    TieringSummaryNotFoundError,
    find_page_losses,
    list_tiered_pages,
    tier_summary,
)
from app.validators.pipeline_validator import PipelineValidationError
from db.session import get_db

router = APIRouter(prefix="/pages", tags=["pages"])


@router.get("/tiers", response_model=None)
def get_page_tiers(
    tier: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    summary: bool = Query(default=False, description="Return tier statistics and insights instead of pages"),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=1000),
    sort_by: str = Query(default=SORT_SCORE, alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
) -> TierSummaryEnvelope | list[dict[str, Any]]:
    """
    Pages tiered in the last seven days, or the summary of the latest run
    when ``summary=true``.
    """

    if summary:
        try:
            result = tier_summary(db=db)
        except TieringSummaryNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return TierSummaryEnvelope.model_validate({"summary": result.as_dict()})

    try:
        return list_tiered_pages(
            db=db,
            tier=tier,
            priority=priority,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/losses", response_model=list[PageLossResponse])
def get_page_losses(
    site_url: str = Query(..., description="Site identifier"),
    current_start_date: str = Query(..., alias="currentStartDate"),
    current_end_date: str = Query(..., alias="currentEndDate"),
    previous_start_date: str = Query(..., alias="previousStartDate"),
    previous_end_date: str = Query(..., alias="previousEndDate"),
    threshold: float = Query(..., description="Minimum drop as a fraction between 0 and 1"),
    db: Session = Depends(get_db),
) -> list[PageLossResponse]:
    try:
        losses = find_page_losses(
            db=db,
            site_url=site_url,
            current_start=current_start_date,
            current_end=current_end_date,
            previous_start=previous_start_date,
            previous_end=previous_end_date,
            threshold=threshold,
        )
    except PipelineValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc

    return [
        PageLossResponse(
            page=loss.page,
            previousClicks=loss.previous_clicks,
            currentClicks=loss.current_clicks,
            changePercentage=loss.change_percentage,
        )
        for loss in losses
    ]
