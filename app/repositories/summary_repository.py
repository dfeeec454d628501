"""
app/repositories/summary_repository.py

DB access for the singleton tiering summary and per-site dashboard stats.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.domain.document_ids import TIERING_SUMMARY_ID, dashboard_stats_id
from db.models.dashboard_stats import DashboardStats
from db.models.tiering_summary import TieringSummary


class TieringSummaryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def save(
        self,
        *,
        last_run: datetime,
        total_pages_processed: int,
        total_pages_skipped: int,
        tier_distribution: dict[str, int],
        priority_breakdown: dict[str, int],
        analysis_config: dict[str, Any],
    ) -> TieringSummary:
        return self._session.merge(
            TieringSummary(
                id=TIERING_SUMMARY_ID,
                last_run=last_run,
                total_pages_processed=total_pages_processed,
                total_pages_skipped=total_pages_skipped,
                tier_distribution=tier_distribution,
                priority_breakdown=priority_breakdown,
                analysis_config=analysis_config,
            )
        )

    def get_latest(self) -> TieringSummary | None:
        return self._session.get(TieringSummary, TIERING_SUMMARY_ID)


class DashboardStatsRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def save(
        self,
        *,
        site_url: str,
        status: str,
        last_updated: datetime,
        days_of_history: int,
        metrics: dict[str, Any],
        health_score: dict[str, Any] | None,
        note: str | None = None,
    ) -> DashboardStats:
        return self._session.merge(
            DashboardStats(
                id=dashboard_stats_id(site_url),
                site_url=site_url,
                status=status,
                last_updated=last_updated,
                days_of_history=days_of_history,
                metrics=metrics,
                health_score=health_score,
                note=note,
            )
        )

    def get(self, site_url: str) -> DashboardStats | None:
        return self._session.get(DashboardStats, dashboard_stats_id(site_url))
