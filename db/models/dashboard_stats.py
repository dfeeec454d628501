"""
db/models/dashboard_stats.py

Latest site-wide smart metrics and health score, one row per site.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload


class DashboardStatsStatus:
    SUCCESS = "success"
    NO_DATA = "no_data"
    MINIMAL = "minimal"


class DashboardStats(Base):
    __tablename__ = "dashboard_stats"

    id: Mapped[str] = mapped_column(String(320), primary_key=True)
    site_url: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    days_of_history: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metrics: Mapped[dict[str, Any]] = mapped_column(JSONPayload, nullable=False, default=dict)
    health_score: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload, nullable=True)
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)
