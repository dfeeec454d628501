"""
db/models/tiering_summary.py

Singleton summary of the most recent tiering run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload


class TieringSummary(Base):
    """
    ``tier_distribution`` always contains all nine tiers and its counts sum
    to ``total_pages_processed``.
    """

    __tablename__ = "tiering_summary"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_run: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_pages_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pages_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier_distribution: Mapped[dict[str, int]] = mapped_column(JSONPayload, nullable=False)
    priority_breakdown: Mapped[dict[str, int]] = mapped_column(JSONPayload, nullable=False)
    analysis_config: Mapped[dict[str, Any]] = mapped_column(JSONPayload, nullable=False)
