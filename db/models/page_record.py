"""
db/models/page_record.py

Tracked page with its latest performance tier and recommendation payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload, TimestampMixin


class PageRecord(TimestampMixin, Base):
    """
    A page discovered from raw events (or populated externally).

    The primary key is the sanitized normalized URL, so discovering the same
    page twice updates one row. Every tiering run rewrites the
    ``performance_*`` columns and ``metrics`` in place; the pipeline never
    deletes pages.

    ``metrics`` layout::

        {
            "recent":   {"totalClicks": ..., "totalImpressions": ...,
                         "averageCtr": ..., "averagePosition": ...,
                         "dataPoints": [...], "period": "..."},
            "baseline": {...},
            "kpis":     {"clicksChange": ..., "impressionsChange": ...,
                         "ctrChange": ..., "positionChange": ...,
                         "trendStrength": ...},
            "trend":    {"direction": "up", "strength": 0.7, "confidence": 0.7}
        }
    """

    __tablename__ = "pages"

    id: Mapped[str] = mapped_column(String(768), primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False, comment="Normalized page URL")
    original_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_url: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)

    performance_tier: Mapped[str | None] = mapped_column(String(32), nullable=True)
    performance_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    performance_priority: Mapped[str | None] = mapped_column(String(16), nullable=True)
    performance_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    marketing_action: Mapped[str | None] = mapped_column(Text, nullable=True)
    technical_action: Mapped[str | None] = mapped_column(Text, nullable=True)
    expected_impact: Mapped[str | None] = mapped_column(Text, nullable=True)
    timeframe: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    metrics: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload, nullable=True)
    last_tiering_run: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last90days_impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prev90days_impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    impressions_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_pages_site_url", "site_url"),
        Index("ix_pages_performance_tier", "performance_tier"),
        Index("ix_pages_last_tiering_run", "last_tiering_run"),
    )

    def __repr__(self) -> str:
        return f"<PageRecord id={self.id!r} tier={self.performance_tier!r}>"
