"""
db/models/raw_event.py

One search-performance row exactly as returned by the Search Analytics API,
with its page URL normalized. Rows are append-only.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class RawAnalyticsEvent(Base):
    __tablename__ = "raw_events"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    site_url: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    query: Mapped[str] = mapped_column(Text, nullable=False, default="")
    page: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Normalized page URL",
    )
    device: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    search_appearance: Mapped[str | None] = mapped_column(String(64), nullable=True)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_raw_events_site_date", "site_url", "date"),
        Index("ix_raw_events_site_page_date", "site_url", "page", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<RawAnalyticsEvent site={self.site_url!r} date={self.date} "
            f"page={self.page!r} clicks={self.clicks} impressions={self.impressions}>"
        )
