"""
db/models/run_lease.py

Time-bounded lease that keeps two runs of the same stage for the same site
from overlapping.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class RunLease(Base):
    __tablename__ = "run_leases"

    id: Mapped[str] = mapped_column(String(320), primary_key=True, comment="<stage>:<site slug>_<sha1 prefix>")
    stage: Mapped[str] = mapped_column(String(64), nullable=False)
    site_url: Mapped[str] = mapped_column(String(255), nullable=False)
    holder: Mapped[str] = mapped_column(String(64), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
