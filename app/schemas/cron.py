"""
app/schemas/cron.py

Response schema for scheduler-triggered pipeline stages.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

RunStatus = Literal["success", "degraded", "skipped", "failed"]


class CronRunResponse(BaseModel):
    """
    Outcome of one stage run for one site.
    """

    status: RunStatus
    stage: str
    site_url: str | None = None
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
