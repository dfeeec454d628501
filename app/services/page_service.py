"""
app/services/page_service.py

Page discovery from raw events, click-loss detection and the read side of
page tiering.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.pipeline import PageLoss, PagePopulationResult
from app.mappers.url_normalizer import original_url_for
from app.repositories.page_repository import PageRepository, page_title_from_url
from app.repositories.raw_event_repository import RawEventRepository
from app.repositories.summary_repository import TieringSummaryRepository
from app.validators.pipeline_validator import require_site_url, validate_date_range, validate_threshold
from db.models.page_record import PageRecord
from tiering import benchmarks
from tiering.rules import round_half_up
from tiering.summary import TierSummary, build_tier_summary
from tiering.types import Priority, Tier

logger = logging.getLogger(__name__)

RECENT_TIERING_DAYS = 7
DEFAULT_PAGE_LIMIT = 50

SORT_SCORE = "performance_score"
SORT_CLICKS = "clicks"
SORT_PRIORITY = "priority"
SORT_FIELDS = (SORT_SCORE, SORT_CLICKS, SORT_PRIORITY)

_PRIORITY_RANK = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
    Priority.MONITOR: 0,
}


class TieringSummaryNotFoundError(LookupError):
    """Raised when no tiering run has been stored yet."""


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def populate_pages(*, db: Session, site_url: str) -> PagePopulationResult:
    """
    Create a page record for every distinct page seen in the site's raw
    events. Existing records keep their tiering data.
    """

    site = require_site_url(site_url)
    urls = RawEventRepository(db).distinct_pages(site)
    repository = PageRepository(db)

    created = 0
    try:
        for url in urls:
            _, was_created = repository.ensure_page(
                url=url,
                site_url=site,
                title=page_title_from_url(url),
                original_url=url,
            )
            created += int(was_created)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to populate pages site=%s", site)
        raise

    logger.info("Pages populated site=%s seen=%s created=%s", site, len(urls), created)
    return PagePopulationResult(site_url=site, pages_seen=len(urls), pages_created=created)


# ---------------------------------------------------------------------------
# Losses
# ---------------------------------------------------------------------------


def find_page_losses(
    *,
    db: Session,
    site_url: str,
    current_start: date | str,
    current_end: date | str,
    previous_start: date | str,
    previous_end: date | str,
    threshold: float | None,
) -> list[PageLoss]:
    """
    Pages whose clicks dropped by more than *threshold* (a fraction) from
    the previous window to the current one, steepest drop first. Pages
    without previous clicks are ignored.
    """

    site = require_site_url(site_url)
    limit = validate_threshold(threshold)
    current_from, current_to = validate_date_range(current_start, current_end)
    previous_from, previous_to = validate_date_range(previous_start, previous_end)

    repository = RawEventRepository(db)
    current = repository.clicks_by_page(site_url=site, start_date=current_from, end_date=current_to)
    previous = repository.clicks_by_page(site_url=site, start_date=previous_from, end_date=previous_to)

    losses: list[PageLoss] = []
    for page, previous_clicks in previous.items():
        if previous_clicks <= 0:
            continue
        current_clicks = current.get(page, 0)
        change = (current_clicks - previous_clicks) / previous_clicks
        if change < 0 and abs(change) > limit:
            losses.append(
                PageLoss(
                    page=page,
                    previous_clicks=previous_clicks,
                    current_clicks=current_clicks,
                    change_percentage=change * 100,
                )
            )
    losses.sort(key=lambda loss: loss.change_percentage)
    return losses


# ---------------------------------------------------------------------------
# Tier read side
# ---------------------------------------------------------------------------


def tier_summary(*, db: Session, now: datetime | None = None) -> TierSummary:
    """
    Distribution from the latest run plus priorities of pages tiered in the
    last seven days.
    """

    stats = TieringSummaryRepository(db).get_latest()
    if stats is None:
        raise TieringSummaryNotFoundError("No tiering statistics found. Run the tiering job first.")

    now = now or datetime.now(timezone.utc)
    recent_pages = PageRepository(db).list_tiered(since=now - timedelta(days=RECENT_TIERING_DAYS))
    return build_tier_summary(
        last_run=stats.last_run,
        distribution=dict(stats.tier_distribution or {}),
        priorities=(page.performance_priority for page in recent_pages),
    )


def list_tiered_pages(
    *,
    db: Session,
    tier: str | None = None,
    priority: str | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
    sort_by: str = SORT_SCORE,
    sort_order: str = "desc",
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort_by '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}.")
    if sort_order not in ("asc", "desc"):
        raise ValueError("sort_order must be 'asc' or 'desc'.")
    if limit < 1:
        raise ValueError("limit must be a positive integer.")

    now = now or datetime.now(timezone.utc)
    pages = PageRepository(db).list_tiered(
        since=now - timedelta(days=RECENT_TIERING_DAYS),
        tier=tier,
        priority=priority,
    )
    items = [_page_payload(page) for page in pages]
    items.sort(key=_SORT_KEYS[sort_by], reverse=sort_order == "desc")
    return [_enrich(item) for item in items[:limit]]


def _page_payload(page: PageRecord) -> dict[str, Any]:
    return {
        "url": original_url_for(page.id, page.original_url, page.url),
        "title": page.title or "Untitled Page",
        "performance_tier": page.performance_tier or "Unknown",
        "performance_score": page.performance_score or 0,
        "performance_priority": page.performance_priority or Priority.MONITOR,
        "performance_reasoning": page.performance_reasoning or "No analysis available",
        "marketing_action": page.marketing_action or "Monitor performance",
        "technical_action": page.technical_action or "Check basic SEO health",
        "expected_impact": page.expected_impact or "Unknown impact",
        "timeframe": page.timeframe or "TBD",
        "confidence": page.confidence or 0,
        "metrics": page.metrics,
        "last_tiering_run": page.last_tiering_run.isoformat() if page.last_tiering_run else "",
    }


def _recent_clicks(item: dict[str, Any]) -> int:
    return ((item.get("metrics") or {}).get("recent") or {}).get("totalClicks", 0) or 0


_SORT_KEYS = {
    SORT_SCORE: lambda item: item["performance_score"],
    SORT_CLICKS: _recent_clicks,
    SORT_PRIORITY: lambda item: _PRIORITY_RANK.get(item["performance_priority"], 0),
}


def _enrich(item: dict[str, Any]) -> dict[str, Any]:
    metrics = item.get("metrics") or {}
    recent = metrics.get("recent")
    enriched = dict(item)
    enriched["monthlyClicksPotential"] = (
        round_half_up(recent.get("totalClicks", 0) * 30 / 28) if recent else None
    )
    enriched["improvementPotential"] = improvement_potential(item)
    enriched["urgencyScore"] = urgency_score(item)
    enriched["competitiveThreat"] = competitive_threat(item)
    return enriched


def improvement_potential(item: dict[str, Any]) -> str:
    metrics = item.get("metrics")
    if not metrics or not metrics.get("recent"):
        return "Unknown"

    recent = metrics["recent"]
    tier = item["performance_tier"]
    if tier == Tier.QUICK_WINS and recent.get("totalImpressions", 0) > 1000:
        potential = recent["totalImpressions"] * (benchmarks.AVERAGE_CTR - recent.get("averageCtr", 0))
        return f"+{round_half_up(potential)} clicks/month"
    if tier == Tier.HIDDEN_GEMS and recent.get("averagePosition", 0) <= 10:
        return f"+{round_half_up(recent.get('totalImpressions', 0) * 0.02)} clicks/month"
    if tier == Tier.RISING_STARS:
        growth = (metrics.get("kpis") or {}).get("clicksChange", 0) or 0
        return f"+{round_half_up(growth * 100 * 1.5)}% potential"
    return "Monitor trends"


def urgency_score(item: dict[str, Any]) -> int:
    urgency = {Priority.CRITICAL: 40, Priority.HIGH: 30, Priority.MEDIUM: 20, Priority.LOW: 10}.get(
        item["performance_priority"], 0
    )
    urgency += (100 - item["performance_score"]) * 0.3
    if item["performance_tier"] in (Tier.AT_RISK, Tier.DECLINING):
        urgency += item["confidence"] * 20
    return min(100, round_half_up(urgency))


def competitive_threat(item: dict[str, Any]) -> str:
    metrics = item.get("metrics")
    if not metrics or not metrics.get("recent") or not metrics.get("kpis"):
        return "Low"

    kpis = metrics["kpis"]
    if kpis.get("positionChange", 0) > 0.1 and kpis.get("clicksChange", 0) < -0.15:
        return "High"
    if kpis.get("positionChange", 0) > 0.05 or metrics["recent"].get("averagePosition", 0) > 15:
        return "Medium"
    return "Low"
