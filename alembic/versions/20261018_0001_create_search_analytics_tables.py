"""create search analytics tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "raw_events",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("site_url", sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("query", sa.Text(), nullable=False),
        sa.Column("page", sa.Text(), nullable=False, comment="Normalized page URL"),
        sa.Column("device", sa.String(length=32), nullable=False),
        sa.Column("country", sa.String(length=16), nullable=False),
        sa.Column("search_appearance", sa.String(length=64), nullable=True),
        sa.Column("clicks", sa.Integer(), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False),
        sa.Column("position", sa.Float(), nullable=False),
        sa.Column("ingested_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_raw_events_site_date", "raw_events", ["site_url", "date"], unique=False)
    op.create_index(
        "ix_raw_events_site_page_date",
        "raw_events",
        ["site_url", "page", "date"],
        unique=False,
    )

    op.create_table(
        "daily_aggregates",
        sa.Column("id", sa.String(length=320), nullable=False, comment="daily_<YYYYMMDD>_<site slug>_<sha1 prefix>"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("site_url", sa.String(length=255), nullable=False),
        sa.Column("total_clicks", sa.Integer(), nullable=False),
        sa.Column("total_impressions", sa.Integer(), nullable=False),
        sa.Column("average_ctr", sa.Float(), nullable=False),
        sa.Column("average_position", sa.Float(), nullable=False),
        sa.Column("aggregates_by_country", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("aggregates_by_device", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_daily_aggregates_site_date",
        "daily_aggregates",
        ["site_url", "date"],
        unique=False,
    )

    op.create_table(
        "pages",
        sa.Column("id", sa.String(length=768), nullable=False),
        sa.Column("url", sa.Text(), nullable=False, comment="Normalized page URL"),
        sa.Column("original_url", sa.Text(), nullable=True),
        sa.Column("site_url", sa.String(length=255), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("performance_tier", sa.String(length=32), nullable=True),
        sa.Column("performance_score", sa.Float(), nullable=True),
        sa.Column("performance_priority", sa.String(length=16), nullable=True),
        sa.Column("performance_reasoning", sa.Text(), nullable=True),
        sa.Column("marketing_action", sa.Text(), nullable=True),
        sa.Column("technical_action", sa.Text(), nullable=True),
        sa.Column("expected_impact", sa.Text(), nullable=True),
        sa.Column("timeframe", sa.String(length=64), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("last_tiering_run", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last90days_impressions", sa.Integer(), nullable=True),
        sa.Column("prev90days_impressions", sa.Integer(), nullable=True),
        sa.Column("impressions_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pages_site_url", "pages", ["site_url"], unique=False)
    op.create_index("ix_pages_performance_tier", "pages", ["performance_tier"], unique=False)
    op.create_index("ix_pages_last_tiering_run", "pages", ["last_tiering_run"], unique=False)

    op.create_table(
        "tiering_summary",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("last_run", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_pages_processed", sa.Integer(), nullable=False),
        sa.Column("total_pages_skipped", sa.Integer(), nullable=False),
        sa.Column("tier_distribution", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("priority_breakdown", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("analysis_config", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "dashboard_stats",
        sa.Column("id", sa.String(length=320), nullable=False),
        sa.Column("site_url", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("days_of_history", sa.Integer(), nullable=False),
        sa.Column("metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("health_score", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "run_leases",
        sa.Column("id", sa.String(length=320), nullable=False, comment="<stage>:<site slug>_<sha1 prefix>"),
        sa.Column("stage", sa.String(length=64), nullable=False),
        sa.Column("site_url", sa.String(length=255), nullable=False),
        sa.Column("holder", sa.String(length=64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("run_leases")
    op.drop_table("dashboard_stats")
    op.drop_table("tiering_summary")
    op.drop_index("ix_pages_last_tiering_run", table_name="pages")
    op.drop_index("ix_pages_performance_tier", table_name="pages")
    op.drop_index("ix_pages_site_url", table_name="pages")
    op.drop_table("pages")
    op.drop_index("ix_daily_aggregates_site_date", table_name="daily_aggregates")
    op.drop_table("daily_aggregates")
    op.drop_index("ix_raw_events_site_page_date", table_name="raw_events")
    op.drop_index("ix_raw_events_site_date", table_name="raw_events")
    op.drop_table("raw_events")
