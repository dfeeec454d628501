from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A database URL must be configured through one of the supported names.
    - Search Console credentials are required while the scheduler is on.
    - Numeric tuning variables must parse when present.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    url_names = ("ANALYTICS_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    if not any(os.getenv(name, "").strip() for name in url_names):
        errors.append(
            "No database URL configured. Set ANALYTICS_DATABASE_URL or DATABASE_URL "
            "(or CLOUD_DATABASE_URL / LOCAL_DATABASE_URL)."
        )

    # --- Search Console credentials -------------------------------------
    scheduler_enabled = os.getenv("SCHEDULER_ENABLED", "true").strip().lower() in {"1", "true", "yes", "on"}
    credentials = os.getenv("SEARCH_CONSOLE_CREDENTIALS_FILE", "").strip() or os.getenv(
        "GOOGLE_APPLICATION_CREDENTIALS", ""
    ).strip()
    if scheduler_enabled and not credentials:
        errors.append(
            "SEARCH_CONSOLE_CREDENTIALS_FILE is not set but SCHEDULER_ENABLED is true. "
            "Point it at a service-account key or disable the scheduler with SCHEDULER_ENABLED=false."
        )

    # --- Numeric tuning -------------------------------------------------
    for name in ("INGEST_BATCH_SIZE", "SEARCH_RETRY_MAX_ATTEMPTS", "CRON_LEASE_TTL_SECONDS"):
        raw = os.getenv(name, "").strip()
        if raw and not raw.isdigit():
            errors.append(f"{name}='{raw}' is not a positive integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database;
    startup aborts otherwise. Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the scheduler on boot; shut it down on exit."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.config import get_scheduler_settings

    if not get_scheduler_settings().enabled:
        logging.getLogger(__name__).info("Scheduler disabled by SCHEDULER_ENABLED")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Search Performance Analytics API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import cron_router, pages_router

    application.include_router(cron_router)
    application.include_router(pages_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
