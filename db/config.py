"""
Environment-driven database configuration for the analytics pipeline.
"""

from __future__ import annotations

import os
from pathlib import Path

_CLOUD_LIKE_ENVIRONMENTS = {"prod", "production", "staging", "cloud"}


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` in the project root.
    Variables already present in the process environment win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export ") :].strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite postgres URLs to the psycopg (v3) driver form SQLAlchemy expects.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def resolve_database_url() -> str:
    """
    Resolve the analytics database URL.

    Priority:
    1) ANALYTICS_DATABASE_URL / DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("ANALYTICS_DATABASE_URL", "DATABASE_URL"):
        direct_url = os.getenv(name, "").strip()
        if direct_url:
            return normalize_postgres_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in _CLOUD_LIKE_ENVIRONMENTS and cloud_url:
        return normalize_postgres_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_postgres_url(local_url)

    raise RuntimeError(
        "No database URL configured. Set ANALYTICS_DATABASE_URL or DATABASE_URL, "
        "or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
