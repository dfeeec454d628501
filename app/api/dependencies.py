"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, Header, HTTPException, Query, status

from app.config import CronSettings, get_cron_settings

logger = logging.getLogger(__name__)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def verify_cron_request(
    secret: str | None = Query(default=None, description="Shared trigger secret"),
    authorization: str | None = Header(default=None),
    user_agent: str | None = Header(default=None),
    settings: CronSettings = Depends(get_cron_settings),
) -> None:
    """
    Accept the request only when it carries the shared secret (query
    parameter or bearer token) and the scheduler's user agent.
    """

    if not settings.shared_secret:
        logger.error("Trigger rejected: ADMIN_SHARED_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret not configured.",
        )

    if user_agent != settings.expected_user_agent:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid user-agent.",
        )

    provided = secret or _bearer_token(authorization)
    if provided is None or not hmac.compare_digest(provided.encode(), settings.shared_secret.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid secret.",
        )
