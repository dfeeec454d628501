"""Failure classification shared by the trigger endpoints and scheduler jobs."""

from __future__ import annotations

# Substrings that identify quota or rate-limit exhaustion in error messages.
QUOTA_ERROR_MARKERS = (
    "Quota exceeded",
    "RESOURCE_EXHAUSTED",
    "rateLimitExceeded",
    "quota",
)

QUOTA_STATUS_CODES = frozenset({429})

# gRPC status code for RESOURCE_EXHAUSTED.
QUOTA_GRPC_CODE = 8


def is_quota_error(exc: BaseException) -> bool:
    """
    True when *exc* or any exception it was raised from or while handling
    reports quota exhaustion.
    """

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if getattr(current, "status_code", None) in QUOTA_STATUS_CODES:
            return True
        if getattr(current, "reason", None) == "RESOURCE_EXHAUSTED":
            return True
        if getattr(current, "code", None) == QUOTA_GRPC_CODE:
            return True
        message = str(current)
        if any(marker in message for marker in QUOTA_ERROR_MARKERS):
            return True
        if current.__cause__ is not None or current.__suppress_context__:
            current = current.__cause__
        else:
            current = current.__context__
    return False
