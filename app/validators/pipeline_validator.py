"""
app/validators/pipeline_validator.py

Input validation for pipeline runs. Every check here runs before any remote
call or database write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any


@dataclass(frozen=True)
class PipelineErrorDetail:
    """
    Structured validation error detail.
    """

    code: str
    message: str
    field: str | None = None


class PipelineValidationError(ValueError):
    """
    Raised when a run is requested with malformed inputs.
    """

    def __init__(self, *, message: str, errors: tuple[PipelineErrorDetail, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {"code": error.code, "message": error.message, "field": error.field}
                for error in self.errors
            ],
        }


def _fail(code: str, message: str, field: str) -> PipelineValidationError:
    return PipelineValidationError(
        message=message,
        errors=(PipelineErrorDetail(code=code, message=message, field=field),),
    )


def require_site_url(site_url: str | None) -> str:
    if site_url is None or not str(site_url).strip():
        raise _fail("site_url_missing", "A site identifier is required.", "site_url")
    return str(site_url).strip()


def parse_iso_date(value: date | str | None, *, field: str) -> date:
    """
    Accept a ``date`` or a strict ``YYYY-MM-DD`` string.
    """

    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise _fail("date_missing", f"{field} is required (YYYY-MM-DD).", field)
    raw = str(value).strip()
    if len(raw) != 10:
        raise _fail("date_malformed", f"{field} must be formatted YYYY-MM-DD, got {raw!r}.", field)
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise _fail("date_malformed", f"{field} must be formatted YYYY-MM-DD, got {raw!r}.", field) from exc


def validate_date_range(
    start_date: date | str | None,
    end_date: date | str | None,
) -> tuple[date, date]:
    start = parse_iso_date(start_date, field="start_date")
    end = parse_iso_date(end_date, field="end_date")
    if start > end:
        raise _fail(
            "date_range_inverted",
            f"start_date {start.isoformat()} is after end_date {end.isoformat()}.",
            "start_date",
        )
    return start, end


def validate_threshold(value: float | None) -> float:
    if value is None or not 0.0 <= value <= 1.0:
        raise _fail("threshold_out_of_range", "Threshold must be a number between 0 and 1.", "threshold")
    return float(value)
