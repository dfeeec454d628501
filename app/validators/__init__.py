"""
app/validators package marker.
"""

from app.validators.pipeline_validator import (
    PipelineErrorDetail,
    PipelineValidationError,
    parse_iso_date,
    require_site_url,
    validate_date_range,
    validate_threshold,
)

__all__ = [
    "PipelineErrorDetail",
    "PipelineValidationError",
    "parse_iso_date",
    "require_site_url",
    "validate_date_range",
    "validate_threshold",
]
