"""
Data quality report schemas.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema, VerbatimSchema
from models.mapping import MappingResult


class QualityStatus(str, Enum):
    """Per-field quality classification."""
    COMPLETE = "complete"
    MISSING = "missing"
    CRITICAL = "critical"
    DUPLICATE = "duplicate"


class FieldQuality(VerbatimSchema):
    """Quality of one mapped field."""

    field_name: str
    source_value: Optional[Any] = None
    target_field: str
    confidence: float
    status: QualityStatus
    reason: str
    has_value: bool
    is_required: bool
    is_duplicate: bool = False
    duplicate_count: Optional[int] = None


class QualityMetrics(BaseSchema):
    """Aggregate quality numbers for one record."""

    total_fields: int
    complete_fields: int
    incomplete_fields: int
    critical_fields: int
    avg_confidence: float
    quality_score: float = Field(..., description="Complete required fields as % of the catalog")


class QualityReport(BaseSchema):
    """Required and additional fields with metrics."""

    required_fields: list[FieldQuality]
    additional_fields: list[FieldQuality]
    metrics: QualityMetrics


class QualityRequest(VerbatimSchema):
    """Request body for a quality report."""

    record: dict[str, Any] = Field(default_factory=dict)
    mappings: list[MappingResult]
    target_fields: list[str] = Field(default_factory=list)
