"""
Project and upload schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema
from models.normalization import SheetLayout


class ProjectStatus(str, Enum):
    """Lifecycle of an uploaded file."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ProjectCreate(BaseSchema):
    """Create a project for an uploaded file."""

    name: str = Field(..., min_length=1, max_length=255)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0)
    total_rows: int = Field(..., ge=0)
    status: ProjectStatus = ProjectStatus.PROCESSING
    user_id: Optional[str] = None


class ProjectResponse(BaseSchema):
    """Project row."""

    id: str
    name: str
    status: ProjectStatus
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    total_rows: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ProductDataResponse(BaseSchema):
    """One stored source record."""

    id: str
    project_id: str
    row_number: int
    source_data: dict[str, Any]
    mapped_data: Optional[dict[str, Any]] = None
    validation_status: str = "pending"
    quality_score: float = 0


class UploadResponse(BaseSchema):
    """Result of ingesting one file."""

    project_id: str = Field(..., description="Storage id, or local-<ms> when kept in memory")
    file_name: str
    persisted: bool
    layout: SheetLayout
    row_count: int
    source_fields: list[str]
    records: list[dict[str, Any]]
    field_descriptions: dict[str, str] = Field(default_factory=dict)
