"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, VerbatimSchema
from models.normalization import SheetLayout, PatternKind, FieldNamePattern
from models.mapping import (
    MISSING_SOURCE_PREFIX,
    MANUAL_OVERRIDE_REASON,
    MappingStrategy,
    TargetField,
    TargetFieldCreate,
    MappingResult,
    MappingEntry,
    ValidEntry,
    RejectedEntry,
    EntryValidation,
    MappingRequest,
    MappingEditRequest,
    OverrideRequest,
    MappingListResponse,
    SaveMappingsRequest,
    SaveMappingsResult,
)
from models.project import (
    ProjectStatus,
    ProjectCreate,
    ProjectResponse,
    ProductDataResponse,
    UploadResponse,
)
from models.quality import (
    QualityStatus,
    FieldQuality,
    QualityMetrics,
    QualityReport,
    QualityRequest,
)
from models.product_name import ProductNameRequest, ProductNameResult

__all__ = [
    # Base
    "BaseSchema",
    "VerbatimSchema",

    # Normalization
    "SheetLayout",
    "PatternKind",
    "FieldNamePattern",

    # Mapping
    "MISSING_SOURCE_PREFIX",
    "MANUAL_OVERRIDE_REASON",
    "MappingStrategy",
    "TargetField",
    "TargetFieldCreate",
    "MappingResult",
    "MappingEntry",
    "ValidEntry",
    "RejectedEntry",
    "EntryValidation",
    "MappingRequest",
    "MappingEditRequest",
    "OverrideRequest",
    "MappingListResponse",
    "SaveMappingsRequest",
    "SaveMappingsResult",

    # Projects
    "ProjectStatus",
    "ProjectCreate",
    "ProjectResponse",
    "ProductDataResponse",
    "UploadResponse",

    # Quality
    "QualityStatus",
    "FieldQuality",
    "QualityMetrics",
    "QualityReport",
    "QualityRequest",

    # Product names
    "ProductNameRequest",
    "ProductNameResult",
]
