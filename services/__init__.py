"""
Business logic services.

Each service handles one domain area.
"""

from services.field_mapping_service import (
    FieldMappingService,
    MappingOutcome,
    get_field_mapping_service,
    override_mapping,
    toggle_mapping_type,
    remove_mapping,
)
from services.similarity_service import FallbackMatch, calculate_similarity, find_best_match
from services.quality_service import build_quality_report
from services.project_service import ProjectService, get_project_service
from services.target_field_service import TargetFieldService, get_target_field_service
from services.upload_service import UploadService, UploadResult, get_upload_service
from services.product_name_service import ProductNameService, get_product_name_service

__all__ = [
    "FieldMappingService",
    "MappingOutcome",
    "get_field_mapping_service",
    "override_mapping",
    "toggle_mapping_type",
    "remove_mapping",
    "FallbackMatch",
    "calculate_similarity",
    "find_best_match",
    "build_quality_report",
    "ProjectService",
    "get_project_service",
    "TargetFieldService",
    "get_target_field_service",
    "UploadService",
    "UploadResult",
    "get_upload_service",
    "ProductNameService",
    "get_product_name_service",
]
