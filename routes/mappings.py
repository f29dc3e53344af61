"""
Field mapping API routes.

Automatic mapping plus the edits applied on the review screen.
Edits are stateless: the client sends the current mapping list and
gets the edited list back.
"""

from typing import Optional
from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from config.database import DatabaseError as ConfigDatabaseError
from exceptions import AppError
from models.mapping import (
    MappingEditRequest,
    MappingListResponse,
    MappingRequest,
    MappingResult,
    MappingStrategy,
    OverrideRequest,
)
from models.quality import QualityReport, QualityRequest
from services.field_mapping_service import (
    find_duplicate_targets,
    get_field_mapping_service,
    override_mapping,
    remove_mapping,
    toggle_mapping_type,
)
from services.quality_service import build_quality_report
from services.target_field_service import get_target_field_service

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def load_catalog() -> list[str]:
    """Catalog names from storage; empty when storage is unavailable."""
    try:
        return [f.field_name for f in get_target_field_service().get_target_fields()]
    except (ConfigDatabaseError, AppError) as e:
        logger.warning("target_catalog_unavailable", error=str(e))
        return []


def build_list_response(
    results: list[MappingResult],
    strategy: Optional[MappingStrategy] = None
) -> MappingListResponse:
    return MappingListResponse(
        mappings=results,
        strategy=strategy,
        required_count=sum(1 for r in results if r.is_required),
        optional_count=sum(1 for r in results if r.is_optional),
        duplicate_targets=find_duplicate_targets(results)
    )


# ===================
# ROUTES
# ===================

@router.post("", response_model=MappingListResponse)
def map_fields(data: MappingRequest):
    """
    Map source fields onto the target catalog.

    Uses the request catalog when given, otherwise the stored one.
    Falls back to similarity matching when inference is unavailable.

    Raises:
        422: source_fields missing, empty or containing blank names
    """
    try:
        catalog = data.target_fields if data.target_fields is not None else load_catalog()

        outcome = get_field_mapping_service().map_fields_with_outcome(
            data.source_fields,
            catalog,
            data.field_descriptions
        )
        return build_list_response(outcome.results, outcome.strategy)

    except Exception as e:
        return handle_error(e)


@router.post("/override", response_model=MappingListResponse)
def override(data: OverrideRequest):
    """
    Point one source field at a new target.

    Raises:
        404: Source field not in the list
    """
    try:
        results = override_mapping(data.mappings, data.source_field, data.target_field, data.target_fields)
        return build_list_response(results)

    except Exception as e:
        return handle_error(e)


@router.post("/toggle", response_model=MappingListResponse)
def toggle(data: MappingEditRequest):
    """
    Flip required/optional for one entry.

    Raises:
        404: Source field not in the list
    """
    try:
        results = toggle_mapping_type(data.mappings, data.source_field)
        return build_list_response(results)

    except Exception as e:
        return handle_error(e)


@router.post("/remove", response_model=MappingListResponse)
def remove(data: MappingEditRequest):
    """
    Drop one entry.

    Raises:
        404: Source field not in the list
    """
    try:
        results = remove_mapping(data.mappings, data.source_field)
        return build_list_response(results)

    except Exception as e:
        return handle_error(e)


@router.post("/quality", response_model=QualityReport)
def quality(data: QualityRequest):
    """Quality report for one record under the given mappings."""
    try:
        return build_quality_report(data.record, data.mappings, data.target_fields)

    except Exception as e:
        return handle_error(e)
