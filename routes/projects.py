"""
Project API routes.

Stored uploads, their records and accepted mappings.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from config.database import DatabaseError as ConfigDatabaseError
from exceptions import AppError, DatabaseError
from models.mapping import SaveMappingsRequest, SaveMappingsResult
from models.project import ProductDataResponse, ProjectResponse
from services.project_service import get_project_service

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, ConfigDatabaseError):
        e = DatabaseError("connect", str(e))
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


# ===================
# ROUTES
# ===================

@router.get("", response_model=list[ProjectResponse])
def list_projects(
    limit: int = Query(50, ge=1, le=200, description="Maximum projects returned")
):
    """List projects, newest first."""
    try:
        return get_project_service().list_projects(limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str):
    """
    Get a single project.

    Raises:
        404: Project not found
    """
    try:
        return get_project_service().get_project(project_id)

    except Exception as e:
        return handle_error(e)


@router.get("/{project_id}/records", response_model=list[ProductDataResponse])
def get_records(project_id: str):
    """Normalized records of a project in row order."""
    try:
        return get_project_service().get_records(project_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{project_id}/mappings", response_model=SaveMappingsResult)
def save_mappings(project_id: str, data: SaveMappingsRequest):
    """
    Store accepted mappings, replacing earlier ones.

    Raises:
        404: Project not found
    """
    try:
        service = get_project_service()
        service.get_project(project_id)
        return service.save_mappings(project_id, data.mappings, data.record)

    except Exception as e:
        return handle_error(e)
