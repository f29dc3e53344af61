"""
Target field catalog API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from config.database import DatabaseError as ConfigDatabaseError
from exceptions import AppError, DatabaseError
from models.mapping import TargetField, TargetFieldCreate
from services.target_field_service import get_target_field_service

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

@router.get("", response_model=list[TargetField])
def list_target_fields():
    """Catalog ordered by name."""
    try:
        return get_target_field_service().get_target_fields()

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=TargetField, status_code=201)
def create_target_field(data: TargetFieldCreate):
    """
    Add a field to the catalog.

    Raises:
        409: Name already in the catalog
    """
    try:
        return get_target_field_service().create_target_field(data.field_name)

    except Exception as e:
        return handle_error(e)
