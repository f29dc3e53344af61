"""
Upload API routes.

Accepts a product data file and returns normalized records plus the
source field list the mapper works on.
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError, SessionNotFoundError
from models.project import UploadResponse
from services.upload_service import get_upload_service

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


# ===================
# ROUTES
# ===================

@router.post("", response_model=UploadResponse, status_code=201)
async def upload_file(file: UploadFile = File(...)):
    """
    Upload a product data file (xlsx, xls, csv, tsv, json, pdf, txt).

    Stores the project when persistence is available; otherwise the
    session is kept in memory under a "local-..." id.

    Raises:
        422: File too large, unsupported, unreadable or without fields
    """
    filename = file.filename or "upload"
    logger.info("upload_started", filename=filename, content_type=file.content_type)

    try:
        content = await file.read()
        # Parsing and storage calls block; keep them off the event loop
        result = await run_in_threadpool(
            get_upload_service().ingest, content, filename, content_type=file.content_type
        )
        return result.to_response()

    except Exception as e:
        return handle_error(e)


@router.get("/{project_id}", response_model=UploadResponse)
def get_upload(project_id: str):
    """
    Normalized upload of a live session (persisted or local-...).

    Raises:
        404: Unknown or expired session
    """
    try:
        result = get_upload_service().get_session(project_id)
        if result is None:
            raise SessionNotFoundError(project_id)
        return result.to_response()

    except Exception as e:
        return handle_error(e)
