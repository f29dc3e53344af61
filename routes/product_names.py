"""
Product name generation API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError
from models.product_name import ProductNameRequest, ProductNameResult
from services.product_name_service import get_product_name_service

logger = structlog.get_logger(__name__)

router = APIRouter()


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


@router.post("", response_model=ProductNameResult)
def generate_product_name(data: ProductNameRequest):
    """
    Generate an e-commerce name from product data.

    Raises:
        503: Inference unavailable or response unusable
    """
    try:
        return get_product_name_service().generate(data)

    except Exception as e:
        return handle_error(e)
