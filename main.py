"""
Catalog Field Mapper API.

Upload a supplier product-data file, get its source fields mapped onto
the target catalog, review the mapping and store it.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime

from config import settings, check_connection

# stdlib logging carries structlog output; its level is the filter
logging.basicConfig(format="%(message)s", level=settings.log_level)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

API_VERSION = "0.1.0"

ENDPOINTS = {
    "uploads": "/api/uploads",
    "mappings": "/api/mappings",
    "projects": "/api/projects",
    "target_fields": "/api/target-fields",
    "product_names": "/api/product-names",
}


def inference_mode() -> str:
    return "configured" if settings.inference_configured else "fallback_only"


def log_storage_status(status: dict) -> None:
    """Startup report; storage problems never stop the app."""
    if status["status"] == "healthy":
        logger.info(
            "database_connected",
            target_fields=status.get("target_fields_count"),
            projects=status.get("projects_count")
        )
    elif status["status"] == "not_configured":
        logger.warning("database_not_configured", uploads="in_memory")
    else:
        logger.error("database_connection_failed", error=status.get("error"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
        inference=inference_mode()
    )

    log_storage_status(check_connection())
    if not settings.inference_configured:
        logger.warning("inference_not_configured", fallback="similarity")

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Catalog Field Mapper",
    description="Normalize product data files and map their fields onto a target catalog",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
def health_check():
    """Degraded (still 200) when storage is missing or unreachable."""
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "database": db_status,
        "inference": inference_mode()
    }


@app.get("/")
async def root():
    return {
        "name": "Catalog Field Mapper API",
        "version": API_VERSION,
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": ENDPOINTS
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last resort for errors a route did not translate."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes import (
    uploads_router,
    mappings_router,
    projects_router,
    target_fields_router,
    product_names_router,
)

app.include_router(uploads_router, prefix=ENDPOINTS["uploads"], tags=["Uploads"])
app.include_router(mappings_router, prefix=ENDPOINTS["mappings"], tags=["Mappings"])
app.include_router(projects_router, prefix=ENDPOINTS["projects"], tags=["Projects"])
app.include_router(target_fields_router, prefix=ENDPOINTS["target_fields"], tags=["Target Fields"])
app.include_router(product_names_router, prefix=ENDPOINTS["product_names"], tags=["Product Names"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production
    )
