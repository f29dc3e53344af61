"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.uploads import router as uploads_router
from routes.mappings import router as mappings_router
from routes.projects import router as projects_router
from routes.target_fields import router as target_fields_router
from routes.product_names import router as product_names_router

__all__ = [
    "uploads_router",
    "mappings_router",
    "projects_router",
    "target_fields_router",
    "product_names_router",
]
