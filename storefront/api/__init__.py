"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from storefront.api.health import router as health_router
from storefront.api.lookups import router as lookups_router
from storefront.api.products import router as products_router

__all__ = [
    "health_router",
    "lookups_router",
    "products_router",
]
