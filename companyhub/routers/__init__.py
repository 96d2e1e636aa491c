"""API routers."""

from companyhub.routers.companies import router as companies_router
from companyhub.routers.locations import router as locations_router
from companyhub.routers.notifications import router as notifications_router

__all__ = [
    "companies_router",
    "locations_router",
    "notifications_router",
]
