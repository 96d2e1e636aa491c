"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from companyhub.core.config import settings
from companyhub.core.errors import CompanyHubError
from companyhub.core.structured_logging import build_log_context
from companyhub.db.session import engine


logger = logging.getLogger(__name__)


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Company Hub API",
    description="Multi-tenant company membership, locations and notifications API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Error handling
# ============================================================================

@app.exception_handler(CompanyHubError)
async def companyhub_error_handler(request: Request, exc: CompanyHubError):
    """Render service-layer errors with the status code of their class."""
    logger.info(
        "%s: %s",
        type(exc).__name__,
        exc.message,
        extra=build_log_context(
            request_id=request.headers.get("X-Request-ID"),
            route=request.url.path,
            method=request.method,
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "errors": exc.errors},
    )


# ============================================================================
# Routers
# ============================================================================

from companyhub.routers import companies_router, locations_router, notifications_router

# Memberships and permission introspection
app.include_router(companies_router)

# Locations and user assignments
app.include_router(locations_router)

# In-app notifications and preferences
app.include_router(notifications_router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
