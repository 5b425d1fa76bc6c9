"""OrgTree Access Core

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orgtree.api import admin_router, csrf_router, organizations_router, ownership_transfers_router
from orgtree.config.settings import get_settings
from orgtree.database import close_db, init_db
from orgtree.errors import OrgTreeError

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()

    # Startup
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            release=f"{settings.service_name}@{settings.service_version}",
            traces_sample_rate=settings.sentry_traces_sample_rate,
        )
        logger.info("Sentry error reporting enabled")

    if not settings.is_production:
        await init_db()
        logger.info("Database schema ensured")

    yield

    # Shutdown
    logger.info("Shutting down OrgTree")
    await close_db()


# Create FastAPI application
settings = get_settings()
app = FastAPI(
    title="OrgTree Access Core",
    version=settings.service_version,
    description="Organization roles, access evaluation, ownership transfer and CSRF protection",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Health check endpoint
@app.get("/health")
async def root_health_check():
    """Root health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment
    }


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "OrgTree organization access core",
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(csrf_router)
app.include_router(organizations_router)
app.include_router(ownership_transfers_router)
app.include_router(admin_router)


@app.exception_handler(OrgTreeError)
async def orgtree_error_handler(request: Request, exc: OrgTreeError):
    """Render domain errors as {"message", "code"} with their mapped status"""
    if exc.status_code >= 500:
        logger.error(f"Domain error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "message": "An unexpected error occurred. Please try again later.",
            "code": "INTERNAL_ERROR"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "orgtree.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
