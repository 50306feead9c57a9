"""
FastAPI Application Entry Point.

This is the main application file for the Courier Tracker Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from courier_backend.app.core.config import settings
from courier_backend.app.api.v1.router import router as api_v1_router
from courier_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from courier_backend.app.db.session import engine, Base
import courier_backend.app.core.redis_client as redis_client_module
from courier_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from courier_backend.app.models.user import User
from courier_backend.app.models.audit_log import AuditLog
from courier_backend.app.models.package import Package, PackageHistory

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Creates database tables on startup.
    2. Disposes of the connection pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Courier package tracking backend: authentication, users, packages and public tracking",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    The service stays up without Redis (revocation checks fail open), so
    an unreachable Redis reports "degraded" rather than an error.
    
    Returns:
        dict: Status, application information and Redis reachability
    """
    redis_state = await redis_client_module.redis_status()
    return {
        "status": "healthy" if redis_state == "ok" else "degraded",
        "redis": redis_state,
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Courier Tracker Backend API",
        "docs": "/docs",
        "health": "/health",
    }
