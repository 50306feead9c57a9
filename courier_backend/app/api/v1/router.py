"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from courier_backend.app.api.v1.endpoints import auth, users, packages

router = APIRouter()

# Authentication endpoints
router.include_router(auth.router)

# User management endpoints
router.include_router(users.router)

# Package ledger and public tracking endpoints
router.include_router(packages.router)
