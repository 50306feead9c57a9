"""
Package API Endpoints.

Authenticated package CRUD gated per role, plus the public tracking lookup.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_user
from courier_backend.app.core.guards import require_role
from courier_backend.app.domain.lifecycle.package_service import PackageService
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal, MessageResponse
from courier_backend.app.schemas.package import (
    PackageCreate,
    PackageUpdate,
    PackageResponse,
    PackageListResponse,
    PublicPackageResponse,
)
from courier_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/packages", tags=["Packages"])


@router.get("/track/{tracking_id}", response_model=PublicPackageResponse)
async def track_package(
    tracking_id: str = Path(..., description="Public tracking ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Public tracking lookup (no authentication).
    
    Returns status, location, ETA, history and the courier's username only.
    """
    package = await PackageService.get_public(db, tracking_id)
    return PublicPackageResponse.model_validate(package)


@router.post("", response_model=PackageResponse, status_code=status.HTTP_201_CREATED)
async def create_package(
    package_data: PackageCreate,
    current_user: Principal = Depends(require_role([UserRole.ADMIN, UserRole.CUSTOMER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a new package (admin or customer).
    
    Generates the tracking ID when omitted and records the initial status
    in the history.
    """
    package = await PackageService.create(db, package_data, current_user)
    
    await log_event(
        db=db,
        action=AuditAction.PACKAGE_CREATED,
        actor_id=current_user.id,
        actor_username=current_user.username,
        target_type="package",
        target_id=package.tracking_id,
        metadata={"package_id": package.id, "status": package.status.value}
    )
    
    return PackageResponse.model_validate(package)


@router.get("", response_model=PackageListResponse)
async def list_packages(
    assigned: Optional[bool] = Query(None, description="false: only unassigned packages"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: Principal = Depends(require_role([UserRole.ADMIN, UserRole.COURIER, UserRole.CUSTOMER])),
    db: AsyncSession = Depends(get_db)
):
    """
    List packages visible to the caller.
    
    - admin: all packages (optionally filtered by assignment)
    - courier: own packages, or the unassigned pool with `assigned=false`
    - customer: packages sent to or by their email
    """
    packages, total = await PackageService.list_for(
        db, current_user, assigned=assigned, page=page, page_size=page_size
    )
    
    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{id_or_tracking_id}", response_model=PackageResponse)
async def get_package(
    id_or_tracking_id: str = Path(..., description="Internal ID or tracking ID"),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a single package by internal ID or tracking ID.
    
    Non-admins must be its sender, recipient or assigned courier.
    """
    package = await PackageService.get_for(db, id_or_tracking_id, current_user)
    return PackageResponse.model_validate(package)


@router.put("/{package_id}", response_model=PackageResponse)
async def update_package(
    package_id: int = Path(..., description="Package ID"),
    package_data: PackageUpdate = ...,
    current_user: Principal = Depends(require_role([UserRole.ADMIN, UserRole.COURIER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a package (admin: any field; courier: status, location, ETA and
    self-assignment of unassigned packages).
    """
    package = await PackageService.update(db, package_id, package_data, current_user)
    
    await log_event(
        db=db,
        action=AuditAction.PACKAGE_UPDATED,
        actor_id=current_user.id,
        actor_username=current_user.username,
        target_type="package",
        target_id=package.tracking_id,
        metadata={"package_id": package.id, "updated_fields": sorted(package_data.model_fields_set)}
    )
    
    return PackageResponse.model_validate(package)


@router.delete("/{package_id}", response_model=MessageResponse)
async def delete_package(
    package_id: int = Path(..., description="Package ID"),
    current_user: Principal = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a package and its history (admin only).
    """
    tracking_id = await PackageService.delete(db, package_id)
    
    await log_event(
        db=db,
        action=AuditAction.PACKAGE_DELETED,
        actor_id=current_user.id,
        actor_username=current_user.username,
        target_type="package",
        target_id=tracking_id,
        metadata={"package_id": package_id}
    )
    
    return MessageResponse(message="Package removed")
