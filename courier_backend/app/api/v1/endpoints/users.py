"""
User management API endpoints.

Admin-only listing and deletion, plus the registration alias used by
older clients.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.guards import require_admin
from courier_backend.app.schemas.auth import UserRegister, TokenResponse, Principal, MessageResponse
from courier_backend.app.schemas.user import UserListResponse, UserResponse
from courier_backend.app.services.audit import log_event, AuditAction
from courier_backend.app.services.user_management import list_users, delete_user
from courier_backend.app.api.v1.endpoints.auth import register_account

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_via_users(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Alias of POST /auth/register."""
    return await register_account(user_data, db)


@router.get("", response_model=UserListResponse)
async def get_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).
    """
    users, total = await list_users(db, page=page, page_size=page_size)
    
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.delete("/{user_id}", response_model=MessageResponse)
async def remove_user(
    user_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a user (admin-only). Admins cannot delete their own account.
    """
    user = await delete_user(db, user_id, admin)
    
    await log_event(
        db=db,
        action=AuditAction.USER_DELETED,
        actor_id=admin.id,
        actor_username=admin.username,
        target_type="user",
        target_id=user_id,
        metadata={"username": user.username, "role": user.role.value}
    )
    
    return MessageResponse(message="User removed successfully")
