"""
Authentication API endpoints.

Provides register, login, logout and current-user endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.models.user import User
from courier_backend.app.core.config import settings
from courier_backend.app.core.dependencies import get_access_token, get_current_user
from courier_backend.app.core.exceptions import ResourceNotFoundError
from courier_backend.app.core.token_revocation import revoke_token
from courier_backend.app.schemas.auth import UserRegister, UserLogin, TokenResponse, Principal, MessageResponse
from courier_backend.app.schemas.user import UserResponse
from courier_backend.app.services.audit import log_auth_event, AuditAction
from courier_backend.app.services.authentication import (
    CredentialAuthenticator,
    issue_token,
    register_user,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


async def register_account(user_data: UserRegister, db: AsyncSession) -> TokenResponse:
    new_user = await register_user(db, user_data)
    principal = CredentialAuthenticator.principal_for(new_user)
    
    return TokenResponse(
        access_token=issue_token(principal),
        token_type="bearer",
        user_id=principal.id,
        username=principal.username,
        email=principal.email,
        role=principal.role
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.
    
    - Username and email must be unique (409 otherwise).
    - The admin role cannot be self-registered unless explicitly enabled.
    """
    return await register_account(user_data, db)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.
    
    Accepts email or username as identifier. The token is returned in the
    body and also set as an HTTP-only cookie.
    """
    principal = await CredentialAuthenticator(db).authenticate(
        credentials.identifier, credentials.password, ip_address=_client_ip(request)
    )
    access_token = issue_token(principal)
    
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=access_token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        max_age=settings.access_token_expire_minutes * 60,
    )
    
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=principal.id,
        username=principal.username,
        email=principal.email,
        role=principal.role
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_access_token),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the presented token and clear the auth cookie.
    """
    await revoke_token(token, current_user.id)
    response.delete_cookie(
        key=settings.auth_cookie_name,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
    )
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user.id,
        username=current_user.username,
        ip_address=_client_ip(request)
    )
    
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.
    
    Raises:
        404: If user not found in database
    """
    user = await db.get(User, current_user.id)
    
    if not user:
        raise ResourceNotFoundError("User", current_user.id)
    
    return UserResponse.model_validate(user)
