"""
Credential store and authenticators.

Two authenticators, one for identifier/password pairs and one for bearer
tokens, verify credentials against the users table and produce the same
`Principal` shape for the access gate.
"""

import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InsufficientPermissionsError,
    InvalidCredentialsError,
    TokenRevokedError,
)
from courier_backend.app.core.jwt import claims_user_id, create_access_token, decode_access_token
from courier_backend.app.core.security import get_password_hash, verify_password
from courier_backend.app.core.token_revocation import is_token_revoked
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.schemas.auth import Principal, UserRegister
from courier_backend.app.services.audit import log_auth_event, log_event, AuditAction

logger = logging.getLogger(__name__)


def issue_token(principal: Principal) -> str:
    return create_access_token(principal.id, principal.username, principal.role.value)


async def find_user_by_identifier(db: AsyncSession, identifier: str) -> Optional[User]:
    """Look a user up by email (case-insensitive) first, then by username."""
    result = await db.execute(select(User).where(func.lower(User.email) == identifier.strip().lower()))
    user = result.scalar_one_or_none()
    if user is not None:
        return user
    
    result = await db.execute(select(User).where(User.username == identifier))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserRegister) -> User:
    """
    Create a user with a hashed password.
    
    Raises:
        InsufficientPermissionsError: admin self-registration while disabled
        ConflictError: username or email already registered
    """
    if user_data.role == UserRole.ADMIN and not settings.allow_admin_registration:
        raise InsufficientPermissionsError("Admin users cannot be registered via API")
    
    result = await db.execute(
        select(User).where(
            or_(User.username == user_data.username, func.lower(User.email) == user_data.email)
        )
    )
    existing_user = result.scalars().first()
    
    if existing_user:
        if existing_user.username == user_data.username:
            raise ConflictError("Username already registered")
        raise ConflictError("Email already registered")
    
    new_user = User(
        username=user_data.username,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        phone=user_data.phone,
    )
    
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with that email or username already exists")
    await db.refresh(new_user)
    
    logger.info("Registered user %s with role %s", new_user.username, new_user.role.value)
    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_id=new_user.id,
        actor_username=new_user.username,
        target_type="user",
        target_id=new_user.id,
        metadata={"role": new_user.role.value}
    )
    
    return new_user


class Authenticator:
    """Base class: turns a verified user row into a request principal."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    @staticmethod
    def principal_for(user: User) -> Principal:
        return Principal.model_validate(user)


class CredentialAuthenticator(Authenticator):
    """Verifies an identifier (email or username) and password."""
    
    async def authenticate(self, identifier: str, password: str, ip_address: Optional[str] = None) -> Principal:
        user = await find_user_by_identifier(self.db, identifier)
        
        if user is None or not verify_password(password, user.hashed_password):
            await log_auth_event(
                db=self.db,
                action=AuditAction.LOGIN_FAILED,
                user_id=user.id if user else None,
                username=user.username if user else identifier,
                ip_address=ip_address,
                metadata={"reason": "Invalid password" if user else "User not found"}
            )
            raise InvalidCredentialsError()
        
        await log_auth_event(
            db=self.db,
            action=AuditAction.LOGIN_SUCCESS,
            user_id=user.id,
            username=user.username,
            ip_address=ip_address
        )
        return self.principal_for(user)


class TokenAuthenticator(Authenticator):
    """Verifies a signed, unexpired, unrevoked JWT and reloads its user."""
    
    async def authenticate(self, token: str) -> Principal:
        payload = decode_access_token(token)
        if payload is None:
            raise AuthenticationError("Could not validate credentials")
        
        user_id = claims_user_id(payload)
        if user_id is None:
            raise AuthenticationError("Invalid token payload")
        
        if await is_token_revoked(token):
            raise TokenRevokedError()
        
        # Role and contact details come from the database, not the token
        user = await self.db.get(User, user_id)
        if user is None:
            raise AuthenticationError("User not found")
        
        return self.principal_for(user)
