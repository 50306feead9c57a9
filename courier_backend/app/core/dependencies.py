"""
Authentication dependencies for FastAPI.

A request may carry its token in the `Authorization: Bearer` header or in
the HTTP-only auth cookie set at login; the header wins when both exist.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import AuthenticationError
from courier_backend.app.db.session import get_db
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.services.authentication import TokenAuthenticator

# HTTP Bearer security scheme (optional: the cookie is an alternate transport)
security = HTTPBearer(auto_error=False)


async def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Return the raw token from the bearer header or the auth cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials.strip()
    return request.cookies.get(settings.auth_cookie_name)


async def get_current_user(
    token: Optional[str] = Depends(get_access_token),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    FastAPI dependency for JWT authentication.
    
    Checks:
    1. A token is present (header or cookie)
    2. Signature and expiry are valid
    3. The token has not been revoked by logout
    4. The referenced user still exists
    
    Raises:
        AuthenticationError: 401 if authentication fails for any reason
    """
    if not token:
        raise AuthenticationError("Not authenticated")
    
    return await TokenAuthenticator(db).authenticate(token)
