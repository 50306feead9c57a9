"""
Access token encoding and decoding.

Tokens are HS256 JWTs carrying the user's id, username and role:

    {"sub": "alice", "user_id": 12, "role": "customer", "exp": 1234567890}

The role claim is informational; the access gate reloads the user and
trusts the database role.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from courier_backend.app.core.config import settings


def build_claims(user_id: int, username: str, role: str) -> Dict[str, Any]:
    return {"sub": username, "user_id": user_id, "role": role}


def create_access_token(
    user_id: int,
    username: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token for a user.

    Args:
        user_id: Internal user ID
        username: Stored as the `sub` claim
        role: Role value at issue time
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=settings.access_token_expire_minutes)
    claims = build_claims(user_id, username, role)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the verified claims, or None for a bad signature or an expired token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def claims_user_id(claims: Dict[str, Any]) -> Optional[int]:
    user_id = claims.get("user_id")
    # bool is an int subclass
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return None
    return user_id
