"""
Token Revocation System using Redis.

Implements token blacklisting so a logged-out token stops working
before it expires.
"""

import logging
from redis.exceptions import RedisError
from courier_backend.app.core import redis_client as redis_client_module
from courier_backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.
    
    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token
        
    Returns:
        True if successfully revoked, False otherwise
    """
    # Tokens expire on their own, the key only has to outlive them
    ttl_seconds = settings.access_token_expire_minutes * 60
    key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
    
    try:
        await redis_client_module.redis_client.set(key, str(user_id), ex=ttl_seconds)
    except RedisError as exc:
        logger.warning("Could not revoke token for user %s: %s", user_id, exc)
        return False
    
    return True


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.
    
    Fails open: when Redis is unreachable the token is treated as valid.
    """
    key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
    
    try:
        exists = await redis_client_module.redis_client.exists(key)
    except RedisError as exc:
        logger.warning("Token revocation check unavailable: %s", exc)
        return False
    
    return bool(exists)
