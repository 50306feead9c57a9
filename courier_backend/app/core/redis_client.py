"""
Redis connection for the token blacklist.

Callers go through the module attribute (``redis_client_module.redis_client``)
so tests can swap in an in-memory double.
"""

import logging
import redis.asyncio as redis
from courier_backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def redis_status() -> str:
    """Report whether the blacklist store answers: "ok" or "unavailable"."""
    try:
        await redis_client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return "unavailable"
    return "ok"
