"""
Shared async Redis client.

Holds revoked tokens and the per-session transition slots.
"""

import redis.asyncio as redis
from shuttle_backend.app.core.config import settings

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency; resolved at call time so tests can swap the client."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return bool(await redis_client.ping())
    except Exception:
        return False
