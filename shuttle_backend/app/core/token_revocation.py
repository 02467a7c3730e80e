"""
Token revocation backed by Redis.

The access-code service blacklists a token, or every token of a user, when
a driver's code is withdrawn. Keys expire with the longest possible token
lifetime. Checks fail open: a Redis outage must not lock drivers out of a
running trip.
"""

import logging

from shuttle_backend.app.core.redis_client import get_redis
from shuttle_backend.app.core.config import settings

logger = logging.getLogger("shuttle.auth")

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _token_key(token: str) -> str:
    return f"{TOKEN_BLACKLIST_PREFIX}{token}"


def _user_key(user_id: str) -> str:
    return f"{USER_TOKENS_PREFIX}{user_id}:revoked"


async def _set_flag(key: str, value: str) -> bool:
    try:
        redis = await get_redis()
        await redis.set(key, value, ex=settings.access_token_expire_minutes * 60)
        return True
    except Exception as e:
        logger.error("Could not write revocation key %s: %s", key, e)
        return False


async def _flag_exists(key: str) -> bool:
    try:
        redis = await get_redis()
        return await redis.exists(key) > 0
    except Exception as e:
        logger.warning("Revocation check skipped, Redis unavailable: %s", e)
        return False


async def revoke_token(token: str, user_id: str) -> bool:
    """Blacklist one token. Returns False if Redis could not be written."""
    return await _set_flag(_token_key(token), str(user_id))


async def revoke_all_user_tokens(user_id: str) -> bool:
    """Blacklist every token of a user issued within the token lifetime."""
    return await _set_flag(_user_key(user_id), "1")


async def is_token_revoked(token: str) -> bool:
    return await _flag_exists(_token_key(token))


async def are_user_tokens_revoked(user_id: str) -> bool:
    return await _flag_exists(_user_key(user_id))
