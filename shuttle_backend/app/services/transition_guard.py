"""
Per-session single-flight guard for status transitions.

A status write first claims ``session:transition:{id}`` in Redis with
SET NX; a second writer arriving before the first releases the slot is
turned away. The TTL frees the slot if a worker dies mid-transition.
"""

import logging
from contextlib import asynccontextmanager

from shuttle_backend.app.core.config import settings
from shuttle_backend.app.core.exceptions import TransitionInProgressError

logger = logging.getLogger("shuttle.sessions")

TRANSITION_SLOT_PREFIX = "session:transition:"


def _slot_key(session_id: str) -> str:
    return f"{TRANSITION_SLOT_PREFIX}{session_id}"


async def acquire_transition_slot(redis, session_id: str, ttl_seconds: int = None) -> bool:
    """
    Try to claim the transition slot for a session.
    
    Returns:
        True if claimed, False if another transition holds it
    """
    ttl = ttl_seconds or settings.transition_lock_ttl_seconds
    claimed = await redis.set(_slot_key(session_id), "1", ex=ttl, nx=True)
    return bool(claimed)


async def release_transition_slot(redis, session_id: str) -> None:
    await redis.delete(_slot_key(session_id))


@asynccontextmanager
async def single_flight_transition(redis, session_id: str):
    """
    Hold the transition slot for the duration of the block.
    
    Raises:
        TransitionInProgressError: if the slot is already held
    """
    if not await acquire_transition_slot(redis, session_id):
        logger.info("Rejected concurrent transition for session %s", session_id)
        raise TransitionInProgressError(session_id)
    try:
        yield
    finally:
        await release_transition_slot(redis, session_id)
