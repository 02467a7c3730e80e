"""
Audit trail of route session lifecycle events.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from shuttle_backend.app.models.audit_log import AuditLog


class AuditAction:
    """Audit action names; the TRIP_* values match SessionTransition."""
    SESSION_CREATED = "SESSION_CREATED"
    TRIP_STARTED = "TRIP_STARTED"
    TRIP_PAUSED = "TRIP_PAUSED"
    TRIP_RESUMED = "TRIP_RESUMED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    TRIP_CANCELLED = "TRIP_CANCELLED"


async def log_event(
    db: AsyncSession,
    action: str,
    session_id: Optional[str] = None,
    actor: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Write and commit one audit row.
    
    Args:
        db: Database session
        action: AuditAction constant
        session_id: Route session the event belongs to
        actor: Decoded token of the caller, or None for system actions
        metadata: Extra JSON context
    """
    entry = AuditLog(
        actor_id=actor.get("user_id") if actor else None,
        actor_username=actor.get("sub") if actor else None,
        action=action,
        session_id=session_id,
        meta_data=metadata,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    session_id: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """Audit rows, most recent first, optionally filtered by action and session."""
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if action:
        query = query.where(AuditLog.action == action)
    if session_id:
        query = query.where(AuditLog.session_id == session_id)
    
    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
