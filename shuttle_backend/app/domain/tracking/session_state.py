"""
Route session state machine.

    (new) --create--> pending --start--> active
    active --pause--> pending(started) --resume--> active
    active | pending(started) --complete/cancel--> completed | cancelled
    pending(never started) --cancel--> cancelled

A paused session is a PENDING session with started_at set; started_at is kept
across pause/resume and never re-stamped.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from shuttle_backend.app.core.exceptions import InvalidTransitionError
from shuttle_backend.app.models.session_enums import SessionStatus, TERMINAL_STATUSES


class SessionTransition(str, enum.Enum):
    """Named transitions; values double as audit actions."""
    START = "TRIP_STARTED"
    PAUSE = "TRIP_PAUSED"
    RESUME = "TRIP_RESUMED"
    COMPLETE = "TRIP_COMPLETED"
    CANCEL = "TRIP_CANCELLED"


def is_paused(session) -> bool:
    return session.status == SessionStatus.PENDING and session.started_at is not None


def resolve_transition(session, requested: SessionStatus) -> SessionTransition:
    """
    Work out which transition moving ``session`` to ``requested`` means.
    
    Raises:
        InvalidTransitionError: if the move is not in the state table
    """
    current = SessionStatus(session.status)
    requested = SessionStatus(requested)
    
    def reject():
        return InvalidTransitionError(session.id, current.value, requested.value)
    
    if current in TERMINAL_STATUSES or current == requested:
        raise reject()
    
    if requested == SessionStatus.ACTIVE:
        # current is PENDING here
        return SessionTransition.RESUME if session.started_at else SessionTransition.START
    
    if requested == SessionStatus.PENDING:
        # current is ACTIVE here
        return SessionTransition.PAUSE
    
    if requested == SessionStatus.CANCELLED:
        return SessionTransition.CANCEL
    
    # COMPLETED: a trip that never ran cannot be completed, only cancelled
    if session.started_at is None:
        raise reject()
    return SessionTransition.COMPLETE


def apply_transition(
    session,
    requested: SessionStatus,
    now: Optional[datetime] = None
) -> SessionTransition:
    """
    Validate and apply a status change in place, stamping timestamps.
    
    Returns:
        The transition that was applied
    """
    transition = resolve_transition(session, requested)
    now = now or datetime.now(timezone.utc)
    
    session.status = SessionStatus(requested)
    if transition == SessionTransition.START and session.started_at is None:
        session.started_at = now
    if session.status in TERMINAL_STATUSES:
        session.completed_at = now
    
    return transition
