"""
Route session enumerations.
"""

import enum


class SessionStatus(str, enum.Enum):
    """
    Route session status as stored and sent over the wire.
    
    PENDING doubles as "paused" once a session has a started_at.
    """
    PENDING = "pending"  # Created, or paused after having been active
    ACTIVE = "active"  # Driver is on the road, GPS is reporting
    COMPLETED = "completed"  # Driver finished the trip
    CANCELLED = "cancelled"  # Aborted by the driver or by a GPS failure


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})
OPEN_STATUSES = frozenset({SessionStatus.PENDING, SessionStatus.ACTIVE})


class BusStatus(str, enum.Enum):
    """Rider-facing status derived from a session; never stored."""
    ACTIVE = "active"
    DELAYED = "delayed"
    OFFLINE = "offline"
