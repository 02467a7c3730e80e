"""
Audit log of trip lifecycle events, kept for dispatch review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base


class AuditLog(Base):
    """
    One row per session creation or status change.
    
    ``action`` is an AuditAction constant (SESSION_CREATED, TRIP_STARTED,
    TRIP_PAUSED, TRIP_RESUMED, TRIP_COMPLETED, TRIP_CANCELLED).
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    
    # None when the system acted (e.g. a GPS-failure cancel without a user token)
    actor_id = Column(String(36), index=True, nullable=True)
    actor_username = Column(String(255), nullable=True)
    
    action = Column(String(100), nullable=False, index=True)
    session_id = Column(String(36), index=True, nullable=True)
    
    # route_id, from/to statuses
    meta_data = Column(JSON, nullable=True)
    
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', session={self.session_id})>"
