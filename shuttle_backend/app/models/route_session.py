"""
Route Session database model.

One row per trip: a driver operating a vehicle along a route.
Sessions are never deleted; completed and cancelled are terminal.
"""

import uuid

from sqlalchemy import Column, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base
from shuttle_backend.app.models.session_enums import SessionStatus


class RouteSession(Base):
    """
    Route Session model.
    
    started_at is stamped on the first move into ACTIVE and never cleared.
    completed_at is stamped once, on the move into a terminal status.
    """
    __tablename__ = "route_sessions"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    
    route_id = Column(String(36), ForeignKey('routes.id'), nullable=False, index=True)
    driver_user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    
    status = Column(
        Enum(SessionStatus, values_callable=lambda e: [m.value for m in e]),
        default=SessionStatus.PENDING,
        nullable=False,
        index=True,
    )
    
    # Set by whoever consumes the current-stop estimate, not by status changes
    current_stop_id = Column(String(36), ForeignKey('route_stops.id'), nullable=True)
    
    # Latest reported position
    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)
    last_location_update = Column(DateTime(timezone=True), nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    
    def __repr__(self):
        return f"<RouteSession(id={self.id}, route_id={self.route_id}, status='{self.status.value}')>"
