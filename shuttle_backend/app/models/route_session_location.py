"""
Route Session Location database model.

Stores the GPS breadcrumb trail of a session for map rendering.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base


class RouteSessionLocation(Base):
    """
    One accepted position report for a session.
    """
    __tablename__ = "route_session_locations"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    session_id = Column(String(36), ForeignKey('route_sessions.id'), nullable=False, index=True)
    
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    
    def __repr__(self):
        return f"<RouteSessionLocation(session_id={self.session_id}, lat={self.latitude}, lng={self.longitude})>"
