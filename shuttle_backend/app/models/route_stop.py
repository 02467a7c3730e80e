"""
Route Stop database model.

Stops are consumed read-only by the tracking core.
"""

import uuid

from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base


class RouteStop(Base):
    """
    Route Stop model.
    
    order_index defines the route sequence and is unique per route.
    scheduled_arrival_minutes is the offset from trip start at which the
    vehicle is expected to reach the stop (optional).
    """
    __tablename__ = "route_stops"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    route_id = Column(String(36), ForeignKey('routes.id'), nullable=False, index=True)
    
    name = Column(String(255), nullable=False)
    order_index = Column(Integer, nullable=False)
    
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    
    scheduled_arrival_minutes = Column(Integer, nullable=True)
    
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    __table_args__ = (
        UniqueConstraint('route_id', 'order_index', name='uq_route_stops_route_order'),
    )
    
    def __repr__(self):
        return f"<RouteStop(id={self.id}, route_id={self.route_id}, order={self.order_index})>"
