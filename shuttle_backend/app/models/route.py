"""
Route database model.

Routes are managed by the organization's CRUD screens; the tracker reads them
to resolve tenancy for a session.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base


class Route(Base):
    """A named shuttle or bus route with an ordered list of stops."""
    __tablename__ = "routes"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey('organizations.id'), nullable=False, index=True)
    
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="shuttle")  # shuttle | bus
    vehicle_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Route(id={self.id}, name='{self.name}')>"
