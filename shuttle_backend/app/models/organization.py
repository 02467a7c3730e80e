"""
Organization database model.

Every route and user belongs to exactly one organization (tenant).
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base


class Organization(Base):
    """A school, campus or company operating its own shuttle routes."""
    __tablename__ = "organizations"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # e.g. "school", "campus"
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}')>"
