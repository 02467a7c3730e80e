"""
User database model.

Users are provisioned by the external access-code service; the tracker only
reads them to confirm a token still belongs to an active account.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from shuttle_backend.app.db.session import Base
from shuttle_backend.app.models.enums import UserRole


class User(Base):
    """
    User model for drivers, riders and administrators.
    """
    __tablename__ = "users"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    role = Column(Enum(UserRole), default=UserRole.RIDER, nullable=False)
    
    # Tenant
    organization_id = Column(String(36), ForeignKey('organizations.id'), index=True, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
