"""
Route session schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from shuttle_backend.app.models.session_enums import SessionStatus


class SessionStartRequest(BaseModel):
    """Schema for starting a route session."""
    route_id: str = Field(..., min_length=1)
    driver_user_id: Optional[str] = Field(None, description="Must match the authenticated driver when sent")


class SessionStatusUpdate(BaseModel):
    """Schema for a status transition."""
    status: SessionStatus


class LocationUpdate(BaseModel):
    """Schema for reporting a GPS position."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    recorded_at: Optional[datetime] = None


class RouteSessionResponse(BaseModel):
    """Route session response."""
    id: str
    route_id: str
    driver_user_id: str
    status: SessionStatus
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    current_stop_id: Optional[str]
    current_latitude: Optional[float]
    current_longitude: Optional[float]
    last_location_update: Optional[datetime]
    created_at: datetime
    
    class Config:
        from_attributes = True


class SessionLocationResponse(BaseModel):
    """GPS breadcrumb point."""
    id: int
    latitude: float
    longitude: float
    recorded_at: datetime
    
    class Config:
        from_attributes = True


class SessionLocationListResponse(BaseModel):
    session_id: str
    locations: List[SessionLocationResponse]
    total_locations: int
