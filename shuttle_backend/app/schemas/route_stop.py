"""
Route stop and rider-facing status schemas.
"""

from pydantic import BaseModel
from typing import List, Optional

from shuttle_backend.app.models.session_enums import BusStatus
from shuttle_backend.app.schemas.route_session import RouteSessionResponse


class RouteStopResponse(BaseModel):
    """Route stop response."""
    id: str
    route_id: str
    name: str
    order_index: int
    latitude: Optional[float]
    longitude: Optional[float]
    scheduled_arrival_minutes: Optional[int]
    
    class Config:
        from_attributes = True


class RouteStopListResponse(BaseModel):
    route_id: str
    stops: List[RouteStopResponse]


class BusStatusResponse(BaseModel):
    """Derived status of the vehicle currently driving a route."""
    route_id: str
    status: BusStatus
    minutes_behind_schedule: int
    current_stop: Optional[RouteStopResponse] = None
    session: Optional[RouteSessionResponse] = None
