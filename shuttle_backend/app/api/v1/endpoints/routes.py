"""
Rider-facing Route Tracking Endpoints.

Stops of a route and the derived live status of its vehicle.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from shuttle_backend.app.db.session import get_db
from shuttle_backend.app.core.config import settings
from shuttle_backend.app.core.dependencies import get_current_user
from shuttle_backend.app.core.guards import OrganizationGuard
from shuttle_backend.app.domain.tracking.status_calculator import (
    calculate_bus_status, estimate_current_stop
)
from shuttle_backend.app.models.session_enums import SessionStatus
from shuttle_backend.app.schemas.route_session import RouteSessionResponse
from shuttle_backend.app.schemas.route_stop import (
    RouteStopResponse, RouteStopListResponse, BusStatusResponse
)
from shuttle_backend.app.services.route_sessions import (
    get_route, get_route_stops, get_active_trip_session, set_trip_session_current_stop
)

router = APIRouter(prefix="/routes", tags=["Routes - Live Tracking"])
organization_guard = OrganizationGuard()


@router.get("/{route_id}/stops", response_model=RouteStopListResponse)
async def list_route_stops(
    route_id: str = Path(..., description="Route ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the stops of a route in route order.
    """
    route = await get_route(db, route_id)
    organization_guard.enforce(route.organization_id, current_user, "route")
    
    stops = await get_route_stops(db, route.id)
    
    return RouteStopListResponse(
        route_id=route.id,
        stops=[RouteStopResponse.model_validate(stop) for stop in stops]
    )


@router.get("/{route_id}/bus-status", response_model=BusStatusResponse)
async def get_bus_status(
    route_id: str = Path(..., description="Route ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the live status of the vehicle on a route.
    
    Estimates the stop the vehicle should be at, records it on the active
    session, then classifies the session as active, delayed or offline.
    Computed fresh on every call.
    """
    route = await get_route(db, route_id)
    organization_guard.enforce(route.organization_id, current_user, "route")
    
    session = await get_active_trip_session(db, route.id)
    stops = await get_route_stops(db, route.id)
    
    if session is not None and session.status == SessionStatus.ACTIVE:
        estimate = estimate_current_stop(session, stops)
        if estimate is not None:
            session = await set_trip_session_current_stop(db, session, estimate.id)
    
    calculation = calculate_bus_status(
        session,
        stops,
        delayed_threshold_minutes=settings.delayed_threshold_minutes,
        offline_threshold_minutes=settings.offline_threshold_minutes,
    )
    
    current_stop = None
    if session is not None and session.current_stop_id:
        current_stop = next((s for s in stops if s.id == session.current_stop_id), None)
    
    return BusStatusResponse(
        route_id=route.id,
        status=calculation.status,
        minutes_behind_schedule=calculation.minutes_behind_schedule,
        current_stop=RouteStopResponse.model_validate(current_stop) if current_stop else None,
        session=RouteSessionResponse.model_validate(session) if session else None
    )
