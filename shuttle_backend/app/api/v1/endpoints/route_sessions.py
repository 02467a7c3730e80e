"""
Route Session API Endpoints.

Drivers start, pause, resume and end trips and stream GPS positions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shuttle_backend.app.db.session import get_db
from shuttle_backend.app.core.redis_client import get_redis
from shuttle_backend.app.core.dependencies import get_current_user
from shuttle_backend.app.core.guards import require_role, OrganizationGuard
from shuttle_backend.app.models.enums import UserRole
from shuttle_backend.app.models.route_session import RouteSession
from shuttle_backend.app.schemas.route_session import (
    SessionStartRequest, SessionStatusUpdate, LocationUpdate,
    RouteSessionResponse, SessionLocationResponse, SessionLocationListResponse
)
from shuttle_backend.app.services.audit import log_event, AuditAction
from shuttle_backend.app.services.transition_guard import single_flight_transition
from shuttle_backend.app.services.route_sessions import (
    get_route, get_trip_session, get_active_trip_session, create_trip_session,
    set_trip_session_status, set_trip_session_location, list_session_locations
)

router = APIRouter(prefix="/route-sessions", tags=["Route Sessions"])
organization_guard = OrganizationGuard()


async def _load_driver_session(
    db: AsyncSession,
    session_id: str,
    current_user: dict
) -> RouteSession:
    session = await get_trip_session(db, session_id)
    
    if session.driver_user_id != current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This route session is not assigned to you"
        )
    
    return session


@router.post("/start", response_model=RouteSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: SessionStartRequest = Body(...),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a route session for the calling driver (Driver only).
    
    The session starts PENDING; the driver app moves it to ACTIVE once
    GPS is confirmed available.
    
    Validates:
    - Route exists and belongs to the driver's organization
    - Driver has no other pending or active session
    """
    if payload.driver_user_id and payload.driver_user_id != current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Drivers can only start sessions for themselves"
        )
    
    route = await get_route(db, payload.route_id)
    organization_guard.enforce(route.organization_id, current_user, "route")
    
    session = await create_trip_session(db, route.id, current_user["user_id"])
    
    await log_event(
        db=db,
        action=AuditAction.SESSION_CREATED,
        session_id=session.id,
        actor=current_user,
        metadata={"route_id": route.id}
    )
    
    return RouteSessionResponse.model_validate(session)


@router.patch("/{session_id}/status", response_model=RouteSessionResponse)
async def update_session_status(
    session_id: str = Path(..., description="Route session ID"),
    payload: SessionStatusUpdate = Body(...),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Move a session through its lifecycle (Driver only).
    
    pending -> active starts or resumes, active -> pending pauses,
    completed / cancelled end the trip. Only one status change per session
    may be in flight; a concurrent request gets 409.
    """
    await _load_driver_session(db, session_id, current_user)
    
    async with single_flight_transition(redis, session_id):
        session = await set_trip_session_status(db, session_id, payload.status, actor=current_user)
    
    return RouteSessionResponse.model_validate(session)


@router.patch("/{session_id}/location", response_model=RouteSessionResponse)
async def update_session_location(
    session_id: str = Path(..., description="Route session ID"),
    location: LocationUpdate = Body(...),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Record the vehicle's current position (Driver only).
    
    Only ACTIVE sessions accept positions.
    """
    await _load_driver_session(db, session_id, current_user)
    
    session = await set_trip_session_location(
        db,
        session_id,
        latitude=location.latitude,
        longitude=location.longitude,
        recorded_at=location.recorded_at
    )
    
    return RouteSessionResponse.model_validate(session)


@router.get("/active/{route_id}", response_model=Optional[RouteSessionResponse])
async def get_active_session(
    route_id: str = Path(..., description="Route ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the open (active or paused) session of a route, or null.
    """
    route = await get_route(db, route_id)
    organization_guard.enforce(route.organization_id, current_user, "route")
    
    session = await get_active_trip_session(db, route.id)
    if session is None:
        return None
    
    return RouteSessionResponse.model_validate(session)


@router.get("/{session_id}/locations", response_model=SessionLocationListResponse)
async def get_session_locations(
    session_id: str = Path(..., description="Route session ID"),
    limit: int = Query(50, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the most recent GPS breadcrumb points of a session.
    """
    session = await get_trip_session(db, session_id)
    route = await get_route(db, session.route_id)
    organization_guard.enforce(route.organization_id, current_user, "route session")
    
    locations = await list_session_locations(db, session.id, limit=limit)
    
    return SessionLocationListResponse(
        session_id=session.id,
        locations=[SessionLocationResponse.model_validate(loc) for loc in locations],
        total_locations=len(locations)
    )
