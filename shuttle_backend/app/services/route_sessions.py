"""
Route session storage service.

The persistence boundary of the tracking core: creating sessions, moving them
through the state machine, recording positions, and reading routes and stops.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from shuttle_backend.app.core.exceptions import (
    ResourceNotFoundError, SessionNotActiveError, OpenSessionExistsError
)
from shuttle_backend.app.domain.tracking.session_state import apply_transition
from shuttle_backend.app.models.route import Route
from shuttle_backend.app.models.route_stop import RouteStop
from shuttle_backend.app.models.route_session import RouteSession
from shuttle_backend.app.models.route_session_location import RouteSessionLocation
from shuttle_backend.app.models.session_enums import SessionStatus, OPEN_STATUSES
from shuttle_backend.app.services.audit import log_event

logger = logging.getLogger("shuttle.sessions")


async def get_route(db: AsyncSession, route_id: str) -> Route:
    """
    Raises:
        ResourceNotFoundError: if the route does not exist or is inactive
    """
    result = await db.execute(
        select(Route).where(Route.id == route_id, Route.is_active == True)
    )
    route = result.scalar_one_or_none()
    
    if not route:
        raise ResourceNotFoundError("Route", route_id)
    
    return route


async def create_route(
    db: AsyncSession,
    organization_id: str,
    name: str,
    type: str = "shuttle",
    vehicle_number: Optional[str] = None
) -> Route:
    route = Route(
        organization_id=organization_id,
        name=name,
        type=type,
        vehicle_number=vehicle_number,
    )
    db.add(route)
    await db.commit()
    await db.refresh(route)
    return route


async def create_route_stop(
    db: AsyncSession,
    route_id: str,
    name: str,
    order_index: int,
    scheduled_arrival_minutes: Optional[int] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None
) -> RouteStop:
    """
    Add a stop to a route.
    
    Raises:
        IntegrityError: if order_index is already taken on the route
    """
    stop = RouteStop(
        route_id=route_id,
        name=name,
        order_index=order_index,
        scheduled_arrival_minutes=scheduled_arrival_minutes,
        latitude=latitude,
        longitude=longitude,
    )
    db.add(stop)
    await db.commit()
    await db.refresh(stop)
    return stop


async def get_route_stops(db: AsyncSession, route_id: str) -> List[RouteStop]:
    """Active stops of a route in order_index order."""
    result = await db.execute(
        select(RouteStop).where(
            RouteStop.route_id == route_id,
            RouteStop.is_active == True
        ).order_by(RouteStop.order_index)
    )
    return list(result.scalars().all())


async def get_trip_session(db: AsyncSession, session_id: str) -> RouteSession:
    """
    Raises:
        ResourceNotFoundError: if the session does not exist
    """
    result = await db.execute(
        select(RouteSession).where(RouteSession.id == session_id)
    )
    session = result.scalar_one_or_none()
    
    if not session:
        raise ResourceNotFoundError("Route session", session_id)
    
    return session


async def find_open_session_for_driver(
    db: AsyncSession,
    driver_user_id: str
) -> Optional[RouteSession]:
    result = await db.execute(
        select(RouteSession).where(
            RouteSession.driver_user_id == driver_user_id,
            RouteSession.status.in_(list(OPEN_STATUSES))
        ).order_by(RouteSession.created_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_trip_session(db: AsyncSession, route_id: str) -> Optional[RouteSession]:
    """
    Latest open session (active, or pending/paused) on a route.
    
    Returns:
        The session, or None when nobody is driving the route
    """
    result = await db.execute(
        select(RouteSession).where(
            RouteSession.route_id == route_id,
            RouteSession.status.in_(list(OPEN_STATUSES))
        ).order_by(RouteSession.created_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def create_trip_session(
    db: AsyncSession,
    route_id: str,
    driver_user_id: str
) -> RouteSession:
    """
    Create a PENDING session for a driver on a route.
    
    Raises:
        ResourceNotFoundError: if the route does not exist
        OpenSessionExistsError: if the driver already has a pending or active session
    """
    await get_route(db, route_id)
    
    existing = await find_open_session_for_driver(db, driver_user_id)
    if existing:
        raise OpenSessionExistsError(existing.id)
    
    session = RouteSession(
        route_id=route_id,
        driver_user_id=driver_user_id,
        status=SessionStatus.PENDING,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    
    logger.info("Created route session %s on route %s for driver %s", session.id, route_id, driver_user_id)
    return session


async def set_trip_session_status(
    db: AsyncSession,
    session_id: str,
    status: SessionStatus,
    actor: Optional[dict] = None
) -> RouteSession:
    """
    Move a session to ``status`` following the session state machine.
    
    Args:
        db: Database session
        session_id: Session to update
        status: Requested status
        actor: Decoded token of the caller, recorded in the audit log
    
    Raises:
        ResourceNotFoundError: if the session does not exist
        InvalidTransitionError: if the move is not allowed
    """
    session = await get_trip_session(db, session_id)
    previous = session.status
    
    transition = apply_transition(session, status)
    
    await db.commit()
    await db.refresh(session)
    
    logger.info(
        "Route session %s: %s -> %s (%s)",
        session.id, previous.value, session.status.value, transition.value
    )
    
    await log_event(
        db=db,
        action=transition.value,
        session_id=session.id,
        actor=actor,
        metadata={
            "route_id": session.route_id,
            "from": previous.value,
            "to": session.status.value,
        }
    )
    
    return session


async def set_trip_session_location(
    db: AsyncSession,
    session_id: str,
    latitude: float,
    longitude: float,
    recorded_at: Optional[datetime] = None
) -> RouteSession:
    """
    Record the latest position of an active session.
    
    Stamps last_location_update with the server time and appends a
    breadcrumb row.
    
    Raises:
        ResourceNotFoundError: if the session does not exist
        SessionNotActiveError: if the session is not ACTIVE
    """
    session = await get_trip_session(db, session_id)
    
    if session.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError(session.id, session.status.value)
    
    now = datetime.now(timezone.utc)
    
    session.current_latitude = latitude
    session.current_longitude = longitude
    session.last_location_update = now
    
    db.add(RouteSessionLocation(
        session_id=session.id,
        latitude=latitude,
        longitude=longitude,
        recorded_at=recorded_at or now,
    ))
    
    await db.commit()
    await db.refresh(session)
    
    return session


async def set_trip_session_current_stop(
    db: AsyncSession,
    session: RouteSession,
    stop_id: Optional[str]
) -> RouteSession:
    if session.current_stop_id == stop_id:
        return session
    
    session.current_stop_id = stop_id
    await db.commit()
    await db.refresh(session)
    return session


async def list_session_locations(
    db: AsyncSession,
    session_id: str,
    limit: int = 50
) -> List[RouteSessionLocation]:
    """Most recent breadcrumb points first."""
    result = await db.execute(
        select(RouteSessionLocation).where(
            RouteSessionLocation.session_id == session_id
        ).order_by(RouteSessionLocation.recorded_at.desc(), RouteSessionLocation.id.desc()).limit(limit)
    )
    return list(result.scalars().all())
