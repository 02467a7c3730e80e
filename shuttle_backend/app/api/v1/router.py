"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from shuttle_backend.app.api.v1.endpoints import route_sessions, routes

router = APIRouter()

# Driver trip lifecycle and GPS reporting
router.include_router(route_sessions.router)

# Rider-facing stops and live status
router.include_router(routes.router)
