"""
Integration tests for the route session lifecycle endpoints.

Covers start, status transitions, GPS writes, ownership and tenancy checks.
"""

import pytest
from sqlalchemy import select

from shuttle_backend.app.core.token_revocation import revoke_token
from shuttle_backend.app.models.audit_log import AuditLog
from shuttle_backend.app.services.audit import AuditAction, get_audit_trail
from shuttle_backend.tests.helpers import auth_headers, make_token


async def start_session(client, driver, route):
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": route.id},
        headers=auth_headers(driver)
    )
    assert response.status_code == 201, response.text
    return response.json()


async def set_status(client, driver, session_id, status):
    return await client.patch(
        f"/v1/route-sessions/{session_id}/status",
        json={"status": status},
        headers=auth_headers(driver)
    )


@pytest.mark.asyncio
async def test_start_creates_pending_session(client, driver, route):
    data = await start_session(client, driver, route)
    
    assert data["status"] == "pending"
    assert data["route_id"] == route.id
    assert data["driver_user_id"] == driver.id
    assert data["started_at"] is None
    assert data["completed_at"] is None


@pytest.mark.asyncio
async def test_rider_cannot_start_session(client, rider, route):
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": route.id},
        headers=auth_headers(rider)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_driver_cannot_start_for_someone_else(client, driver, second_driver, route):
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": route.id, "driver_user_id": second_driver.id},
        headers=auth_headers(driver)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_start_on_unknown_route_is_404(client, driver):
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": "does-not-exist"},
        headers=auth_headers(driver)
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_second_open_session_is_rejected(client, driver, route):
    first = await start_session(client, driver, route)
    
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": route.id},
        headers=auth_headers(driver)
    )
    
    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_SESSION_004"
    assert body["details"]["session_id"] == first["id"]


@pytest.mark.asyncio
async def test_full_lifecycle_preserves_started_at(client, driver, route):
    session = await start_session(client, driver, route)
    sid = session["id"]
    
    activated = await set_status(client, driver, sid, "active")
    assert activated.status_code == 200
    started_at = activated.json()["started_at"]
    assert started_at is not None
    
    paused = await set_status(client, driver, sid, "pending")
    assert paused.status_code == 200
    assert paused.json()["status"] == "pending"
    assert paused.json()["started_at"] == started_at
    
    resumed = await set_status(client, driver, sid, "active")
    assert resumed.json()["started_at"] == started_at
    
    completed = await set_status(client, driver, sid, "completed")
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["completed_at"] is not None
    
    again = await set_status(client, driver, sid, "active")
    assert again.status_code == 409
    assert again.json()["error_code"] == "ERR_SESSION_001"


@pytest.mark.asyncio
async def test_fresh_session_cannot_complete(client, driver, route):
    session = await start_session(client, driver, route)
    
    response = await set_status(client, driver, session["id"], "completed")
    assert response.status_code == 409
    
    cancelled = await set_status(client, driver, session["id"], "cancelled")
    assert cancelled.status_code == 200
    assert cancelled.json()["started_at"] is None


@pytest.mark.asyncio
async def test_unknown_status_value_is_validation_error(client, driver, route):
    session = await start_session(client, driver, route)
    response = await set_status(client, driver, session["id"], "paused")
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_transitions_are_audited(client, driver, route, db_session):
    session = await start_session(client, driver, route)
    await set_status(client, driver, session["id"], "active")
    await set_status(client, driver, session["id"], "pending")
    await set_status(client, driver, session["id"], "cancelled")
    
    result = await db_session.execute(select(AuditLog).order_by(AuditLog.id))
    actions = [log.action for log in result.scalars().all()]
    
    assert actions == [
        AuditAction.SESSION_CREATED,
        AuditAction.TRIP_STARTED,
        AuditAction.TRIP_PAUSED,
        AuditAction.TRIP_CANCELLED,
    ]
    
    paused = await get_audit_trail(db_session, action=AuditAction.TRIP_PAUSED)
    assert len(paused) == 1
    assert paused[0].actor_id == driver.id
    assert paused[0].session_id == session["id"]
    assert paused[0].meta_data == {
        "route_id": route.id,
        "from": "active",
        "to": "pending",
    }


@pytest.mark.asyncio
async def test_concurrent_transition_is_rejected(client, driver, route, redis_client_session):
    session = await start_session(client, driver, route)
    
    # Another request holds the slot
    await redis_client_session.set(f"session:transition:{session['id']}", "1", nx=True)
    
    response = await set_status(client, driver, session["id"], "active")
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_SESSION_002"
    
    await redis_client_session.delete(f"session:transition:{session['id']}")
    response = await set_status(client, driver, session["id"], "active")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_slot_is_released_after_rejected_transition(client, driver, route, redis_client_session):
    session = await start_session(client, driver, route)
    
    rejected = await set_status(client, driver, session["id"], "completed")
    assert rejected.status_code == 409
    assert await redis_client_session.exists(f"session:transition:{session['id']}") == 0


@pytest.mark.asyncio
async def test_location_requires_active_session(client, driver, route):
    session = await start_session(client, driver, route)
    
    response = await client.patch(
        f"/v1/route-sessions/{session['id']}/location",
        json={"latitude": 39.7817, "longitude": -89.6501},
        headers=auth_headers(driver)
    )
    
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_SESSION_003"


@pytest.mark.asyncio
async def test_location_update_stamps_position(client, driver, route):
    session = await start_session(client, driver, route)
    await set_status(client, driver, session["id"], "active")
    
    for lat, lng in [(39.7817, -89.6501), (39.7822, -89.6490)]:
        response = await client.patch(
            f"/v1/route-sessions/{session['id']}/location",
            json={"latitude": lat, "longitude": lng},
            headers=auth_headers(driver)
        )
        assert response.status_code == 200
    
    data = response.json()
    assert data["current_latitude"] == 39.7822
    assert data["current_longitude"] == -89.6490
    assert data["last_location_update"] is not None
    
    trail = await client.get(
        f"/v1/route-sessions/{session['id']}/locations",
        headers=auth_headers(driver)
    )
    assert trail.status_code == 200
    assert trail.json()["total_locations"] == 2


@pytest.mark.asyncio
async def test_location_out_of_range_is_rejected(client, driver, route):
    session = await start_session(client, driver, route)
    await set_status(client, driver, session["id"], "active")
    
    response = await client.patch(
        f"/v1/route-sessions/{session['id']}/location",
        json={"latitude": 91, "longitude": 0},
        headers=auth_headers(driver)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_other_driver_cannot_touch_session(client, driver, second_driver, route):
    session = await start_session(client, driver, route)
    
    response = await set_status(client, second_driver, session["id"], "active")
    assert response.status_code == 403
    
    response = await client.patch(
        f"/v1/route-sessions/{session['id']}/location",
        json={"latitude": 39.78, "longitude": -89.65},
        headers=auth_headers(second_driver)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_active_session_lookup(client, driver, rider, route):
    empty = await client.get(f"/v1/route-sessions/active/{route.id}", headers=auth_headers(rider))
    assert empty.status_code == 200
    assert empty.json() is None
    
    session = await start_session(client, driver, route)
    await set_status(client, driver, session["id"], "active")
    await set_status(client, driver, session["id"], "pending")
    
    paused = await client.get(f"/v1/route-sessions/active/{route.id}", headers=auth_headers(rider))
    assert paused.json()["id"] == session["id"]
    assert paused.json()["status"] == "pending"
    
    await set_status(client, driver, session["id"], "completed")
    done = await client.get(f"/v1/route-sessions/active/{route.id}", headers=auth_headers(rider))
    assert done.json() is None


@pytest.mark.asyncio
async def test_other_organization_cannot_see_route(client, outside_rider, route):
    response = await client.get(
        f"/v1/route-sessions/active/{route.id}",
        headers=auth_headers(outside_rider)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client, route):
    response = await client.get(f"/v1/route-sessions/active/{route.id}")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_revoked_token_is_rejected(client, rider, route):
    token = make_token(rider)
    await revoke_token(token, rider.id)
    
    response = await client.get(
        f"/v1/route-sessions/active/{route.id}",
        headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(client, rider, route, db_session):
    rider.is_active = False
    await db_session.commit()
    
    response = await client.get(
        f"/v1/route-sessions/active/{route.id}",
        headers=auth_headers(rider)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_forbidden_error_uses_envelope(client, rider, route):
    response = await client.post(
        "/v1/route-sessions/start",
        json={"route_id": route.id},
        headers=auth_headers(rider)
    )
    body = response.json()
    assert body["error_code"] == "ERR_FORBIDDEN"
    assert body["details"] == {}


@pytest.mark.asyncio
async def test_health_reports_redis(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "ok"
    assert "X-Correlation-ID" in response.headers
