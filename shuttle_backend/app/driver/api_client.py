"""
HTTP client for the route session API, used by the driver app.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from shuttle_backend.app.driver.errors import RouteSessionApiError

logger = logging.getLogger("shuttle.driver")


class RouteSessionApiClient:
    """
    Thin async wrapper over the v1 route session endpoints.
    
    Every non-2xx response or transport failure raises RouteSessionApiError.
    
    Usage:
        async with RouteSessionApiClient("https://tracker.example.edu", token) as api:
            session = await api.create_trip_session(route_id, driver_id)
    """
    
    def __init__(
        self,
        base_url: str,
        token: str,
        api_prefix: str = "/v1",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._prefix = api_prefix
        self._headers = {"Authorization": f"Bearer {token}"}
    
    async def __aenter__(self):
        return self
    
    async def __aexit__(self, *exc_info):
        await self.aclose()
    
    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
    
    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self._client.request(
                method, f"{self._prefix}{path}", json=json, headers=self._headers
            )
        except httpx.HTTPError as e:
            raise RouteSessionApiError(f"{method} {path} failed: {e}") from e
        
        if response.is_error:
            error_code = None
            message = response.text
            try:
                body = response.json()
                error_code = body.get("error_code")
                message = body.get("message", message)
            except ValueError:
                pass
            raise RouteSessionApiError(message, status_code=response.status_code, error_code=error_code)
        
        return response.json()
    
    async def create_trip_session(self, route_id: str, driver_user_id: str) -> Dict[str, Any]:
        return await self._request(
            "POST", "/route-sessions/start",
            json={"route_id": route_id, "driver_user_id": driver_user_id}
        )
    
    async def set_trip_session_status(self, session_id: str, status: str) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/route-sessions/{session_id}/status", json={"status": status}
        )
    
    async def set_trip_session_location(self, session_id: str, latitude: float, longitude: float) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/route-sessions/{session_id}/location",
            json={"latitude": latitude, "longitude": longitude}
        )
    
    async def get_active_trip_session(self, route_id: str) -> Optional[Dict[str, Any]]:
        return await self._request("GET", f"/route-sessions/active/{route_id}")
    
    async def get_route_stops(self, route_id: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/routes/{route_id}/stops")
        return body["stops"]
