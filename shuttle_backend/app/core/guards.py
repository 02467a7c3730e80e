"""
Access guards: role checks and organization (tenant) isolation.
"""

from typing import Iterable
from fastapi import Depends, HTTPException, status
from shuttle_backend.app.models.enums import UserRole
from shuttle_backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: Iterable[UserRole]):
    """
    Dependency factory restricting an endpoint to some roles.
    
    Usage:
        @router.post("/route-sessions/start")
        async def start(current_user: dict = Depends(require_role([UserRole.DRIVER]))):
            ...
    """
    allowed = {role.value for role in allowed_roles}
    
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(sorted(allowed))}"
            )
        return current_user
    
    return role_checker


def belongs_to_organization(organization_id: str, current_user: dict) -> bool:
    """Admins see every organization; everyone else only their own."""
    if current_user.get("role") == UserRole.ADMIN.value:
        return True
    return current_user.get("organization_id") == organization_id


class OrganizationGuard:
    """
    Rejects access to routes and sessions of another organization.
    
    Usage:
        organization_guard = OrganizationGuard()
        route = await get_route(db, route_id)
        organization_guard.enforce(route.organization_id, current_user, "route")
    """
    
    def enforce(self, organization_id: str, current_user: dict, resource_name: str = "resource") -> None:
        if not belongs_to_organization(organization_id, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. This {resource_name} belongs to another organization."
            )
