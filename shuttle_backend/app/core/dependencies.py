"""
Request authentication.

Tokens are minted by the access-code service; this backend only verifies
them. Role and organization are re-read from the user row on every request,
so a driver moved or deactivated by an admin loses access immediately.
"""

from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from shuttle_backend.app.core.jwt import decode_access_token
from shuttle_backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from shuttle_backend.app.db.session import get_db
from shuttle_backend.app.models.user import User

bearer_scheme = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """
    Resolve the caller from a bearer token.
    
    Returns:
        The token claims, with ``role`` and ``organization_id`` taken from
        the user row
        
    Raises:
        HTTPException: 401 for a bad, revoked or orphaned token,
            403 for a deactivated account
    """
    token = credentials.credentials
    
    claims = decode_access_token(token)
    if claims is None:
        raise _unauthorized("Could not validate credentials")
    
    user_id = claims.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")
    
    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")
    
    if await are_user_tokens_revoked(user_id):
        raise _unauthorized("User access has been revoked")
    
    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )
    
    return {
        **claims,
        "role": user.role.value,
        "organization_id": user.organization_id,
    }
