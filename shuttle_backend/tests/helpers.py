"""
Shared helpers for tests: bearer tokens for seeded users.
"""

from shuttle_backend.app.core.jwt import create_access_token
from shuttle_backend.app.models.user import User


def make_token(user: User) -> str:
    return create_access_token(data={
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
        "organization_id": user.organization_id,
    })


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user)}"}
