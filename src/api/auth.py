"""Request identity

Authentication happens at the upstream gateway, which forwards the caller
as X-User-Id / X-User-Role headers.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Header
from libs.result import Error
from src.api.error import ClientError


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    role: str


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> AuthUser:
    if not x_user_id or not x_user_id.strip():
        raise ClientError(Error(code="UNAUTHENTICATED", message="Authentication required"))
    return AuthUser(user_id=x_user_id.strip(), role=(x_user_role or "tenant").strip().lower())


def require_role(*roles: str):
    """Dependency factory admitting only the given roles"""

    async def dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role not in roles:
            raise ClientError(Error(code="FORBIDDEN", message="Forbidden"))
        return user

    return dependency


async def require_idempotency_key(
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> str:
    if not idempotency_key or not idempotency_key.strip():
        raise ClientError(
            Error(code="MISSING_IDEMPOTENCY_KEY", message="Idempotency-Key header is required")
        )
    return idempotency_key.strip()
