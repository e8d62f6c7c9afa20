"""FastAPI authentication and authorization dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.jwt import has_role, verify_token
from shikhi.auth.service import get_or_create_user
from shikhi.config import get_settings
from shikhi.database import get_session
from shikhi.db.models import User
from shikhi.errors import ForbiddenError, UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> dict[str, Any]:
    """Verify the bearer token and return its claims. 401 when missing or invalid."""
    if credentials is None:
        raise UnauthorizedError("Authentication required")
    try:
        return verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError(str(e)) from e


async def get_current_user(
    claims: dict[str, Any] = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the caller to a User row, provisioning it on first sight.

    The admin flag mirrors the token's role claim on every request.
    """
    settings = get_settings()
    user, _ = await get_or_create_user(db, claims, is_admin=has_role(claims, settings.identity_admin_role))
    await db.commit()
    return user


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if credentials is None:
        return None
    try:
        claims = verify_token(credentials.credentials)
    except jwt.InvalidTokenError:
        return None
    settings = get_settings()
    user, _ = await get_or_create_user(db, claims, is_admin=has_role(claims, settings.identity_admin_role))
    await db.commit()
    return user


def require_capability(capability: str) -> Callable[..., Awaitable[User]]:
    """
    Build a dependency that admits only callers holding ``capability``.

    The ``admin`` capability is granted by the configured identity admin role.

    Usage: ``admin: User = Depends(require_capability("admin"))``.
    """

    async def _guard(
        user: User = Depends(get_current_user),
        claims: dict[str, Any] = Depends(get_current_claims),
    ) -> User:
        role = get_settings().identity_admin_role if capability == "admin" else capability
        if not has_role(claims, role):
            raise ForbiddenError(f"{capability.capitalize()} access required")
        return user

    return _guard


require_admin = require_capability("admin")
