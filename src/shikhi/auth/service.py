"""User provisioning from identity provider claims."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.db.models import User

logger = structlog.get_logger()

# claim name -> User attribute
_PROFILE_CLAIMS = {
    "email": "email",
    "username": "username",
    "first_name": "first_name",
    "last_name": "last_name",
    "picture": "profile_image_url",
}


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    """Look up a user by the identity provider's user id."""
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


def _profile_from_claims(claims: dict[str, Any]) -> dict[str, Any]:
    profile: dict[str, Any] = {}
    for claim, attr in _PROFILE_CLAIMS.items():
        value = claims.get(claim)
        if value:
            profile[attr] = value
    if "first_name" not in profile and claims.get("name"):
        first, _, last = str(claims["name"]).partition(" ")
        profile["first_name"] = first
        if last:
            profile["last_name"] = last
    return profile


async def get_or_create_user(
    db: AsyncSession,
    claims: dict[str, Any],
    *,
    is_admin: bool = False,
) -> tuple[User, bool]:
    """
    Get the user for these claims, creating it on first sight.

    The denormalised profile is refreshed from the claims on every call so it
    tracks changes made at the identity provider.

    Returns:
        Tuple of (user, created) where created is True if a new user was made.
    """
    external_id = str(claims["sub"])
    profile = _profile_from_claims(claims)

    user = await get_user_by_external_id(db, external_id)
    if user is None:
        user = User(
            external_id=external_id,
            is_admin=is_admin,
            created_at=datetime.now(timezone.utc),
            **profile,
        )
        db.add(user)
        await db.flush()
        logger.info("user_created", user_id=user.id, external_id=external_id, is_admin=is_admin)
        return user, True

    changed = {k: v for k, v in profile.items() if getattr(user, k) != v}
    if user.is_admin != is_admin:
        changed["is_admin"] = is_admin
    for key, value in changed.items():
        setattr(user, key, value)
    if changed:
        await db.flush()
        logger.info("user_profile_synced", user_id=user.id, fields=sorted(changed))
    return user, False


async def list_admins(db: AsyncSession) -> list[User]:
    """All users currently holding the admin role."""
    result = await db.execute(select(User).where(User.is_admin.is_(True)).order_by(User.created_at))
    return list(result.scalars().all())
