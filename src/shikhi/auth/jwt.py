"""
Identity provider token verification.

The identity provider signs short-lived session tokens (RS256 by default). We
only verify them; issuance is the provider's job.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from shikhi.config import get_settings

_public_key: str | None = None


def _load_public_key() -> str:
    """Load the provider's public key from disk (cached after first call)."""
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        settings = get_settings()
        _public_key = Path(settings.identity_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset the cached key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity token.

    Args:
        token: The encoded JWT string from the Authorization header.

    Returns:
        Decoded claims. ``sub`` is always present.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _load_public_key(),
            algorithms=[settings.identity_jwt_algorithm],
            issuer=settings.identity_jwt_issuer,
            audience=settings.identity_jwt_audience,
            options={**options, "verify_aud": settings.identity_jwt_audience is not None},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not str(payload.get("sub", "")).strip():
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)
    return payload


def has_role(claims: dict[str, Any], role: str) -> bool:
    """True when the configured role claim grants ``role``.

    The claim may be a plain string or a list of roles, and may be nested under
    ``public_metadata`` as some providers do.
    """
    settings = get_settings()
    value = claims.get(settings.identity_role_claim)
    if value is None:
        value = (claims.get("public_metadata") or {}).get(settings.identity_role_claim)
    if isinstance(value, str):
        return value == role
    if isinstance(value, list):
        return role in value
    return False
