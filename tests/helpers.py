"""Test environment and identity token helpers.

Importing this module points the settings at in-memory SQLite and at a
freshly generated RSA public key. It must be imported before anything from
``shikhi`` reads the settings; ``tests/conftest.py`` does that first.
"""

from __future__ import annotations

import os
import tempfile
import time
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

STUDENT_ID = "user_student_1"
OTHER_STUDENT_ID = "user_student_2"
ADMIN_ID = "user_admin_1"


def _ensure_test_keys() -> bytes:
    """Generate an RSA key pair, point settings at the public half, return the private PEM."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    tmpdir = tempfile.mkdtemp(prefix="shikhi_test_keys_")
    public_path = os.path.join(tmpdir, "identity_public.pem")
    with open(public_path, "wb") as f:
        f.write(
            key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )
    os.environ["SHIKHI_IDENTITY_PUBLIC_KEY_PATH"] = public_path
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


os.environ["SHIKHI_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SHIKHI_SAGA_BACKOFF_SECONDS"] = "0"
os.environ["SHIKHI_LOG_FORMAT"] = "console"
_PRIVATE_KEY = _ensure_test_keys()


def make_token(sub: str, *, role: str | None = None, expires_in: int = 3600, **claims: Any) -> str:  # noqa: ANN401
    """Sign an identity token the way the provider would."""
    now = int(time.time())
    payload: dict[str, Any] = {"sub": sub, "iat": now, "exp": now + expires_in, **claims}
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, _PRIVATE_KEY, algorithm="RS256")


def bearer(sub: str, *, role: str | None = None, **claims: Any) -> dict[str, str]:  # noqa: ANN401
    return {"Authorization": f"Bearer {make_token(sub, role=role, **claims)}"}


def course_payload(**overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    payload: dict[str, Any] = {
        "title": "Japanese for Beginners",
        "title_jp": "初心者のための日本語",
        "description": "Hiragana, katakana and your first conversations.",
        "level": "beginner",
        "category": "conversation",
        "tags": ["jlpt-n5"],
        "estimated_duration": 120,
        "difficulty": 2,
        "learning_objectives": ["Read hiragana", "Introduce yourself"],
        "actual_price": 1500.0,
        "discounted_price": 999.0,
        "is_published": True,
    }
    payload.update(overrides)
    return payload
