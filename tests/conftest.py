"""Shared test fixtures.

The suite runs against in-memory SQLite with identity tokens signed by a
throwaway RSA key (see ``tests/helpers.py``). Redis is never initialized, so
rate limiting lets every request through.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# must run before any shikhi module reads the settings
from tests.helpers import ADMIN_ID, OTHER_STUDENT_ID, STUDENT_ID, bearer, course_payload  # isort: skip

from shikhi.auth.jwt import reset_keys
from shikhi.config import get_settings
from shikhi.database import close_db, get_engine, get_session_factory, init_db
from shikhi.db import models  # noqa: F401
from shikhi.db.base import Base
from shikhi.main import create_app

get_settings.cache_clear()
reset_keys()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over a fresh in-memory schema."""
    settings = get_settings()
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_db()


@pytest_asyncio.fixture
async def db_session(client: AsyncClient) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for test assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def student_headers() -> dict[str, str]:
    return bearer(STUDENT_ID, email="taro@example.com", first_name="Taro", last_name="Yamada")


@pytest.fixture
def other_student_headers() -> dict[str, str]:
    return bearer(OTHER_STUDENT_ID, email="hanako@example.com", first_name="Hanako", last_name="Sato")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return bearer(ADMIN_ID, role="admin", email="sensei@example.com", first_name="Kenji", last_name="Sensei")


@pytest_asyncio.fixture
async def create_course(
    client: AsyncClient,
    admin_headers: dict[str, str],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that creates a course through the admin API."""

    async def _create(**overrides: Any) -> dict[str, Any]:  # noqa: ANN401
        response = await client.post("/api/v1/admin/courses", json=course_payload(**overrides), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest_asyncio.fixture
async def course(create_course: Callable[..., Awaitable[dict[str, Any]]]) -> dict[str, Any]:
    """A published course with no curriculum."""
    return await create_course()


@pytest_asyncio.fixture
async def enroll(
    client: AsyncClient,
    admin_headers: dict[str, str],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that submits a request as ``headers`` and has the admin approve it."""

    async def _enroll(course_id: str, headers: dict[str, str], transaction_id: str = "TXN-1001") -> dict[str, Any]:
        submitted = await client.post(
            "/api/v1/enrollments/requests",
            json={
                "course_id": course_id,
                "payment_method": "bkash",
                "transaction_id": transaction_id,
                "sender_number": "01700000000",
            },
            headers=headers,
        )
        assert submitted.status_code == 201, submitted.text
        request_id = submitted.json()["request"]["id"]
        approved = await client.post(f"/api/v1/admin/enrollments/{request_id}/approve", headers=admin_headers)
        assert approved.status_code == 200, approved.text
        return approved.json()

    return _enroll
