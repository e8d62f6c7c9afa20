"""Integration tests for user provisioning, streaks and XP."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from shikhi.config import get_settings
from tests.helpers import bearer

pytestmark = pytest.mark.asyncio


class TestProfile:
    async def test_first_call_provisions_user(self, client: AsyncClient, student_headers: dict) -> None:
        response = await client.get("/api/v1/users/me", headers=student_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["external_id"] == "user_student_1"
        assert data["full_name"] == "Taro Yamada"
        assert data["email"] == "taro@example.com"
        assert data["is_admin"] is False
        assert data["learning_streak"] == 0
        assert data["total_xp"] == 0

    async def test_same_user_on_repeat_calls(self, client: AsyncClient, student_headers: dict) -> None:
        first = (await client.get("/api/v1/users/me", headers=student_headers)).json()
        second = (await client.get("/api/v1/users/me", headers=student_headers)).json()
        assert first["id"] == second["id"]

    async def test_profile_follows_claims(self, client: AsyncClient, student_headers: dict) -> None:
        await client.get("/api/v1/users/me", headers=student_headers)
        updated = bearer("user_student_1", email="taro.new@example.com", name="Taro Suzuki")
        data = (await client.get("/api/v1/users/me", headers=updated)).json()
        assert data["email"] == "taro.new@example.com"
        assert data["full_name"] == "Taro Suzuki"

    async def test_admin_flag_mirrors_role(self, client: AsyncClient, admin_headers: dict) -> None:
        assert (await client.get("/api/v1/users/me", headers=admin_headers)).json()["is_admin"] is True
        demoted = bearer("user_admin_1", email="sensei@example.com")
        assert (await client.get("/api/v1/users/me", headers=demoted)).json()["is_admin"] is False

    async def test_custom_admin_role_opens_admin_routes(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setattr(get_settings(), "identity_admin_role", "staff")
        staff = bearer("user_staff_1", role="staff", email="staff@example.com")
        assert (await client.get("/api/v1/users/me", headers=staff)).json()["is_admin"] is True
        assert (await client.get("/api/v1/admin/courses", headers=staff)).status_code == 200

        old_admin = bearer("user_admin_1", role="admin", email="sensei@example.com")
        assert (await client.get("/api/v1/admin/courses", headers=old_admin)).status_code == 403

    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    async def test_expired_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/users/me", headers=bearer("user_student_1", expires_in=-30))
        assert response.status_code == 401

    async def test_admin_directory(self, client: AsyncClient, student_headers: dict, admin_headers: dict) -> None:
        await client.get("/api/v1/users/me", headers=admin_headers)
        admins = (await client.get("/api/v1/users/admins", headers=student_headers)).json()
        assert [a["external_id"] for a in admins] == ["user_admin_1"]
        assert admins[0]["display_name"] == "Kenji Sensei"


class TestEnrolledCourses:
    async def test_lists_enrollments(self, client: AsyncClient, student_headers: dict, course: dict, enroll) -> None:
        assert (await client.get("/api/v1/users/me/courses", headers=student_headers)).json() == []
        await enroll(course["id"], student_headers)
        courses = (await client.get("/api/v1/users/me/courses", headers=student_headers)).json()
        assert len(courses) == 1
        assert courses[0]["slug"] == "japanese-for-beginners"
        assert courses[0]["progress_percentage"] == 0.0


class TestStreak:
    async def test_increment_once_per_day(self, client: AsyncClient, student_headers: dict) -> None:
        first = await client.post("/api/v1/users/me/streak", json={"action": "increment"}, headers=student_headers)
        assert first.status_code == 200
        assert first.json()["learning_streak"] == 1
        assert first.json()["last_active_date"] is not None

        second = await client.post("/api/v1/users/me/streak", json={"action": "increment"}, headers=student_headers)
        assert second.json()["learning_streak"] == 1

    async def test_reset(self, client: AsyncClient, student_headers: dict) -> None:
        await client.post("/api/v1/users/me/streak", json={"action": "increment"}, headers=student_headers)
        response = await client.post("/api/v1/users/me/streak", json={"action": "reset"}, headers=student_headers)
        assert response.json()["learning_streak"] == 0

    async def test_unknown_action(self, client: AsyncClient, student_headers: dict) -> None:
        response = await client.post("/api/v1/users/me/streak", json={"action": "double"}, headers=student_headers)
        assert response.status_code == 422


class TestXP:
    async def test_accumulates(self, client: AsyncClient, student_headers: dict) -> None:
        await client.post("/api/v1/users/me/xp", json={"points": 50}, headers=student_headers)
        response = await client.post("/api/v1/users/me/xp", json={"points": 25}, headers=student_headers)
        assert response.status_code == 200
        assert response.json() == {"total_xp": 75, "added": 25}

    @pytest.mark.parametrize("points", [0, -5, 1001])
    async def test_out_of_range(self, client: AsyncClient, student_headers: dict, points: int) -> None:
        response = await client.post("/api/v1/users/me/xp", json={"points": points}, headers=student_headers)
        assert response.status_code == 400
        me = (await client.get("/api/v1/users/me", headers=student_headers)).json()
        assert me["total_xp"] == 0
