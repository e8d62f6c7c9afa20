"""Integration tests for the manual-payment enrollment workflow."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _request_body(course_id: str, **overrides) -> dict:
    body = {
        "course_id": course_id,
        "payment_method": "nagad",
        "transaction_id": " 8N7A6B5C ",
        "sender_number": "01811111111",
    }
    body.update(overrides)
    return body


async def _submit(client: AsyncClient, headers: dict, course_id: str, **overrides) -> dict:
    response = await client.post("/api/v1/enrollments/requests", json=_request_body(course_id, **overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["request"]


async def _my_course_ids(client: AsyncClient, headers: dict) -> list[str]:
    response = await client.get("/api/v1/users/me/courses", headers=headers)
    assert response.status_code == 200
    return [c["course_id"] for c in response.json()]


class TestSubmit:
    async def test_snapshots_course_and_student(self, client: AsyncClient, student_headers: dict, course: dict) -> None:
        req = await _submit(client, student_headers, course["id"])
        assert req["status"] == "pending"
        assert req["course_name"] == "Japanese for Beginners"
        assert req["course_price"] == 999.0
        assert req["user_id"] == "user_student_1"
        assert req["user_name"] == "Taro Yamada"
        assert req["user_email"] == "taro@example.com"
        assert req["transaction_id"] == "8N7A6B5C"

    async def test_list_price_when_no_discount(
        self, client: AsyncClient, student_headers: dict, create_course
    ) -> None:
        course = await create_course(title="Kanji 101", discounted_price=None)
        req = await _submit(client, student_headers, course["id"])
        assert req["course_price"] == 1500.0

    async def test_price_snapshot_survives_course_edit(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.patch(
            f"/api/v1/admin/courses/{course['id']}",
            json={"title": "Renamed", "discounted_price": 500.0},
            headers=admin_headers,
        )
        mine = (await client.get("/api/v1/enrollments/requests/me", headers=student_headers)).json()
        assert mine["requests"][0]["id"] == req["id"]
        assert mine["requests"][0]["course_price"] == 999.0
        assert mine["requests"][0]["course_name"] == "Japanese for Beginners"

    async def test_duplicate_pending_conflicts(self, client: AsyncClient, student_headers: dict, course: dict) -> None:
        first = await _submit(client, student_headers, course["id"])
        response = await client.post(
            "/api/v1/enrollments/requests", json=_request_body(course["id"]), headers=student_headers
        )
        assert response.status_code == 409
        assert response.json()["request_id"] == first["id"]

    async def test_unpublished_course(self, client: AsyncClient, student_headers: dict, create_course) -> None:
        draft = await create_course(title="Draft", is_published=False)
        response = await client.post(
            "/api/v1/enrollments/requests", json=_request_body(draft["id"]), headers=student_headers
        )
        assert response.status_code == 404

    async def test_unknown_payment_method(self, client: AsyncClient, student_headers: dict, course: dict) -> None:
        response = await client.post(
            "/api/v1/enrollments/requests",
            json=_request_body(course["id"], payment_method="paypal"),
            headers=student_headers,
        )
        assert response.status_code == 422

    async def test_requires_login(self, client: AsyncClient, course: dict) -> None:
        response = await client.post("/api/v1/enrollments/requests", json=_request_body(course["id"]))
        assert response.status_code == 401


class TestApprove:
    async def test_approve_enrolls_student(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["request"]["status"] == "approved"
        assert data["request"]["approved_by"] == "user_admin_1"
        assert data["request"]["approved_at"] is not None
        assert data["warning"] is None

        assert await _my_course_ids(client, student_headers) == [course["id"]]
        stored = (await client.get(f"/api/v1/admin/courses/{course['id']}", headers=admin_headers)).json()
        assert stored["enrolled_students"] == 1

    async def test_second_approve_conflicts(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        again = await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        assert again.status_code == 409
        assert again.json()["status"] == "approved"

    async def test_reject_after_approve_conflicts(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        response = await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject",
            json={"reason": "Too late"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    async def test_approved_request_blocks_new_one(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        response = await client.post(
            "/api/v1/enrollments/requests", json=_request_body(course["id"]), headers=student_headers
        )
        assert response.status_code == 409

    async def test_students_cannot_approve(self, client: AsyncClient, student_headers: dict, course: dict) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=student_headers)
        assert response.status_code == 403

    async def test_unknown_request(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post("/api/v1/admin/enrollments/missing/approve", headers=admin_headers)
        assert response.status_code == 404


class TestReject:
    async def test_reject_with_reason(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject",
            json={"reason": "Transaction id not found"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()["request"]
        assert data["status"] == "rejected"
        assert data["rejection_reason"] == "Transaction id not found"
        assert await _my_course_ids(client, student_headers) == []

    async def test_reason_required(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject", json={"reason": "   "}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_reason_length_limit(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject", json={"reason": "x" * 501}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_resubmit_after_rejection(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject", json={"reason": "Blurry screenshot"}, headers=admin_headers
        )
        retry = await _submit(client, student_headers, course["id"], transaction_id="9Z9Z9Z")
        assert retry["status"] == "pending"
        assert retry["id"] != req["id"]

    async def test_unknown_request_with_blank_reason(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(
            "/api/v1/admin/enrollments/missing/reject", json={"reason": ""}, headers=admin_headers
        )
        assert response.status_code == 404

    async def test_blank_reason_on_approved_request_conflicts(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)
        response = await client.post(
            f"/api/v1/admin/enrollments/{req['id']}/reject", json={"reason": ""}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["status"] == "approved"


class TestUnenroll:
    async def test_delete_removes_enrollment(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{req['id']}/approve", headers=admin_headers)

        response = await client.delete(f"/api/v1/admin/enrollments/{req['id']}", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["request"]["id"] == req["id"]
        assert data["warning"] is None

        assert await _my_course_ids(client, student_headers) == []
        stored = (await client.get(f"/api/v1/admin/courses/{course['id']}", headers=admin_headers)).json()
        assert stored["enrolled_students"] == 0
        listing = (await client.get("/api/v1/admin/enrollments", headers=admin_headers)).json()
        assert listing["total"] == 0

    async def test_delete_pending_request(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        response = await client.delete(f"/api/v1/admin/enrollments/{req['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["request"]["status"] == "pending"

    async def test_delete_twice(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        req = await _submit(client, student_headers, course["id"])
        await client.delete(f"/api/v1/admin/enrollments/{req['id']}", headers=admin_headers)
        response = await client.delete(f"/api/v1/admin/enrollments/{req['id']}", headers=admin_headers)
        assert response.status_code == 404

    async def test_deleting_old_rejected_request_keeps_enrollment(
        self, client: AsyncClient, student_headers: dict, admin_headers: dict, course: dict
    ) -> None:
        rejected = await _submit(client, student_headers, course["id"])
        await client.post(
            f"/api/v1/admin/enrollments/{rejected['id']}/reject", json={"reason": "Wrong amount"}, headers=admin_headers
        )
        paid = await _submit(client, student_headers, course["id"], transaction_id="5P5P5P")
        await client.post(f"/api/v1/admin/enrollments/{paid['id']}/approve", headers=admin_headers)

        response = await client.delete(f"/api/v1/admin/enrollments/{rejected['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["warning"] is None

        assert await _my_course_ids(client, student_headers) == [course["id"]]
        stored = (await client.get(f"/api/v1/admin/courses/{course['id']}", headers=admin_headers)).json()
        assert stored["enrolled_students"] == 1
        listing = (await client.get("/api/v1/admin/enrollments", headers=admin_headers)).json()
        assert [r["status"] for r in listing["requests"]] == ["approved"]


class TestAdminListing:
    async def test_filter_by_status(
        self,
        client: AsyncClient,
        student_headers: dict,
        other_student_headers: dict,
        admin_headers: dict,
        course: dict,
    ) -> None:
        first = await _submit(client, student_headers, course["id"])
        await _submit(client, other_student_headers, course["id"])
        await client.post(f"/api/v1/admin/enrollments/{first['id']}/approve", headers=admin_headers)

        pending = (await client.get("/api/v1/admin/enrollments", params={"status": "pending"}, headers=admin_headers)).json()
        assert pending["total"] == 1
        assert pending["requests"][0]["user_id"] == "user_student_2"

        everything = (await client.get("/api/v1/admin/enrollments", headers=admin_headers)).json()
        assert everything["total"] == 2

    async def test_students_only_see_their_own(
        self, client: AsyncClient, student_headers: dict, other_student_headers: dict, course: dict
    ) -> None:
        await _submit(client, student_headers, course["id"])
        mine = (await client.get("/api/v1/enrollments/requests/me", headers=other_student_headers)).json()
        assert mine == {"requests": [], "total": 0}
