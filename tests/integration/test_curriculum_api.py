"""Integration tests for the curriculum editor."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _base(course: dict) -> str:
    return f"/api/v1/admin/courses/{course['id']}/curriculum"


async def _add_module(client: AsyncClient, course: dict, headers: dict, name: str) -> dict:
    response = await client.post(f"{_base(course)}/modules", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestModules:
    async def test_orders_follow_insertion(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        first = await _add_module(client, course, admin_headers, "Hiragana")
        second = await _add_module(client, course, admin_headers, "Katakana")
        assert first["module"]["order"] == 0
        assert second["module"]["order"] == 1
        assert [m["name"] for m in second["curriculum"]["modules"]] == ["Hiragana", "Katakana"]

    async def test_blank_name_rejected(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        response = await client.post(f"{_base(course)}/modules", json={"name": "  "}, headers=admin_headers)
        assert response.status_code == 400

    async def test_unknown_course(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(
            "/api/v1/admin/courses/missing/curriculum/modules",
            json={"name": "Hiragana"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    async def test_unpublished_module_hidden_from_students(
        self, client: AsyncClient, admin_headers: dict, course: dict
    ) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        await _add_module(client, course, admin_headers, "Secret")
        toggled = await client.patch(
            f"{_base(course)}/modules/1", json={"is_published": False}, headers=admin_headers
        )
        assert toggled.status_code == 200

        public = (await client.get(f"/api/v1/courses/{course['id']}/curriculum")).json()
        assert [m["name"] for m in public["modules"]] == ["Hiragana"]
        full = (await client.get(_base(course), headers=admin_headers)).json()
        assert [m["name"] for m in full["modules"]] == ["Hiragana", "Secret"]


class TestItems:
    async def test_add_resource(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        response = await client.post(
            f"{_base(course)}/modules/0/items",
            json={
                "type": "resource",
                "title": "Stroke order",
                "resource_type": "pdf",
                "attachments": [{"url": "https://cdn.example.com/a.pdf", "name": "a.pdf"}],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["item_index"] == 0
        assert data["module_index"] == 0
        assert data["item"]["resource_type"] == "pdf"
        assert data["curriculum"]["modules"][0]["items"][0]["title"] == "Stroke order"

    async def test_items_keep_position(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        for title in ("あ", "い", "う"):
            await client.post(
                f"{_base(course)}/modules/0/items",
                json={"type": "resource", "title": title},
                headers=admin_headers,
            )
        full = (await client.get(_base(course), headers=admin_headers)).json()
        assert [i["title"] for i in full["modules"][0]["items"]] == ["あ", "い", "う"]

    async def test_missing_module(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        response = await client.post(
            f"{_base(course)}/modules/3/items",
            json={"type": "resource", "title": "Orphan"},
            headers=admin_headers,
        )
        assert response.status_code == 404
        assert response.json()["module_index"] == 3

    async def test_invalid_item(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        response = await client.post(
            f"{_base(course)}/modules/0/items",
            json={"type": "flashcard", "title": "Deck"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_add_link_defaults_type(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Resources")
        response = await client.post(
            f"{_base(course)}/modules/0/links",
            json={"title": "Jisho", "url": "https://jisho.org"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["item"]["type"] == "link"

    async def test_links_endpoint_rejects_other_types(
        self, client: AsyncClient, admin_headers: dict, course: dict
    ) -> None:
        await _add_module(client, course, admin_headers, "Resources")
        response = await client.post(
            f"{_base(course)}/modules/0/links",
            json={"type": "quiz", "title": "Sneaky"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_unpublished_item_hidden(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        for title in ("Public", "Draft"):
            await client.post(
                f"{_base(course)}/modules/0/items",
                json={"type": "resource", "title": title},
                headers=admin_headers,
            )
        toggled = await client.patch(
            f"{_base(course)}/modules/0/items/1", json={"is_published": False}, headers=admin_headers
        )
        assert toggled.status_code == 200

        public = (await client.get(f"/api/v1/courses/{course['id']}/curriculum")).json()
        assert [i["title"] for i in public["modules"][0]["items"]] == ["Public"]
        detail = (await client.get(f"/api/v1/courses/{course['id']}")).json()
        assert [i["title"] for i in detail["curriculum"]["modules"][0]["items"]] == ["Public"]

    async def test_toggle_missing_item(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        await _add_module(client, course, admin_headers, "Hiragana")
        response = await client.patch(
            f"{_base(course)}/modules/0/items/0", json={"is_published": False}, headers=admin_headers
        )
        assert response.status_code == 404


class TestReplaceCurriculum:
    async def test_replace(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        modules = [
            {"name": "Later", "order": 5, "items": [{"type": "link", "title": "NHK", "url": "https://nhk.or.jp"}]},
            {"name": "Sooner", "order": 1, "items": []},
        ]
        response = await client.put(_base(course), json={"modules": modules}, headers=admin_headers)
        assert response.status_code == 200
        full = (await client.get(_base(course), headers=admin_headers)).json()
        assert [m["name"] for m in full["modules"]] == ["Sooner", "Later"]
        assert [m["order"] for m in full["modules"]] == [0, 1]

    async def test_module_added_after_replace_gets_next_order(
        self, client: AsyncClient, admin_headers: dict, course: dict
    ) -> None:
        modules = [{"name": "Kana", "order": 1}, {"name": "Kanji", "order": 2}]
        await client.put(_base(course), json={"modules": modules}, headers=admin_headers)
        added = await client.post(f"{_base(course)}/modules", json={"name": "Keigo"}, headers=admin_headers)
        assert added.status_code == 201
        assert added.json()["module"]["order"] == 2

        full = (await client.get(_base(course), headers=admin_headers)).json()
        assert [(m["name"], m["order"]) for m in full["modules"]] == [("Kana", 0), ("Kanji", 1), ("Keigo", 2)]

    async def test_duplicate_orders_rejected(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        modules = [{"name": "A", "order": 0}, {"name": "B", "order": 0}]
        response = await client.put(_base(course), json={"modules": modules}, headers=admin_headers)
        assert response.status_code == 400

    async def test_invalid_item_rejected(self, client: AsyncClient, admin_headers: dict, course: dict) -> None:
        modules = [{"name": "A", "order": 0, "items": [{"type": "resource", "title": ""}]}]
        response = await client.put(_base(course), json={"modules": modules}, headers=admin_headers)
        assert response.status_code == 400
