"""Integration tests: the profile schema HTTP API end to end."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi.testclient import TestClient

API = "/profile-schema"


def _create_favorite_color(client: TestClient, admin_headers: dict[str, str]) -> dict[str, Any]:
    response = client.post(
        f"{API}/fields",
        json={
            "name": "favoriteColor",
            "label": "Favorite Color",
            "type": "DROPDOWN",
            "applicability": "TALENT",
            "options": [
                {"value": "red", "label": "Red"},
                {"value": "blue", "label": "Blue", "color": "#0000ff"},
            ],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
class TestFavoriteColorOverHttp:
    def test_scenario(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        _create_favorite_color(client, admin_headers)
        values_url = f"{API}/values/talent/p-1"

        rejected = client.put(
            values_url, json={"values": {"favoriteColor": "green"}}, headers=talent_headers
        )
        assert rejected.status_code == 422
        assert rejected.json()["violations"] == {"favoriteColor": "is not a valid option"}

        accepted = client.put(
            values_url, json={"values": {"favoriteColor": "red"}}, headers=talent_headers
        )
        assert accepted.status_code == 200
        assert accepted.json()["values"] == {"favoriteColor": "red"}

        fetched = client.get(values_url, headers=talent_headers)
        assert fetched.json() == {
            "tenant_type": "talent",
            "entity_id": "p-1",
            "values": {"favoriteColor": "red"},
        }


@pytest.mark.integration
class TestSchemaEndpoint:
    def test_resolved_schema_hides_invisible_fields(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        _create_favorite_color(client, admin_headers)
        client.post(
            f"{API}/fields",
            json={"name": "internalNote", "label": "Note", "type": "TEXT", "is_visible": False},
            headers=admin_headers,
        )

        response = client.get(f"{API}/schema/talent", headers=talent_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["tenant_type"] == "talent"
        assert [f["name"] for f in body["fields"]] == ["favoriteColor"]
        assert [o["value"] for o in body["fields"][0]["options"]] == ["red", "blue"]
        assert body["fields"][0]["validation_rules"] is None

    def test_studio_schema_excludes_talent_fields(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        _create_favorite_color(client, admin_headers)
        response = client.get(f"{API}/schema/studio", headers=admin_headers)
        assert response.json()["fields"] == []

    def test_unknown_tenant_type(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get(f"{API}/schema/agency", headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "REQUEST_VALIDATION_ERROR"

    def test_requires_token(self, client: TestClient) -> None:
        response = client.get(f"{API}/schema/talent")
        assert response.status_code == 401
        assert "X-Request-ID" in response.headers


@pytest.mark.integration
class TestValueAccess:
    def test_other_entity_forbidden(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        _create_favorite_color(client, admin_headers)
        response = client.put(
            f"{API}/values/talent/p-2",
            json={"values": {"favoriteColor": "red"}},
            headers=talent_headers,
        )
        assert response.status_code == 403

    def test_admin_reads_any_entity(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        _create_favorite_color(client, admin_headers)
        client.put(
            f"{API}/values/talent/p-1",
            json={"values": {"favoriteColor": "blue"}},
            headers=talent_headers,
        )
        response = client.get(f"{API}/values/talent/p-1", headers=admin_headers)
        assert response.json()["values"] == {"favoriteColor": "blue"}

    def test_required_field_named_in_violations(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        auth_headers: Callable[..., dict[str, str]],
    ) -> None:
        client.post(
            f"{API}/fields",
            json={
                "name": "companyName",
                "label": "Company",
                "type": "TEXT",
                "applicability": "STUDIO",
                "is_required": True,
            },
            headers=admin_headers,
        )
        studio = auth_headers(sub="s-user", role="STUDIO", tenant_type="studio", entity_id="s-1")

        response = client.put(
            f"{API}/values/studio/s-1", json={"values": {"companyName": "  "}}, headers=studio
        )

        assert response.status_code == 422
        assert response.json()["violations"] == {"companyName": "is required"}

    def test_purge(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        _create_favorite_color(client, admin_headers)
        client.put(
            f"{API}/values/talent/p-1",
            json={"values": {"favoriteColor": "red"}},
            headers=talent_headers,
        )

        response = client.delete(f"{API}/values/talent/p-1", headers=talent_headers)

        assert response.json()["deleted"] == 1
        assert client.get(f"{API}/values/talent/p-1", headers=talent_headers).json()["values"] == {}


@pytest.mark.integration
class TestFieldAdministration:
    def test_non_admin_forbidden(
        self, client: TestClient, talent_headers: dict[str, str]
    ) -> None:
        response = client.post(
            f"{API}/fields",
            json={"name": "x", "label": "X", "type": "TEXT"},
            headers=talent_headers,
        )
        assert response.status_code == 403

    def test_duplicate_name_rejected(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        _create_favorite_color(client, admin_headers)
        response = client.post(
            f"{API}/fields",
            json={"name": "favoriteColor", "label": "Again", "type": "TEXT"},
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert response.json()["context"]["field"] == "name"

    def test_unknown_body_key_rejected(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.post(
            f"{API}/fields",
            json={"name": "x", "label": "X", "type": "TEXT", "colour": "red"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_patch_and_list(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        field = _create_favorite_color(client, admin_headers)

        patched = client.patch(
            f"{API}/fields/{field['id']}",
            json={"label": "Preferred Color", "is_visible": False},
            headers=admin_headers,
        )
        listed = client.get(f"{API}/fields", params={"applicability": "TALENT"}, headers=admin_headers)

        assert patched.json()["label"] == "Preferred Color"
        assert [(f["name"], f["is_visible"]) for f in listed.json()] == [("favoriteColor", False)]

    def test_missing_field_is_404(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get(f"{API}/fields/999", headers=admin_headers)
        assert response.status_code == 404

    def test_delete_with_values_conflicts_until_cascade(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        field = _create_favorite_color(client, admin_headers)
        client.put(
            f"{API}/values/talent/p-1",
            json={"values": {"favoriteColor": "red"}},
            headers=talent_headers,
        )

        conflict = client.delete(f"{API}/fields/{field['id']}", headers=admin_headers)
        assert conflict.status_code == 409
        assert conflict.json()["context"]["value_count"] == 1

        deleted = client.delete(
            f"{API}/fields/{field['id']}", params={"cascade": "true"}, headers=admin_headers
        )
        assert deleted.json() == {"id": field["id"], "values_deleted": 1}
        assert client.get(f"{API}/values/talent/p-1", headers=admin_headers).json()["values"] == {}

    def test_reorder(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        first = _create_favorite_color(client, admin_headers)
        second = client.post(
            f"{API}/fields",
            json={"name": "bio", "label": "Bio", "type": "TEXTAREA"},
            headers=admin_headers,
        ).json()

        response = client.post(
            f"{API}/fields/reorder",
            json={"assignments": [{"id": first["id"], "order": 2}, {"id": second["id"], "order": 1}]},
            headers=admin_headers,
        )

        assert [f["name"] for f in response.json()] == ["bio", "favoriteColor"]


@pytest.mark.integration
class TestOptionAdministration:
    def test_added_option_is_accepted_as_value(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        field = _create_favorite_color(client, admin_headers)

        created = client.post(
            f"{API}/fields/{field['id']}/options",
            json={"value": "green", "label": "Green"},
            headers=admin_headers,
        )
        accepted = client.put(
            f"{API}/values/talent/p-1",
            json={"values": {"favoriteColor": "green"}},
            headers=talent_headers,
        )

        assert created.status_code == 201
        assert created.json()["order"] == 3
        assert accepted.status_code == 200

    def test_delete_used_option_conflicts_until_cascade(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        talent_headers: dict[str, str],
    ) -> None:
        field = _create_favorite_color(client, admin_headers)
        red = next(o for o in field["options"] if o["value"] == "red")
        client.put(
            f"{API}/values/talent/p-1",
            json={"values": {"favoriteColor": "red"}},
            headers=talent_headers,
        )

        assert client.delete(f"{API}/options/{red['id']}", headers=admin_headers).status_code == 409
        cleared = client.delete(
            f"{API}/options/{red['id']}", params={"cascade": "true"}, headers=admin_headers
        )

        assert cleared.json() == {"id": red["id"], "values_cleared": 1}

    def test_sync_replaces_options(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        field = _create_favorite_color(client, admin_headers)
        blue = next(o for o in field["options"] if o["value"] == "blue")

        response = client.put(
            f"{API}/fields/{field['id']}/options",
            json={
                "options": [
                    {"id": blue["id"], "value": "blue", "label": "Navy", "is_default": True},
                    {"value": "black", "label": "Black"},
                ]
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert [(o["value"], o["label"], o["is_default"]) for o in response.json()] == [
            ("blue", "Navy", True),
            ("black", "Black", False),
        ]
