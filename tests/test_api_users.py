"""HTTP tests for team management endpoints."""

import pytest

from conftest import PASSWORD, auth_header


def _register(client, slug="acme", email="owner@acme.test"):
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "tenantName": f"{slug} team",
            "slug": slug,
            "firstName": "Olive",
            "lastName": "Owner",
            "email": email,
            "password": PASSWORD,
        },
    )
    assert resp.status_code == 201
    return resp.get_json()["data"]


def _invite_and_login(client, owner_headers, email, role):
    resp = client.post(
        "/api/v1/users/invite",
        json={"email": email, "firstName": "Team", "lastName": "Member", "role": role},
        headers=owner_headers,
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    client.patch(f"/api/v1/users/{data['id']}/status", json={"status": "active"}, headers=owner_headers)
    login = client.post("/api/v1/auth/login", json={"email": email, "password": data["temporaryPassword"]})
    assert login.status_code == 200
    return data["id"], auth_header(login.get_json()["data"]["tokens"]["accessToken"])


@pytest.fixture
def owner(client):
    data = _register(client)
    return data, auth_header(data["tokens"]["accessToken"])


class TestListing:
    def test_list_with_meta(self, client, owner):
        data, headers = owner
        resp = client.get("/api/v1/users?limit=500", headers=headers)
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["meta"] == {"page": 1, "limit": 100, "total": 1}
        assert body["data"][0]["id"] == data["user"]["id"]

    def test_bad_sort_is_400(self, client, owner):
        _, headers = owner
        resp = client.get("/api/v1/users?sort=password_hash", headers=headers)
        assert resp.status_code == 400

    def test_bad_page_is_400(self, client, owner):
        _, headers = owner
        assert client.get("/api/v1/users?page=abc", headers=headers).status_code == 400

    def test_stats(self, client, owner):
        _, headers = owner
        resp = client.get("/api/v1/users/stats", headers=headers)
        assert resp.get_json()["data"]["byRole"]["owner"] == 1

    def test_plain_user_cannot_list(self, client, owner):
        _, headers = owner
        _, user_headers = _invite_and_login(client, headers, "u@acme.test", "user")
        resp = client.get("/api/v1/users", headers=user_headers)
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "FORBIDDEN", "message": "Insufficient permissions", "status": 403}

    def test_other_tenant_user_is_404(self, client, owner):
        _, headers = owner
        other = _register(client, slug="beta", email="boss@beta.test")
        resp = client.get(f"/api/v1/users/{other['user']['id']}", headers=headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "NOT_FOUND"


class TestHierarchy:
    def test_invite_owner_role_rejected(self, client, owner):
        _, headers = owner
        resp = client.post(
            "/api/v1/users/invite",
            json={"email": "o2@acme.test", "firstName": "Ow", "lastName": "Ner", "role": "owner"},
            headers=headers,
        )
        assert resp.status_code == 400

    def test_admin_inviting_admin_is_403(self, client, owner):
        _, headers = owner
        _, admin_headers = _invite_and_login(client, headers, "a@acme.test", "admin")
        resp = client.post(
            "/api/v1/users/invite",
            json={"email": "a2@acme.test", "firstName": "Ad", "lastName": "Min", "role": "admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 403

    def test_admin_cannot_delete_owner(self, client, owner):
        data, headers = owner
        _, admin_headers = _invite_and_login(client, headers, "a@acme.test", "admin")
        resp = client.delete(f"/api/v1/users/{data['user']['id']}", headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "Cannot delete the owner account"

    def test_owner_cannot_delete_self(self, client, owner):
        data, headers = owner
        resp = client.delete(f"/api/v1/users/{data['user']['id']}", headers=headers)
        assert resp.status_code == 403

    def test_manager_cannot_change_roles(self, client, owner):
        _, headers = owner
        user_id, _ = _invite_and_login(client, headers, "u@acme.test", "user")
        _, manager_headers = _invite_and_login(client, headers, "m@acme.test", "manager")
        resp = client.patch(f"/api/v1/users/{user_id}/role", json={"role": "manager"}, headers=manager_headers)
        assert resp.status_code == 403

    def test_owner_changes_role_and_deletes(self, client, owner):
        _, headers = owner
        user_id, user_headers = _invite_and_login(client, headers, "u@acme.test", "user")
        resp = client.patch(f"/api/v1/users/{user_id}/role", json={"role": "manager"}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["role"] == "manager"

        assert client.delete(f"/api/v1/users/{user_id}", headers=headers).status_code == 204
        # Access tokens are stateless, but the account is gone
        assert client.get("/api/v1/auth/me", headers=user_headers).status_code == 404


class TestSelfService:
    def test_update_profile(self, client, owner):
        _, headers = owner
        resp = client.patch(
            "/api/v1/users/me",
            json={"firstName": "Olivia", "avatarUrl": "https://cdn.acme.test/o.png"},
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()["data"]
        assert body["firstName"] == "Olivia"
        assert body["avatarUrl"] == "https://cdn.acme.test/o.png"

    def test_invalid_avatar_url(self, client, owner):
        _, headers = owner
        resp = client.patch("/api/v1/users/me", json={"avatarUrl": "not a url"}, headers=headers)
        assert resp.status_code == 400

    def test_change_password(self, client, owner):
        data, headers = owner
        resp = client.post(
            "/api/v1/users/me/password",
            json={"currentPassword": PASSWORD, "newPassword": "Another1Pass"},
            headers=headers,
        )
        assert resp.status_code == 204
        refresh = client.post("/api/v1/auth/refresh", json={"refreshToken": data["tokens"]["refreshToken"]})
        assert refresh.status_code == 401

    def test_change_password_wrong_current(self, client, owner):
        _, headers = owner
        resp = client.post(
            "/api/v1/users/me/password",
            json={"currentPassword": "WrongPass1", "newPassword": "Another1Pass"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "INVALID_PASSWORD"
