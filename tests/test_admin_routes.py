"""Tests for the administrative endpoints."""

from __future__ import annotations

import pytest

from models.account import Role


@pytest.fixture()
def admin_headers(create_account, auth_headers):
    create_account("admin@example.com", role=Role.ADMIN)
    return auth_headers("admin@example.com")


def test_admin_changes_role(client, create_account, admin_headers):
    member = create_account("member@example.com")

    response = client.put(
        f"/admin/accounts/{member.id}/role", json={"role": "provider"}, headers=admin_headers
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["changed"] is True
    assert body["user"]["role"] == "PROVIDER"

    again = client.put(
        f"/admin/accounts/{member.id}/role", json={"role": "PROVIDER"}, headers=admin_headers
    )
    assert again.status_code == 200
    assert again.get_json()["changed"] is False
    assert again.get_json()["user"]["role"] == "PROVIDER"

    history = client.get(f"/admin/accounts/{member.id}/history", headers=admin_headers)
    role_entries = [
        entry for entry in history.get_json()["entries"] if entry["action"] == "ROLE_CHANGED"
    ]
    assert len(role_entries) == 1
    assert role_entries[0]["payload"] == {"previousRole": "CUSTOMER", "newRole": "PROVIDER"}
    assert role_entries[0]["actor"]["kind"] == "OPERATOR"


def test_admin_promotes_account(client, create_account, admin_headers):
    member = create_account("member@example.com", role=Role.PROVIDER)

    response = client.post(f"/admin/accounts/{member.id}/promote", headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "ADMIN"
    history = client.get(f"/admin/accounts/{member.id}/history", headers=admin_headers)
    assert history.get_json()["entries"][-1]["action"] == "PROMOTED_TO_ADMIN"


def test_role_change_errors(client, create_account, admin_headers):
    member = create_account("member@example.com")

    invalid = client.put(
        f"/admin/accounts/{member.id}/role", json={"role": "OWNER"}, headers=admin_headers
    )
    assert invalid.status_code == 400
    assert invalid.get_json()["code"] == "InvalidInput"

    missing = client.put("/admin/accounts/9999/role", json={"role": "ADMIN"}, headers=admin_headers)
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NotFound"

    history = client.get("/admin/accounts/9999/history", headers=admin_headers)
    assert history.status_code == 404


@pytest.mark.parametrize("role", [Role.CUSTOMER, Role.PROVIDER])
def test_non_admins_are_forbidden(client, create_account, auth_headers, role):
    caller = create_account("caller@example.com", role=role)
    headers = auth_headers("caller@example.com")

    change = client.put(
        f"/admin/accounts/{caller.id}/role", json={"role": "ADMIN"}, headers=headers
    )
    promote = client.post(f"/admin/accounts/{caller.id}/promote", headers=headers)
    history = client.get(f"/admin/accounts/{caller.id}/history", headers=headers)

    for response in (change, promote, history):
        assert response.status_code == 403
        assert response.get_json()["error"] == "Forbidden"
    me = client.get("/auth/me", headers=headers)
    assert me.get_json()["user"]["role"] == role.value


def test_admin_routes_require_session(client):
    assert client.put("/admin/accounts/1/role", json={"role": "ADMIN"}).status_code == 401
    assert client.get("/admin/accounts/1/history").status_code == 401
