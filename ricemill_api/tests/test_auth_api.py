"""Token flow and role checks, without dependency overrides."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ricemill import user_service
from ricemill_api.dependencies.security import create_access_token


@pytest.fixture
def users(api_db):
    admin = user_service.register_user("admin", "admin-pass", role="admin")
    manager = user_service.register_user("manager", "manager-pass", role="manager")
    return admin, manager


def _login(client, username, password):
    return client.post("/auth/token", data={"username": username, "password": password})


def _bearer(client, username, password):
    token = _login(client, username, password).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_health_is_public(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_business_routes_require_token(client):
    assert client.get("/suppliers").status_code == 401


def test_token_flow(client, users):
    response = _login(client, "admin", "admin-pass")
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["username"] == "admin"


def test_wrong_password(client, users):
    assert _login(client, "admin", "nope-nope").status_code == 401


def test_manager_can_use_ledgers_but_not_admin_routes(client, users):
    headers = _bearer(client, "manager", "manager-pass")

    assert client.post("/suppliers", json={"name": "Coop"}, headers=headers).status_code == 201
    assert client.get("/users", headers=headers).status_code == 403
    register = client.post(
        "/auth/register", json={"username": "intrus", "password": "secret123"}, headers=headers
    )
    assert register.status_code == 403


def test_admin_manages_users(client, users):
    admin, manager = users
    headers = _bearer(client, "admin", "admin-pass")

    created = client.post(
        "/auth/register", json={"username": "clerk", "password": "secret123"}, headers=headers
    )
    assert created.status_code == 201
    assert created.json()["role"] == "manager"

    duplicate = client.post(
        "/auth/register", json={"username": "Clerk", "password": "secret123"}, headers=headers
    )
    assert duplicate.status_code == 409

    promoted = client.patch(f"/users/{manager.id}/role", json={"role": "admin"}, headers=headers)
    assert promoted.json()["role"] == "admin"

    assert client.delete(f"/users/{admin.id}", headers=headers).status_code == 400
    assert client.delete(f"/users/{created.json()['id']}", headers=headers).status_code == 204
    assert len(client.get("/users", headers=headers).json()) == 2


def test_logout_revokes_token(client, users):
    headers = _bearer(client, "manager", "manager-pass")

    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_tokens_with_unknown_role_or_expired_are_refused(client, users):
    admin, _ = users
    foreign = create_access_token({"sub": str(admin.id), "username": "admin", "role": "auditor"})
    expired = create_access_token(
        {"sub": str(admin.id), "username": "admin", "role": "admin"},
        expires_delta=timedelta(seconds=-5),
    )

    for token in (foreign, expired, "not-a-jwt"):
        response = client.get("/suppliers", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
