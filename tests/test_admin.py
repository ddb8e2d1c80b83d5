"""Tests for admin user management."""

import uuid

import pytest
from httpx import AsyncClient

from taskflow.db.enums import Role
from taskflow.services import user_service


@pytest.mark.asyncio
async def test_admin_routes_forbidden_for_standard_users(authed_client: AsyncClient, other_user):
    response = await authed_client.get("/admin/users")
    assert response.status_code == 403

    response = await authed_client.patch(f"/admin/users/{other_user.id}", json={"role": "admin"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_users(admin_client: AsyncClient, test_user, other_user):
    response = await admin_client.get("/admin/users")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["admins"] == 1
    assert data["active"] == 3
    assert {u["username"] for u in data["items"]} == {"root", "alice", "bob"}


@pytest.mark.asyncio
async def test_promote_user(admin_client: AsyncClient, other_user):
    response = await admin_client.patch(f"/admin/users/{other_user.id}", json={"role": "admin"})
    assert response.status_code == 200
    assert response.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_deactivation_revokes_sessions(
    admin_client: AsyncClient, client: AsyncClient, other_user, bearer_headers
):
    headers = bearer_headers(other_user)
    assert (await client.get("/auth/me", headers=headers)).status_code == 200

    response = await admin_client.patch(
        f"/admin/users/{other_user.id}", json={"is_active": False}
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert (await client.get("/auth/me", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_admin_cannot_modify_self(admin_client: AsyncClient, admin_user):
    response = await admin_client.patch(
        f"/admin/users/{admin_user.id}", json={"role": "standard"}
    )
    assert response.status_code == 409

    response = await admin_client.patch(
        f"/admin/users/{admin_user.id}", json={"is_active": False}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_unknown_user(admin_client: AsyncClient):
    response = await admin_client.patch(f"/admin/users/{uuid.uuid4()}", json={"role": "admin"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(admin_client: AsyncClient, other_user):
    response = await admin_client.patch(
        f"/admin/users/{other_user.id}", json={"password_hash": "x"}
    )
    assert response.status_code == 422


def test_set_role_by_username(db, test_user):
    user = user_service.set_role(db, "ALICE", Role.ADMIN)
    assert user.role == "admin"
    assert user_service.set_role(db, "nobody", Role.ADMIN) is None
