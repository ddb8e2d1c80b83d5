"""Tests for task CRUD and status/completed consistency."""

import uuid

import pytest
from httpx import AsyncClient

from taskflow.db.models import Notification


async def _create(client: AsyncClient, /, **fields) -> dict:
    payload = {"title": "Call supplier", **fields}
    response = await client.post("/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_task_defaults(authed_client: AsyncClient, test_user):
    task = await _create(authed_client, client="ACME", deadline="2026-11-01")
    assert task["owner_id"] == str(test_user.id)
    assert task["priority"] == "medium"
    assert task["status"] == "pending"
    assert task["completed"] is False
    assert task["from_channel"] is False
    assert task["source_message_id"] is None
    assert task["deadline"] == "2026-11-01"


@pytest.mark.asyncio
async def test_create_task_emits_notification(authed_client: AsyncClient, test_user, db):
    await _create(authed_client, title="Ship order")

    notification = db.query(Notification).filter(Notification.user_id == test_user.id).one()
    assert notification.title == "Task created"
    assert notification.type == "info"
    assert "Ship order" in notification.message


@pytest.mark.asyncio
async def test_create_task_validation(authed_client: AsyncClient):
    response = await authed_client.post("/tasks", json={"title": ""})
    assert response.status_code == 422

    response = await authed_client.post("/tasks", json={"title": "x", "priority": "critical"})
    assert response.status_code == 422

    response = await authed_client.post("/tasks", json={"title": "x", "owner_id": str(uuid.uuid4())})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_done_task_is_completed(authed_client: AsyncClient):
    task = await _create(authed_client, status="done")
    assert task["completed"] is True


@pytest.mark.asyncio
async def test_list_tasks_newest_first_with_filters(authed_client: AsyncClient):
    first = await _create(authed_client, title="first", priority="high")
    second = await _create(authed_client, title="second", status="in-progress")

    response = await authed_client.get("/tasks")
    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [second["id"], first["id"]]

    response = await authed_client.get("/tasks", params={"priority": "high"})
    assert [t["id"] for t in response.json()] == [first["id"]]

    response = await authed_client.get("/tasks", params={"status": "in-progress"})
    assert [t["id"] for t in response.json()] == [second["id"]]

    response = await authed_client.get("/tasks", params={"from_channel": "true"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_update_delete_task(authed_client: AsyncClient):
    task = await _create(authed_client)

    response = await authed_client.get(f"/tasks/{task['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Call supplier"

    response = await authed_client.patch(
        f"/tasks/{task['id']}",
        json={"title": "Call supplier again", "client": None, "priority": "low"},
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Call supplier again"
    assert response.json()["priority"] == "low"

    response = await authed_client.delete(f"/tasks/{task['id']}")
    assert response.status_code == 204

    response = await authed_client.get(f"/tasks/{task['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_done_marks_completed(authed_client: AsyncClient):
    task = await _create(authed_client)

    response = await authed_client.patch(f"/tasks/{task['id']}", json={"status": "done"})
    assert response.json()["completed"] is True

    response = await authed_client.patch(f"/tasks/{task['id']}", json={"status": "in-progress"})
    assert response.json()["completed"] is False


@pytest.mark.asyncio
async def test_completed_flag_drives_status(authed_client: AsyncClient):
    task = await _create(authed_client, status="in-progress")

    response = await authed_client.patch(f"/tasks/{task['id']}", json={"completed": True})
    assert response.json()["status"] == "done"

    response = await authed_client.patch(f"/tasks/{task['id']}", json={"completed": False})
    assert response.json()["status"] == "pending"
    assert response.json()["completed"] is False


@pytest.mark.asyncio
async def test_inconsistent_patch_is_rejected(authed_client: AsyncClient):
    task = await _create(authed_client)

    response = await authed_client.patch(
        f"/tasks/{task['id']}", json={"status": "pending", "completed": True}
    )
    assert response.status_code == 400

    response = await authed_client.patch(f"/tasks/{task['id']}", json={"title": None})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_patch_rejects_unknown_fields(authed_client: AsyncClient):
    task = await _create(authed_client)

    response = await authed_client.patch(
        f"/tasks/{task['id']}", json={"from_channel": True}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_tasks_are_owner_scoped(
    authed_client: AsyncClient, client: AsyncClient, other_user, bearer_headers
):
    task = await _create(authed_client)
    headers = bearer_headers(other_user)

    response = await client.get("/tasks", headers=headers)
    assert response.json() == []

    response = await client.get(f"/tasks/{task['id']}", headers=headers)
    assert response.status_code == 404

    response = await client.patch(f"/tasks/{task['id']}", json={"title": "mine"}, headers=headers)
    assert response.status_code == 404

    response = await client.delete(f"/tasks/{task['id']}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_task_is_404(authed_client: AsyncClient):
    response = await authed_client.get(f"/tasks/{uuid.uuid4()}")
    assert response.status_code == 404
