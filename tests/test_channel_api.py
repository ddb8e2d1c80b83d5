"""Tests for the /channel endpoints."""

import pytest
from httpx import AsyncClient

from taskflow.db.enums import ChannelEventKind


@pytest.mark.asyncio
async def test_channel_requires_session(client: AsyncClient, manager):
    response = await client.get("/channel/status")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_connect_status_disconnect(authed_client: AsyncClient, manager, test_user):
    response = await authed_client.get("/channel/status")
    assert response.status_code == 200
    assert response.json()["state"] == "disconnected"

    response = await authed_client.post("/channel/connect")
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "awaiting_scan"
    assert data["pending_token"]
    assert data["qr_image"].startswith("data:image/png;base64,")
    assert data["connected"] is False

    manager.publish(test_user.id, ChannelEventKind.READY, {"phone_number": "5511944440000"})
    await manager.drain(test_user.id)

    response = await authed_client.get("/channel/status")
    data = response.json()
    assert data["state"] == "connected"
    assert data["connected"] is True
    assert data["pending_token"] is None
    assert data["phone_number"] == "5511944440000"
    assert data["last_connected_at"] is not None

    response = await authed_client.post("/channel/disconnect")
    assert response.status_code == 200
    assert response.json()["state"] == "disconnected"


@pytest.mark.asyncio
async def test_connect_unavailable_is_503(authed_client: AsyncClient, manager, bridge):
    bridge.unconfigured = True

    response = await authed_client.post("/channel/connect")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_connect_timeout_is_504(authed_client: AsyncClient, manager, bridge):
    bridge.emit_qr = False

    response = await authed_client.post("/channel/connect")
    assert response.status_code == 504

    response = await authed_client.get("/channel/status")
    assert response.json()["state"] == "awaiting_scan"


@pytest.mark.asyncio
async def test_connect_requires_csrf_header(client: AsyncClient, manager, test_auth):
    client.cookies.set(test_auth.cookie_name, test_auth.token)
    response = await client.post("/channel/connect")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_send_requires_connected_channel(
    authed_client: AsyncClient, manager, bridge, test_user
):
    payload = {"to": "+55 11 93333-0000", "message": "Order shipped"}

    response = await authed_client.post("/channel/send", json=payload)
    assert response.status_code == 409

    await authed_client.post("/channel/connect")
    manager.publish(test_user.id, ChannelEventKind.READY, {"phone_number": "5511944440000"})
    await manager.drain(test_user.id)

    response = await authed_client.post("/channel/send", json=payload)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Message sent"}
    assert bridge.latest(test_user.id).sent == [("+55 11 93333-0000", "Order shipped")]

    bridge.fail_send = True
    response = await authed_client.post("/channel/send", json=payload)
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_send_validates_body(authed_client: AsyncClient, manager):
    response = await authed_client.post("/channel/send", json={"to": "5511", "message": ""})
    assert response.status_code == 422
