"""WhatsApp bridge transport.

The bridge is a sidecar process running the WhatsApp Web client. We drive one
session per owner over its REST API; it reports QR codes, readiness, drops and
inbound messages back to /webhooks/whatsapp/events.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import Callable, Protocol
from uuid import UUID

import httpx
import qrcode

from taskflow.core.config import settings

logger = logging.getLogger(__name__)

CHAT_SUFFIX = "@c.us"


class TransportError(Exception):
    """The bridge could not be reached or refused the request."""

    pass


class ChannelTransport(Protocol):
    async def start(self) -> None:
        """Start the external session; the QR code arrives later as an event."""

    async def stop(self) -> None:
        """Tear the external session down."""

    async def send_message(self, to: str, body: str) -> None:
        """Send a text message to a phone number."""


TransportFactory = Callable[[UUID], ChannelTransport]


def to_chat_id(number: str) -> str:
    if CHAT_SUFFIX in number:
        return number
    digits = "".join(ch for ch in number if ch.isdigit())
    return f"{digits}{CHAT_SUFFIX}"


def render_qr_data_url(payload: str) -> str:
    """Render a pairing payload as a PNG data URL the frontend can show."""
    buffer = io.BytesIO()
    qrcode.make(payload).save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


class WhatsAppBridgeTransport:
    """ChannelTransport backed by the bridge REST API. No retries."""

    def __init__(
        self,
        owner_id: UUID,
        *,
        base_url: str,
        token: str = "",
        webhook_url: str = "",
        timeout: float = 10.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.owner_id = owner_id
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._http_transport = http_transport

    @property
    def session_url(self) -> str:
        return f"{self.base_url}/sessions/{self.owner_id}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, url: str, payload: dict | None = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._http_transport
            ) as client:
                response = await client.request(
                    method, url, json=payload, headers=self._headers()
                )
        except httpx.RequestError as exc:
            raise TransportError(f"Bridge unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(
                f"Bridge returned {response.status_code} for {method} {url}"
            )
        return response

    async def start(self) -> None:
        await self._request(
            "POST", f"{self.session_url}/start", {"webhook_url": self.webhook_url}
        )
        logger.info("Bridge session started for owner %s", self.owner_id)

    async def stop(self) -> None:
        await self._request("DELETE", self.session_url)
        logger.info("Bridge session stopped for owner %s", self.owner_id)

    async def send_message(self, to: str, body: str) -> None:
        await self._request(
            "POST",
            f"{self.session_url}/messages",
            {"chat_id": to_chat_id(to), "body": body},
        )


def bridge_transport_factory(owner_id: UUID) -> ChannelTransport:
    """Build a transport from settings; raises TransportError when unconfigured."""
    if not settings.WHATSAPP_BRIDGE_URL:
        raise TransportError("WHATSAPP_BRIDGE_URL is not configured")
    return WhatsAppBridgeTransport(
        owner_id,
        base_url=settings.WHATSAPP_BRIDGE_URL,
        token=settings.WHATSAPP_BRIDGE_TOKEN,
        webhook_url=settings.WHATSAPP_EVENTS_WEBHOOK_URL,
        timeout=settings.WHATSAPP_REQUEST_TIMEOUT_SECONDS,
    )
