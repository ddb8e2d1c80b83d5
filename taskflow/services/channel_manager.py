"""
WhatsApp connection lifecycle manager.

Holds one in-memory channel per owner:

    disconnected -> awaiting_scan -> connected -> disconnected

Every state change for an owner happens under that owner's asyncio.Lock, so
connect/disconnect/events for the same owner are serialized while different
owners never contend. Bridge events are queued per owner and applied in order
by a consumer task.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from taskflow.core.config import settings
from taskflow.db.enums import ChannelEventKind, ChannelState
from taskflow.db.models import InboundMessage
from taskflow.db.session import SessionLocal
from taskflow.schemas.channel import ChannelStatus
from taskflow.services import channel_service, message_service
from taskflow.services.whatsapp_bridge import (
    ChannelTransport,
    TransportError,
    TransportFactory,
    bridge_transport_factory,
    render_qr_data_url,
)

logger = logging.getLogger(__name__)

BROADCAST_CHAT = "status@broadcast"
GROUP_SUFFIX = "@g.us"
CHAT_SUFFIX = "@c.us"


class ChannelError(Exception):
    """Base exception for channel errors."""

    pass


class ChannelUnavailableError(ChannelError):
    """The external transport could not be built, started or used."""

    pass


class ChannelTimeoutError(ChannelError):
    """No pairing token or connection arrived in time."""

    pass


class ChannelNotConnectedError(ChannelError):
    """Operation needs a connected channel."""

    pass


@dataclass
class OwnerChannel:
    owner_id: UUID
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    state: ChannelState = ChannelState.DISCONNECTED
    transport: ChannelTransport | None = None
    pending_token: str | None = None
    qr_image: str | None = None
    phone_number: str | None = None
    last_connected_at: datetime | None = None
    # Set when the current connect attempt has something to report
    waiter: asyncio.Event | None = None
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    consumer: asyncio.Task | None = None

    def wake(self) -> None:
        if self.waiter is not None:
            self.waiter.set()
            self.waiter = None


class ChannelManager:
    """Per-owner WhatsApp channels backed by a pluggable transport."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        transport_factory: TransportFactory,
        connect_timeout: float | None = None,
    ):
        self._session_factory = session_factory
        self._transport_factory = transport_factory
        self.connect_timeout = (
            settings.WHATSAPP_CONNECT_TIMEOUT_SECONDS
            if connect_timeout is None
            else connect_timeout
        )
        self._channels: dict[UUID, OwnerChannel] = {}

    def _channel(self, owner_id: UUID) -> OwnerChannel:
        channel = self._channels.get(owner_id)
        if channel is None:
            channel = OwnerChannel(owner_id=owner_id)
            self._channels[owner_id] = channel
        return channel

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    # Sessions are synchronous and only ever opened from the threadpool.

    def _save_connection(self, owner_id: UUID, create: bool, fields: dict) -> None:
        with self._session_factory() as db:
            channel_service.save_connection(db, owner_id, create=create, **fields)

    def _load_connection_fields(self, owner_id: UUID) -> tuple[str | None, datetime | None]:
        with self._session_factory() as db:
            row = channel_service.get_connection(db, owner_id)
            if row is None:
                return None, None
            return row.phone_number, row.last_connected_at

    def _ingest(self, owner_id: UUID, contact: str, content: str, received_at: datetime | None):
        with self._session_factory() as db:
            return message_service.ingest_message(
                db, owner_id, contact, content, received_at=received_at
            )

    async def _persist(self, owner_id: UUID, create: bool = True, **fields) -> None:
        await run_in_threadpool(self._save_connection, owner_id, create, fields)

    async def _build_status(self, channel: OwnerChannel) -> ChannelStatus:
        phone_number = channel.phone_number
        last_connected_at = channel.last_connected_at
        if phone_number is None or last_connected_at is None:
            stored_phone, stored_at = await run_in_threadpool(
                self._load_connection_fields, channel.owner_id
            )
            phone_number = phone_number or stored_phone
            last_connected_at = last_connected_at or stored_at

        awaiting = channel.state == ChannelState.AWAITING_SCAN
        return ChannelStatus(
            state=channel.state,
            connected=channel.state == ChannelState.CONNECTED,
            pending_token=channel.pending_token if awaiting else None,
            qr_image=channel.qr_image if awaiting else None,
            phone_number=phone_number,
            last_connected_at=last_connected_at,
        )

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def request_connect(self, owner_id: UUID) -> ChannelStatus:
        """
        Start pairing and wait for a QR token or a connection.

        Raises:
            ChannelUnavailableError: Transport could not be built or started
            ChannelTimeoutError: Nothing arrived within connect_timeout
        """
        channel = self._channel(owner_id)

        async with channel.lock:
            if channel.state == ChannelState.CONNECTED:
                return await self._build_status(channel)

            if channel.transport is not None:
                if channel.pending_token:
                    return await self._build_status(channel)
                if channel.waiter is None:
                    channel.waiter = asyncio.Event()
                waiter = channel.waiter
            else:
                try:
                    transport = self._transport_factory(owner_id)
                except TransportError as exc:
                    raise ChannelUnavailableError(str(exc)) from exc

                channel.transport = transport
                channel.state = ChannelState.AWAITING_SCAN
                channel.pending_token = None
                channel.qr_image = None
                waiter = channel.waiter = asyncio.Event()
                await self._persist(owner_id, is_connected=False, qr_code=None)

                try:
                    await transport.start()
                except TransportError as exc:
                    logger.warning("Transport start failed for owner %s: %s", owner_id, exc)
                    channel.transport = None
                    channel.state = ChannelState.DISCONNECTED
                    channel.wake()
                    raise ChannelUnavailableError(str(exc)) from exc

                logger.info("Channel awaiting scan for owner %s", owner_id)

        try:
            await asyncio.wait_for(waiter.wait(), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            raise ChannelTimeoutError(
                f"No pairing token within {self.connect_timeout:g}s"
            ) from None

        return await self.get_status(owner_id)

    async def disconnect(self, owner_id: UUID) -> ChannelStatus:
        """Stop the transport and forget the pairing token."""
        channel = self._channel(owner_id)

        async with channel.lock:
            transport = channel.transport
            channel.transport = None
            if transport is not None:
                try:
                    await transport.stop()
                except TransportError as exc:
                    logger.warning("Transport stop failed for owner %s: %s", owner_id, exc)

            channel.state = ChannelState.DISCONNECTED
            channel.pending_token = None
            channel.qr_image = None
            await self._persist(owner_id, create=False, is_connected=False, qr_code=None)
            channel.wake()
            logger.info("Channel disconnected by owner %s", owner_id)
            return await self._build_status(channel)

    async def get_status(self, owner_id: UUID) -> ChannelStatus:
        channel = self._channel(owner_id)
        async with channel.lock:
            return await self._build_status(channel)

    async def send_message(self, owner_id: UUID, to: str, body: str) -> None:
        """
        Send a text message through the owner's connected session.

        Raises:
            ChannelNotConnectedError: Channel is not connected
            ChannelUnavailableError: Transport refused or failed
        """
        channel = self._channel(owner_id)
        async with channel.lock:
            if channel.state != ChannelState.CONNECTED or channel.transport is None:
                raise ChannelNotConnectedError("WhatsApp is not connected")
            transport = channel.transport

        try:
            await transport.send_message(to, body)
        except TransportError as exc:
            raise ChannelUnavailableError(str(exc)) from exc

    # -------------------------------------------------------------------------
    # Transport callbacks
    # -------------------------------------------------------------------------

    async def on_pending_token(self, owner_id: UUID, token: str) -> None:
        channel = self._channel(owner_id)
        image = await run_in_threadpool(render_qr_data_url, token)
        async with channel.lock:
            if channel.transport is None:
                logger.info("Ignoring QR token for owner %s without a live transport", owner_id)
                return
            channel.pending_token = token
            channel.qr_image = image
            channel.state = ChannelState.AWAITING_SCAN
            await self._persist(owner_id, is_connected=False, qr_code=token)
            channel.wake()

    async def on_external_authenticated(self, owner_id: UUID, identity: str | None) -> None:
        channel = self._channel(owner_id)
        async with channel.lock:
            if channel.transport is None:
                logger.info("Ignoring ready event for owner %s without a live transport", owner_id)
                return
            now = datetime.now(timezone.utc)
            channel.state = ChannelState.CONNECTED
            channel.pending_token = None
            channel.qr_image = None
            channel.phone_number = identity or channel.phone_number
            channel.last_connected_at = now
            await self._persist(
                owner_id,
                is_connected=True,
                qr_code=None,
                phone_number=channel.phone_number,
                last_connected_at=now,
            )
            channel.wake()
            logger.info("Channel connected for owner %s", owner_id)

    async def on_external_disconnected(self, owner_id: UUID, reason: str | None = None) -> None:
        channel = self._channel(owner_id)
        async with channel.lock:
            channel.transport = None
            channel.state = ChannelState.DISCONNECTED
            channel.pending_token = None
            channel.qr_image = None
            await self._persist(owner_id, create=False, is_connected=False, qr_code=None)
            channel.wake()
            logger.info("Channel dropped for owner %s: %s", owner_id, reason or "unknown")

    async def on_message_received(
        self,
        owner_id: UUID,
        contact: str,
        content: str,
        received_at: datetime | None = None,
    ) -> InboundMessage | None:
        """Ingest a message when connected; otherwise drop it."""
        channel = self._channel(owner_id)
        async with channel.lock:
            if channel.state != ChannelState.CONNECTED:
                logger.warning(
                    "Dropping WhatsApp message for owner %s: channel is %s",
                    owner_id,
                    channel.state.value,
                )
                return None
            return await run_in_threadpool(
                self._ingest, owner_id, contact, content, received_at
            )

    # -------------------------------------------------------------------------
    # Event queue
    # -------------------------------------------------------------------------

    def publish(
        self, owner_id: UUID, event: ChannelEventKind, data: dict[str, Any] | None = None
    ) -> None:
        """Queue a bridge event; events for one owner are applied in order."""
        channel = self._channel(owner_id)
        if channel.consumer is None or channel.consumer.done():
            channel.consumer = asyncio.create_task(self._consume(channel))
        channel.queue.put_nowait((event, data or {}))

    async def drain(self, owner_id: UUID) -> None:
        """Wait until every queued event for the owner has been applied."""
        channel = self._channels.get(owner_id)
        if channel is not None:
            await channel.queue.join()

    async def _consume(self, channel: OwnerChannel) -> None:
        while True:
            event, data = await channel.queue.get()
            try:
                await self._apply(channel.owner_id, event, data)
            except Exception:
                logger.exception(
                    "Failed to apply %s event for owner %s", event.value, channel.owner_id
                )
            finally:
                channel.queue.task_done()

    async def _apply(self, owner_id: UUID, event: ChannelEventKind, data: dict[str, Any]) -> None:
        if event == ChannelEventKind.QR:
            token = data.get("qr")
            if not isinstance(token, str) or not token:
                logger.warning("Dropping malformed QR event for owner %s", owner_id)
                return
            await self.on_pending_token(owner_id, token)
        elif event == ChannelEventKind.READY:
            await self.on_external_authenticated(owner_id, data.get("phone_number"))
        elif event == ChannelEventKind.DISCONNECTED:
            await self.on_external_disconnected(owner_id, data.get("reason"))
        elif event == ChannelEventKind.AUTH_FAILURE:
            await self.on_external_disconnected(
                owner_id, f"auth_failure: {data.get('message', '')}".strip(": ")
            )
        elif event == ChannelEventKind.MESSAGE:
            parsed = parse_message_event(data)
            if parsed is None:
                return
            contact, content, received_at = parsed
            await self.on_message_received(owner_id, contact, content, received_at)

    async def shutdown(self) -> None:
        """Cancel consumers and stop transports (application shutdown)."""
        channels = list(self._channels.values())
        self._channels = {}
        for channel in channels:
            if channel.consumer is not None and not channel.consumer.done():
                channel.consumer.cancel()
                try:
                    await channel.consumer
                except asyncio.CancelledError:
                    pass
            if channel.transport is not None:
                try:
                    await channel.transport.stop()
                except TransportError as exc:
                    logger.warning(
                        "Transport stop failed for owner %s: %s", channel.owner_id, exc
                    )
                channel.transport = None
            channel.wake()


def parse_message_event(data: dict[str, Any]) -> tuple[str, str, datetime | None] | None:
    """
    Extract (contact, content, received_at) from a bridge message event.

    Returns None for status broadcasts, group chats and empty bodies.
    """
    sender = str(data.get("from") or "")
    if not sender or sender == BROADCAST_CHAT or sender.endswith(GROUP_SUFFIX):
        return None
    content = str(data.get("body") or "").strip()
    if not content:
        return None

    contact = data.get("contact_name") or sender.removesuffix(CHAT_SUFFIX)
    received_at = None
    if data.get("timestamp") is not None:
        received_at = datetime.fromtimestamp(float(data["timestamp"]), tz=timezone.utc)
    return str(contact), content, received_at


# Singleton instance
channel_manager = ChannelManager(SessionLocal, bridge_transport_factory)
