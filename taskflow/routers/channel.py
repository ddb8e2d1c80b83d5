"""Channel router - WhatsApp connection lifecycle for the caller."""

from fastapi import APIRouter, Depends, HTTPException

from taskflow.core.deps import (
    get_channel_manager,
    get_current_session,
    require_csrf_header,
)
from taskflow.schemas.auth import UserSession
from taskflow.schemas.channel import (
    ChannelStatus,
    SendMessageRequest,
    SendMessageResponse,
)
from taskflow.services.channel_manager import (
    ChannelManager,
    ChannelNotConnectedError,
    ChannelTimeoutError,
    ChannelUnavailableError,
)

router = APIRouter()


@router.post(
    "/connect",
    response_model=ChannelStatus,
    dependencies=[Depends(require_csrf_header)],
)
async def connect(
    session: UserSession = Depends(get_current_session),
    manager: ChannelManager = Depends(get_channel_manager),
):
    """
    Start pairing. Returns once a QR token is available or the channel is
    connected.
    """
    try:
        return await manager.request_connect(session.user_id)
    except ChannelUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"WhatsApp unavailable: {e}")
    except ChannelTimeoutError:
        raise HTTPException(status_code=504, detail="Timed out waiting for WhatsApp")


@router.post(
    "/disconnect",
    response_model=ChannelStatus,
    dependencies=[Depends(require_csrf_header)],
)
async def disconnect(
    session: UserSession = Depends(get_current_session),
    manager: ChannelManager = Depends(get_channel_manager),
):
    return await manager.disconnect(session.user_id)


@router.get("/status", response_model=ChannelStatus)
async def get_status(
    session: UserSession = Depends(get_current_session),
    manager: ChannelManager = Depends(get_channel_manager),
):
    return await manager.get_status(session.user_id)


@router.post(
    "/send",
    response_model=SendMessageResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def send_message(
    data: SendMessageRequest,
    session: UserSession = Depends(get_current_session),
    manager: ChannelManager = Depends(get_channel_manager),
):
    """Send a text message through the caller's connected WhatsApp."""
    try:
        await manager.send_message(session.user_id, data.to, data.message)
    except ChannelNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ChannelUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"WhatsApp unavailable: {e}")
    return SendMessageResponse(success=True, message="Message sent")
