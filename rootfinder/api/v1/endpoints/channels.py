# rootfinder/api/v1/endpoints/channels.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from loguru import logger

from rootfinder.api.deps import get_channel_or_404, get_hub
from rootfinder.schemas.solve import ChannelCreateIn, ChannelOut, ComputationRequest
from rootfinder.services.channel import ChannelHub, ComputationChannel

router = APIRouter()


def _channel_out(channel: ComputationChannel) -> ChannelOut:
    return ChannelOut(
        channel_id=channel.id,
        state=channel.state.value,
        owner=channel.owner,
        backend=channel.backend.name,
        request=channel.request,
        response=channel.result,
    )


# -----------------------------------------------------------------------------
# Endpoint: POST /channels
# -----------------------------------------------------------------------------
@router.post("", response_model=ChannelOut, status_code=201)
async def create_channel(
    body: Optional[ChannelCreateIn] = Body(default=None),
    hub: ChannelHub = Depends(get_hub),
):
    """
    채널 생성 (idle). 요청 전송은 별도 단계(:send).
    같은 owner의 진행 중 채널은 여기서 abandon 된다.
    """
    owner = body.owner if body else None
    channel = hub.open(owner)
    logger.info(f"[channel={channel.id}] created owner={owner!r}")
    return _channel_out(channel)


# -----------------------------------------------------------------------------
# Endpoint: POST /channels/{channel_id}:send
# -----------------------------------------------------------------------------
@router.post("/{channel_id}:send", response_model=ChannelOut, status_code=202)
async def send_request(
    channel_id: str,
    body: ComputationRequest,
    hub: ChannelHub = Depends(get_hub),
):
    """요청 전송 후 즉시 반환 (dispatched). 결과는 GET /channels/{id} 로 조회."""
    channel = get_channel_or_404(hub, channel_id)
    channel.send(body)
    return _channel_out(channel)


# -----------------------------------------------------------------------------
# Endpoint: GET /channels/{channel_id}
# -----------------------------------------------------------------------------
@router.get("/{channel_id}", response_model=ChannelOut)
async def get_channel(channel_id: str, hub: ChannelHub = Depends(get_hub)):
    return _channel_out(get_channel_or_404(hub, channel_id))


# -----------------------------------------------------------------------------
# Endpoint: DELETE /channels/{channel_id}
# -----------------------------------------------------------------------------
@router.delete("/{channel_id}", response_model=ChannelOut)
async def abandon_channel(channel_id: str, hub: ChannelHub = Depends(get_hub)):
    """요청자가 관심을 거둔 채널 teardown (이미 종료된 채널이면 그대로 반환)"""
    get_channel_or_404(hub, channel_id)
    return _channel_out(hub.abandon(channel_id))
